"""Simulated OpenAI and Twitter backends.

They expose the same coroutine methods as the real connectors and record
everything in SimulatorState, so the API and the generated n8n workflow can be
exercised end to end without credentials.
"""

from __future__ import annotations

import logging
import uuid

from ..connectors.base import ServiceError
from ..connectors.generator import resolve_hashtags
from ..connectors.twitter import DEFAULT_ENGAGEMENT_LIMIT
from ..models import EngagementAction, GenerateRequest, GenerateResult
from .state import SimulatedTweet, SimulatorState

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
PLACEHOLDER_IMAGE = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def _snowflake() -> str:
    return str(uuid.uuid4().int)[:19]


class BaseService:
    """Shared init and logging for all simulated services."""

    service_name: str = ""

    def __init__(self, state: SimulatorState):
        self.state = state

    def _log(self, action: str, **details) -> None:
        summary = " ".join(f"{key}={value}" for key, value in details.items())
        logger.info("[simulated] %s.%s ok %s", self.service_name, action, summary)


class SimulatedGenerator(BaseService):
    service_name = "openai"

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        hashtags = resolve_hashtags(request.hashtags)
        tags = " ".join(hashtags)
        call_to_action = request.call_to_action or "What do you think? Reply below."

        result = GenerateResult(
            tweet=f"{request.topic} for {request.niche}: a {request.tone} take. {tags}"[:250],
            thread=[
                f"Why {request.topic} matters to {request.niche} right now.",
                call_to_action,
            ],
            alt_text=f"Illustration about {request.topic}",
            image_prompt=f"A clean illustration of {request.topic} for a {request.niche} audience",
            image_base64=PLACEHOLDER_IMAGE if request.include_image else None,
            dm_message=f"Hi! I just shared some thoughts on {request.topic}, would love your view.",
            engagement_targets=[f"{tag} conversations" for tag in hashtags],
        )
        self.state.generations.append(request.model_dump())
        self._log("generate", topic=request.topic, image=request.include_image)
        return result


class SimulatedTwitter(BaseService):
    service_name = "twitter"

    async def publish_tweet(
        self,
        status: str,
        alt_text: str | None = None,
        thread: list[str] | None = None,
        image_base64: str | None = None,
    ) -> dict:
        media_ids = []
        if image_base64:
            media_id = _snowflake()
            self.state.media[media_id] = {"alt_text": alt_text, "size": len(image_base64)}
            media_ids.append(media_id)

        head = self._tweet(status, media_ids=media_ids)
        reply_to = head.id
        for entry in thread or []:
            reply_to = self._tweet(entry, in_reply_to=reply_to).id

        self._log("publish_tweet", tweet_id=head.id, thread=len(thread or []))
        return {"id": head.id, "text": head.text}

    async def perform_engagement(self, requests: list[EngagementAction]) -> list[dict]:
        for request in requests:
            if request.action == "reply" and not request.message:
                raise ServiceError("Reply action requires a message.", "invalid_request")

        results: list[dict] = []
        for request in requests:
            limit = request.limit or DEFAULT_ENGAGEMENT_LIMIT
            targets = [request.tweet_id] if request.tweet_id else []
            if request.search_query:
                targets.extend(_snowflake() for _ in range(max(limit - len(targets), 0)))

            for tweet_id in targets:
                if request.action == "like":
                    self.state.likes.append(tweet_id)
                    data = {"liked": True}
                elif request.action == "retweet":
                    self.state.retweets.append(tweet_id)
                    data = {"retweeted": True}
                else:
                    reply = self._tweet(request.message, in_reply_to=tweet_id)
                    data = {"id": reply.id, "text": reply.text}
                results.append({"action": request.action, "tweetId": tweet_id, "result": data})

        self._log("perform_engagement", requests=len(requests), actions=len(results))
        return results

    async def send_direct_message(
        self,
        message: str,
        recipient_handle: str | None = None,
        recipient_id: str | None = None,
    ) -> dict:
        if not (recipient_id or recipient_handle):
            raise ServiceError(
                "Recipient information is missing. Provide recipientId or recipientHandle.",
                "invalid_request",
            )
        event = {
            "dm_event_id": _snowflake(),
            "recipient": recipient_id or recipient_handle.lstrip("@"),
            "text": message,
        }
        self.state.direct_messages.append(event)
        self._log("send_direct_message", recipient=event["recipient"])
        return {"dm_event_id": event["dm_event_id"]}

    def _tweet(self, text: str, in_reply_to: str | None = None, media_ids=None) -> SimulatedTweet:
        tweet = SimulatedTweet(
            id=_snowflake(), text=text, in_reply_to=in_reply_to, media_ids=media_ids or []
        )
        self.state.tweets[tweet.id] = tweet
        return tweet

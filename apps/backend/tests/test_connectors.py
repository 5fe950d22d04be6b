import asyncio
import json
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from tweetforge.config import Settings
from tweetforge.connectors import close_service_layer, create_service_layer, get_service
from tweetforge.connectors.base import ServiceError
from tweetforge.connectors.generator import ContentGenerator
from tweetforge.connectors.twitter import TwitterConnector
from tweetforge.models import EngagementAction, GenerateRequest
from tweetforge.simulator import SimulatedGenerator, SimulatedTwitter


class FakeTwitterApi:
    """Minimal Twitter API backed by httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tweet_count = 0
        self.fail_with: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if self.fail_with:
            return httpx.Response(
                self.fail_with, json={"title": "Too Many Requests", "detail": "Too Many Requests"}
            )
        if path == "/1.1/media/upload.json":
            return httpx.Response(200, json={"media_id_string": "m-1"})
        if path == "/1.1/media/metadata/create.json":
            return httpx.Response(200)
        if path == "/2/tweets":
            self.tweet_count += 1
            body = json.loads(request.content)
            return httpx.Response(
                201, json={"data": {"id": f"t-{self.tweet_count}", "text": body["text"]}}
            )
        if path == "/2/users/me":
            return httpx.Response(200, json={"data": {"id": "u-1", "username": "me"}})
        if path == "/2/tweets/search/recent":
            return httpx.Response(
                200, json={"data": [{"id": "s-1"}, {"id": "s-2"}, {"id": "s-3"}]}
            )
        if path == "/2/users/u-1/likes":
            return httpx.Response(200, json={"data": {"liked": True}})
        if path == "/2/users/u-1/retweets":
            return httpx.Response(200, json={"data": {"retweeted": True}})
        if path == "/2/users/by/username/alice":
            return httpx.Response(200, json={"data": {"id": "a-1", "username": "alice"}})
        if path == "/2/dm_conversations/with/a-1/messages":
            return httpx.Response(
                201, json={"data": {"dm_conversation_id": "c-1", "dm_event_id": "e-1"}}
            )
        return httpx.Response(404, json={"title": "Not Found Error", "detail": path})

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class TwitterConnectorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.api = FakeTwitterApi()
        self.http = httpx.AsyncClient(transport=httpx.MockTransport(self.api.handler))
        self.twitter = TwitterConnector("key", "secret", "token", "token-secret", self.http)

    async def asyncTearDown(self) -> None:
        await self.http.aclose()

    async def test_publish_uploads_media_and_chains_thread(self):
        head = await self.twitter.publish_tweet(
            status="Launching today",
            alt_text="A rocket",
            thread=["Part two", "Part three"],
            image_base64="aW1hZ2U=",
        )

        self.assertEqual(head["id"], "t-1")
        self.assertEqual(
            self.api.paths(),
            [
                "/1.1/media/upload.json",
                "/1.1/media/metadata/create.json",
                "/2/tweets",
                "/2/tweets",
                "/2/tweets",
            ],
        )
        metadata = json.loads(self.api.requests[1].content)
        self.assertEqual(metadata, {"media_id": "m-1", "alt_text": {"text": "A rocket"}})

        head_body = json.loads(self.api.requests[2].content)
        self.assertEqual(head_body["media"], {"media_ids": ["m-1"]})
        second = json.loads(self.api.requests[3].content)
        third = json.loads(self.api.requests[4].content)
        self.assertEqual(second["reply"], {"in_reply_to_tweet_id": "t-1"})
        self.assertEqual(third["reply"], {"in_reply_to_tweet_id": "t-2"})

        for request in self.api.requests:
            self.assertTrue(request.headers["authorization"].startswith("OAuth "))

    async def test_requests_carry_oauth1_signature(self):
        await self.twitter.publish_tweet(status="Signed tweet", image_base64="aW1hZ2U=")

        upload, tweet = self.api.requests
        for request in (upload, tweet):
            header = request.headers["authorization"]
            self.assertIn('oauth_consumer_key="key"', header)
            self.assertIn('oauth_token="token"', header)
            self.assertIn('oauth_signature_method="HMAC-SHA1"', header)
            self.assertIn("oauth_signature=", header)

        self.assertEqual(upload.content, b"media_data=aW1hZ2U%3D")
        self.assertEqual(json.loads(tweet.content), {"text": "Signed tweet", "media": {"media_ids": ["m-1"]}})

    async def test_publish_without_media_skips_upload(self):
        await self.twitter.publish_tweet(status="Plain tweet here")
        self.assertEqual(self.api.paths(), ["/2/tweets"])
        self.assertNotIn("media", json.loads(self.api.requests[0].content))

    async def test_engagement_caps_search_results_and_caches_user(self):
        results = await self.twitter.perform_engagement(
            [
                EngagementAction(search_query="#AI conversations", action="like", limit=2),
                EngagementAction(tweet_id="9999999", action="retweet"),
            ]
        )

        self.assertEqual(
            [(r["action"], r["tweetId"]) for r in results],
            [("like", "s-1"), ("like", "s-2"), ("retweet", "9999999")],
        )
        self.assertEqual(self.api.paths().count("/2/users/me"), 1)

        search = next(r for r in self.api.requests if r.url.path == "/2/tweets/search/recent")
        self.assertEqual(search.url.params["query"], "#AI conversations")
        self.assertEqual(search.url.params["max_results"], "10")

    async def test_engagement_reply(self):
        results = await self.twitter.perform_engagement(
            [EngagementAction(tweet_id="1234567", action="reply", message="Great point!")]
        )
        self.assertEqual(results[0]["result"]["id"], "t-1")
        reply = json.loads(self.api.requests[-1].content)
        self.assertEqual(reply, {"text": "Great point!", "reply": {"in_reply_to_tweet_id": "1234567"}})

    async def test_engagement_reply_requires_message(self):
        with self.assertRaises(ServiceError) as ctx:
            await self.twitter.perform_engagement(
                [
                    EngagementAction(tweet_id="7654321", action="like"),
                    EngagementAction(tweet_id="1234567", action="reply"),
                ]
            )
        self.assertEqual(ctx.exception.error_type, "invalid_request")
        self.assertEqual(self.api.requests, [])

    async def test_engagement_with_no_requests_makes_no_calls(self):
        self.assertEqual(await self.twitter.perform_engagement([]), [])
        self.assertEqual(self.api.requests, [])

    async def test_direct_message_resolves_handle(self):
        result = await self.twitter.send_direct_message("Hello there!", recipient_handle="@alice")
        self.assertEqual(result["dm_event_id"], "e-1")
        self.assertEqual(
            self.api.paths(),
            ["/2/users/by/username/alice", "/2/dm_conversations/with/a-1/messages"],
        )
        self.assertEqual(json.loads(self.api.requests[-1].content), {"text": "Hello there!"})

    async def test_direct_message_requires_recipient(self):
        with self.assertRaises(ServiceError):
            await self.twitter.send_direct_message("Hello there!")
        self.assertEqual(self.api.requests, [])

    async def test_http_errors_map_to_error_types(self):
        self.api.fail_with = 429
        with self.assertRaises(ServiceError) as ctx:
            await self.twitter.publish_tweet(status="Rate limited tweet")
        self.assertEqual(ctx.exception.error_type, "rate_limit")
        self.assertIn("Too Many Requests", str(ctx.exception))

        self.api.fail_with = 403
        with self.assertRaises(ServiceError) as ctx:
            await self.twitter.publish_tweet(status="Forbidden tweet")
        self.assertEqual(ctx.exception.error_type, "permission_denied")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class ContentGeneratorTests(unittest.IsolatedAsyncioTestCase):
    def make_generator(self, payload, image_model: str = "gpt-image-1") -> ContentGenerator:
        client = MagicMock()
        content = payload if isinstance(payload, str) or payload is None else json.dumps(payload)
        client.chat.completions.create = AsyncMock(return_value=completion(content))
        client.images.generate = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(b64_json="aW1n")])
        )
        self.client = client
        return ContentGenerator(client, MagicMock(), model="gpt-4o-mini", image_model=image_model)

    PAYLOAD = {
        "tweet": "AI agents are eating busywork.",
        "thread": ["Here is how."],
        "altText": "Robot at a desk",
        "imagePrompt": "A robot at a desk",
        "dmMessage": "Thanks for the follow!",
        "engagementTargets": [],
    }

    async def test_generates_with_image_and_fallback_targets(self):
        generator = self.make_generator(self.PAYLOAD)
        result = await generator.generate(
            GenerateRequest(
                topic="AI agents", niche="startups", tone="witty", include_image=True, hashtags=["#agents"]
            )
        )

        self.assertEqual(result.tweet, "AI agents are eating busywork.")
        self.assertEqual(result.thread, ["Here is how."])
        self.assertEqual(result.image_base64, "aW1n")
        self.assertEqual(result.engagement_targets, ["#agents conversations"])

        kwargs = self.client.chat.completions.create.await_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["response_format"]["json_schema"]["name"], "twitter_workflow_payload")
        user_prompt = kwargs["messages"][1]["content"]
        self.assertIn("Include hashtags: #agents", user_prompt)
        self.assertIn("Brand notes: Use concise, confident voice.", user_prompt)

        image_kwargs = self.client.images.generate.await_args.kwargs
        self.assertEqual(image_kwargs["model"], "gpt-image-1")
        self.assertEqual(image_kwargs["prompt"], "A robot at a desk")
        self.assertNotIn("response_format", image_kwargs)

    async def test_dall_e_requests_base64(self):
        generator = self.make_generator(self.PAYLOAD, image_model="dall-e-3")
        await generator.generate(
            GenerateRequest(topic="AI agents", niche="startups", tone="witty", include_image=True)
        )
        self.assertEqual(self.client.images.generate.await_args.kwargs["response_format"], "b64_json")

    async def test_skips_image_unless_requested(self):
        generator = self.make_generator({**self.PAYLOAD, "engagementTargets": ["#AI builders"]})
        result = await generator.generate(
            GenerateRequest(topic="AI agents", niche="startups", tone="witty")
        )
        self.client.images.generate.assert_not_awaited()
        self.assertIsNone(result.image_base64)
        self.assertEqual(result.engagement_targets, ["#AI builders"])

        prompt = self.client.chat.completions.create.await_args.kwargs["messages"][1]["content"]
        self.assertIn("Include hashtags: #AI, #Automation, #Marketing", prompt)

    async def test_empty_completion_raises(self):
        generator = self.make_generator(None)
        with self.assertRaises(ServiceError) as ctx:
            await generator.generate(GenerateRequest(topic="AI agents", niche="startups", tone="witty"))
        self.assertIn("did not return any content", str(ctx.exception))

    async def test_malformed_json_raises(self):
        generator = self.make_generator("{not json")
        with self.assertRaises(ServiceError) as ctx:
            await generator.generate(GenerateRequest(topic="AI agents", niche="startups", tone="witty"))
        self.assertEqual(ctx.exception.error_type, "invalid_response")

    async def test_non_object_json_raises(self):
        generator = self.make_generator('["a tweet", "another"]')
        with self.assertRaises(ServiceError) as ctx:
            await generator.generate(GenerateRequest(topic="AI agents", niche="startups", tone="witty"))
        self.assertEqual(ctx.exception.error_type, "invalid_response")

    async def test_vendor_errors_become_service_errors(self):
        generator = self.make_generator(self.PAYLOAD)
        response = httpx.Response(
            429, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )
        self.client.chat.completions.create.side_effect = openai.RateLimitError(
            "Rate limit reached", response=response, body=None
        )
        with self.assertRaises(ServiceError) as ctx:
            await generator.generate(GenerateRequest(topic="AI agents", niche="startups", tone="witty"))
        self.assertEqual(ctx.exception.error_type, "rate_limit")


class ServiceLayerTests(unittest.TestCase):
    def settings(self, **overrides) -> Settings:
        values = {
            "connector_mode": "hybrid",
            "openai_api_key": None,
            "twitter_api_key": None,
            "twitter_api_secret": None,
            "twitter_access_token": None,
            "twitter_access_secret": None,
        }
        values.update(overrides)
        return Settings(**values)

    def test_simulator_mode(self):
        _, services = create_service_layer(self.settings(connector_mode="simulator", openai_api_key="sk"))
        self.assertIsInstance(services["openai"], SimulatedGenerator)
        self.assertIsInstance(services["twitter"], SimulatedTwitter)
        self.assertNotIn("_http_client", services)

    def test_hybrid_mode_prefers_configured_connectors(self):
        _, services = create_service_layer(
            self.settings(
                twitter_api_key="k",
                twitter_api_secret="s",
                twitter_access_token="t",
                twitter_access_secret="ts",
            )
        )
        self.assertIsInstance(services["twitter"], TwitterConnector)
        self.assertIsInstance(services["openai"], SimulatedGenerator)
        self.assertIs(services["twitter"].http, services["_http_client"])

        asyncio.run(close_service_layer(services))
        self.assertNotIn("_http_client", services)

    def test_partial_twitter_credentials_are_not_configured(self):
        self.assertFalse(TwitterConnector.is_configured(self.settings(twitter_api_key="k")))

    def test_real_mode_never_falls_back(self):
        _, services = create_service_layer(self.settings(connector_mode="real", openai_api_key="sk"))
        self.assertIsInstance(services["openai"], ContentGenerator)
        self.assertNotIn("twitter", services)

        with self.assertRaises(ServiceError) as ctx:
            get_service(services, "twitter")
        self.assertEqual(ctx.exception.error_type, "not_configured")

        asyncio.run(close_service_layer(services))


if __name__ == "__main__":
    unittest.main()

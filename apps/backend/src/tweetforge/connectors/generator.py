"""OpenAI connector producing tweet copy, threads, DM copy and images."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import openai
from openai import AsyncOpenAI

from ..models import GenerateRequest, GenerateResult
from .base import BaseConnector, ServiceError, error_type_for_status

if TYPE_CHECKING:
    from ..config import Settings

DEFAULT_HASHTAGS = ["#AI", "#Automation", "#Marketing"]

SYSTEM_PROMPT = """You are a social media strategist specialising in Twitter growth through authentic engagement.
Respond in JSON with keys: tweet, thread (array of follow-up tweets), altText, imagePrompt, dmMessage, engagementTargets (array of search phrases).
Tweets must be 250 characters or fewer and stay consistent with user tone requests."""

RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "twitter_workflow_payload",
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "required": ["tweet", "thread", "altText", "dmMessage", "engagementTargets"],
            "properties": {
                "tweet": {"type": "string"},
                "thread": {"type": "array", "items": {"type": "string"}},
                "altText": {"type": "string"},
                "imagePrompt": {"type": "string"},
                "dmMessage": {"type": "string"},
                "engagementTargets": {"type": "array", "items": {"type": "string"}},
            },
        },
    },
}

IMAGE_TIMEOUT = 120.0


def resolve_hashtags(hashtags: list[str] | None) -> list[str]:
    """Use the caller's hashtags unless none of them has any content."""
    if hashtags and any(tag.strip() for tag in hashtags):
        return hashtags
    return DEFAULT_HASHTAGS


def build_user_prompt(request: GenerateRequest, hashtags: list[str]) -> str:
    return (
        f"Topic: {request.topic}\n"
        f"Niche: {request.niche}\n"
        f"Tone: {request.tone}\n"
        f"Brand notes: {request.brand_voice or 'Use concise, confident voice.'}\n"
        f"Call to action: {request.call_to_action or 'Encourage replies and link clicks.'}\n"
        f"Include hashtags: {', '.join(hashtags)}\n"
    )


def _vendor_error(error: openai.APIError) -> ServiceError:
    if isinstance(error, openai.APIStatusError):
        return ServiceError(
            f"OpenAI API error: {error.message}", error_type_for_status(error.status_code)
        )
    return ServiceError(f"OpenAI request failed: {error}", "connector_error")


class ContentGenerator(BaseConnector):
    """Generates a tweet payload with one chat completion and an optional image.

    Required settings: OPENAI_API_KEY
    Optional: OPENAI_MODEL, OPENAI_IMAGE_MODEL
    """

    service_name = "openai"

    def __init__(
        self,
        client: AsyncOpenAI,
        http_client: httpx.AsyncClient,
        model: str = "gpt-4o-mini",
        image_model: str = "gpt-image-1",
    ) -> None:
        super().__init__(http_client)
        self.client = client
        self.model = model
        self.image_model = image_model

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> ContentGenerator:
        client = AsyncOpenAI(api_key=settings.openai_api_key, http_client=http_client)
        return cls(
            client,
            http_client,
            model=settings.openai_model,
            image_model=settings.openai_image_model,
        )

    @classmethod
    def is_configured(cls, settings: Settings) -> bool:
        return bool(settings.openai_api_key)

    async def generate(self, request: GenerateRequest) -> GenerateResult:
        hashtags = resolve_hashtags(request.hashtags)

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                temperature=0.7,
                max_tokens=800,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(request, hashtags)},
                ],
                response_format=RESPONSE_FORMAT,
            )
        except openai.APIError as e:
            raise _vendor_error(e) from e

        raw_content = completion.choices[0].message.content if completion.choices else None
        if not raw_content:
            self._fail(
                "OpenAI did not return any content for the tweet prompt.", "empty_response"
            )

        try:
            parsed = json.loads(raw_content)
        except json.JSONDecodeError as e:
            raise ServiceError(
                f"OpenAI returned malformed JSON: {e}", "invalid_response"
            ) from e
        if not isinstance(parsed, dict):
            raise ServiceError(
                "OpenAI returned JSON that is not an object.", "invalid_response"
            )

        image_prompt = parsed.get("imagePrompt")
        image_base64 = None
        if request.include_image and image_prompt:
            image_base64 = await self.generate_image(image_prompt)

        engagement_targets = parsed.get("engagementTargets") or [
            f"{tag} conversations" for tag in hashtags
        ]

        result = GenerateResult(
            tweet=parsed.get("tweet", ""),
            thread=parsed.get("thread") or [],
            alt_text=parsed.get("altText"),
            image_prompt=image_prompt,
            image_base64=image_base64,
            dm_message=parsed.get("dmMessage", ""),
            engagement_targets=engagement_targets,
        )
        self._log(
            "generate",
            model=self.model,
            thread=len(result.thread),
            image=image_base64 is not None,
        )
        return result

    async def generate_image(self, prompt: str) -> str | None:
        """Render ``prompt`` to a square image and return it base64 encoded."""
        params: dict[str, Any] = {
            "model": self.image_model,
            "size": "1024x1024",
            "prompt": prompt,
            "timeout": IMAGE_TIMEOUT,
        }
        # gpt-image models always answer with base64 and reject response_format
        if self.image_model.startswith("dall-e"):
            params["response_format"] = "b64_json"

        try:
            response = await self.client.images.generate(**params)
        except openai.APIError as e:
            raise _vendor_error(e) from e
        if not response.data:
            return None
        return response.data[0].b64_json


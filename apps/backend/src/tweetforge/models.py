"""API models for TweetForge."""

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

Tone = Literal[
    "professional",
    "playful",
    "informative",
    "thoughtful",
    "inspirational",
    "promotional",
    "witty",
]


class ApiModel(BaseModel):
    """Request/response model exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateRequest(ApiModel):
    """Creative brief for one tweet generation."""

    topic: str = Field(..., min_length=3)
    niche: str = Field(..., min_length=3)
    tone: Tone
    call_to_action: Optional[str] = None
    include_image: bool = False
    brand_voice: Optional[str] = None
    hashtags: Optional[list[str]] = None


class GenerateResult(ApiModel):
    """Generated tweet content plus the follow-up material for DMs and engagement."""

    tweet: str
    thread: list[str] = []
    alt_text: Optional[str] = None
    image_prompt: Optional[str] = None
    image_base64: Optional[str] = None
    dm_message: str
    engagement_targets: list[str] = []


class PublishRequest(ApiModel):
    tweet: str = Field(..., min_length=8)
    alt_text: Optional[str] = None
    image_base64: Optional[str] = None
    thread: Optional[list[Annotated[str, Field(min_length=1)]]] = None


class EngagementAction(ApiModel):
    """A like, retweet or reply against one tweet or a search's top results."""

    tweet_id: Optional[str] = Field(None, min_length=6)
    search_query: Optional[str] = Field(None, min_length=3)
    limit: Optional[int] = Field(None, gt=0, le=10)
    action: Literal["like", "retweet", "reply"]
    message: Optional[str] = None

    @model_validator(mode="after")
    def _require_target(self) -> "EngagementAction":
        if not (self.tweet_id or self.search_query):
            raise ValueError("Provide a tweetId or searchQuery for each engagement action.")
        return self


class EngageRequest(ApiModel):
    engagements: list[EngagementAction] = Field(..., min_length=1)


class Recipient(ApiModel):
    handle: Optional[str] = None
    id: Optional[str] = None

    @model_validator(mode="after")
    def _require_handle_or_id(self) -> "Recipient":
        if not (self.handle or self.id):
            raise ValueError("Provide a handle or an id for each recipient.")
        return self


class DirectMessageRequest(ApiModel):
    message: str = Field(..., min_length=6)
    recipients: list[Recipient] = Field(..., min_length=1)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "TweetForge Backend"
    connector_mode: str

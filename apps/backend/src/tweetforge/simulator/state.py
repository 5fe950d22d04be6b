"""Shared state for the simulated services."""

from datetime import datetime

from pydantic import BaseModel, Field


class SimulatedTweet(BaseModel):
    id: str
    text: str
    in_reply_to: str | None = None
    media_ids: list[str] = []
    created_at: datetime = Field(default_factory=datetime.now)


class SimulatorState(BaseModel):
    """Mutable state shared across all simulated services."""

    tweets: dict[str, SimulatedTweet] = {}
    media: dict[str, dict] = {}
    likes: list[str] = []
    retweets: list[str] = []
    direct_messages: list[dict] = []
    generations: list[dict] = []

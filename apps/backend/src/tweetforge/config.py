from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ------------------------------------------------------------------
    # OpenAI (tweet + image generation)
    # ------------------------------------------------------------------
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_image_model: str = "gpt-image-1"

    # ------------------------------------------------------------------
    # Twitter / X credentials (OAuth 1.0a user context)
    # ------------------------------------------------------------------
    twitter_api_key: Optional[str] = None        # consumer key
    twitter_api_secret: Optional[str] = None     # consumer secret
    twitter_access_token: Optional[str] = None
    twitter_access_secret: Optional[str] = None

    # ------------------------------------------------------------------
    # Connector mode
    # ------------------------------------------------------------------
    # "simulator": always use in-memory simulators (no external calls)
    # "hybrid"   : use the real client per service when credentials are set,
    #               fall back to the simulator when not
    # "real"     : never fall back; missing credentials fail on use
    connector_mode: Literal["simulator", "hybrid", "real"] = "hybrid"

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------
    # Public URL of this service, embedded in generated n8n HTTP nodes
    worker_base_url: str = "http://localhost:8000"
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HubSpot OAuth app
    hubspot_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("hubspot_client_id", "hubspot_cid"),
    )
    hubspot_client_secret: str = Field(
        default="",
        validation_alias=AliasChoices("hubspot_client_secret", "hubspot_cs"),
    )

    # HubSpot API
    hubspot_base_url: str = Field(default="https://api.hubapi.com")
    hubspot_token_url: str = Field(default="https://api.hubapi.com/oauth/v1/token")
    http_timeout_seconds: float = Field(default=60.0)

    # Retry policy (5 attempts => 4 retries, 5s * 2^i between attempts)
    retry_max_attempts: int = Field(default=5)
    retry_base_delay_seconds: float = Field(default=5.0)

    # Search pagination
    search_page_size: int = Field(default=100)
    search_max_offset: int = Field(default=9900)

    # Action batching
    action_buffer_capacity: int = Field(default=2000)

    # Watermarks
    advance_watermark_on_failure: bool = Field(default=False)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

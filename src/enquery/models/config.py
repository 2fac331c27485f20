from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.enapter.com"


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ENAPTER_",
        extra="ignore",
    )

    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    api_version: Literal["v1", "v3"] = "v3"
    timeout: float = 15.0
    user: str | None = None
    output_format: str | None = None

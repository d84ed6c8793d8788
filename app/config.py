"""Runtime configuration for the graphstats FastAPI service."""
from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    app_env: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    graph_api_url: AnyHttpUrl = "http://graph:8182/g"
    graph_username: Optional[str] = None
    graph_password: Optional[str] = None
    graph_timeout_seconds: float = 30.0

    slack_timeout_seconds: float = 10.0
    slack_verification_token: Optional[str] = None

    stats_top_n: int = 5

    # Enables debug traces for the dispatcher and collectors.
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GRAPHSTATS_",
        env_ignore_empty=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor used across the codebase."""

    return Settings()  # type: ignore[arg-type]


settings = get_settings()

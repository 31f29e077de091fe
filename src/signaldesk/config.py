"""Configuration loading from environment variables with validation."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Anchor all paths to the project root (two levels up from this file)
_PROJECT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIGNALDESK_",
        case_sensitive=False,
    )

    # Storage
    db_path: Path = _PROJECT_DIR / "data" / "signaldesk.db"

    # Outbound webhooks
    dispatch_timeout_seconds: float = 90.0
    dispatch_connect_attempts: int = 3
    dispatch_retry_wait_seconds: float = 1.0

    # Placeholder reconciliation
    dedup_window_minutes: int = 10
    dedup_match_field: str = "source_url"
    ingest_placeholders: bool = True
    callback_source: str = "n8n"

    # Insights
    default_platform: str = "linkedin"
    stale_after_minutes: int | None = None  # None: derived from dispatch timeout

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8000

    # Pagination
    page_limit: int = 50
    max_page_limit: int = 100

    @field_validator("dispatch_connect_attempts")
    @classmethod
    def _at_least_one_attempt(cls, v: int) -> int:
        if v < 1:
            raise ValueError("dispatch_connect_attempts must be >= 1")
        return v

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(minutes=self.dedup_window_minutes)

    @property
    def stale_after(self) -> timedelta:
        """Age after which an in-flight insight is considered stuck."""
        if self.stale_after_minutes is not None:
            return timedelta(minutes=self.stale_after_minutes)
        # One full dispatch window plus a minute of slack
        return timedelta(seconds=self.dispatch_timeout_seconds + 60)


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    # Load .env from the project root regardless of cwd
    load_dotenv(_PROJECT_DIR / ".env")
    return Settings()

"""Application settings parsed from environment variables and defaults."""

import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
DEFAULT_QUEUE_NAMES = ["default", "automations"]


def _split_list(value: str | list[str] | None) -> list[str]:
    """Normalize JSON, CSV, or list inputs into a list of non-empty strings."""
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return []
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
        return [item.strip() for item in stripped.split(",") if item.strip()]
    return []


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = "Boardflow API"
    environment: str = "development"
    api_prefix: str = "/api"

    database_url: str
    test_database_url: Optional[str] = None

    log_level: str = "INFO"
    cors_origins: list[str] | str = Field(default_factory=lambda: DEFAULT_CORS_ORIGINS.copy())
    redis_url: str = "redis://redis:6379/0"
    worker_queue_names: list[str] | str = Field(default_factory=lambda: DEFAULT_QUEUE_NAMES.copy())

    email_relay_url: Optional[str] = None
    email_default_from: str = "noreply@boardflow.app"
    email_default_subject: str = "Task Update"

    ai_api_key: Optional[str] = None
    ai_model: str = "anthropic/claude-3.5-sonnet"
    ai_base_url: str = "https://openrouter.ai/api/v1"
    ai_referer: Optional[str] = None

    automation_service_key: Optional[str] = None
    automation_batch_size: int = 100
    automation_claim_before_execute: bool = False
    automation_http_timeout_seconds: float = 30.0
    automation_sweep_interval_seconds: int = 0

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_cors_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize CORS origins, falling back to the local UI origins."""
        return _split_list(value) or DEFAULT_CORS_ORIGINS.copy()

    @field_validator("worker_queue_names", mode="before")
    @classmethod
    def _split_worker_queue_names(cls, value: str | list[str] | None) -> list[str]:
        """Normalize worker queue names, falling back to the default queue."""
        return _split_list(value) or ["default"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@dataclass(frozen=True, slots=True)
class AutomationConfig:
    """Provider options injected into the automation run coordinator and executor.

    Missing values only fail the action steps that need them.
    """

    email_relay_url: str | None = None
    email_default_from: str = "noreply@boardflow.app"
    email_default_subject: str = "Task Update"
    ai_api_key: str | None = None
    ai_model: str = "anthropic/claude-3.5-sonnet"
    ai_base_url: str = "https://openrouter.ai/api/v1"
    ai_referer: str | None = None
    http_timeout_seconds: float | None = 30.0
    batch_size: int = 100
    claim_before_execute: bool = False

    @classmethod
    def from_settings(cls, source: Settings) -> "AutomationConfig":
        return cls(
            email_relay_url=source.email_relay_url,
            email_default_from=source.email_default_from,
            email_default_subject=source.email_default_subject,
            ai_api_key=source.ai_api_key,
            ai_model=source.ai_model,
            ai_base_url=source.ai_base_url,
            ai_referer=source.ai_referer,
            http_timeout_seconds=source.automation_http_timeout_seconds or None,
            batch_size=source.automation_batch_size,
            claim_before_execute=source.automation_claim_before_execute,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()

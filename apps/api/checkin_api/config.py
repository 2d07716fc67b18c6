"""Application configuration utilities."""
from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
]

_TRUTHY = {"1", "true", "yes", "on"}


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from the process environment."""

    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    allow_public_access: bool = False
    default_redirect_url: Optional[str] = None
    otp_retry_after_seconds: int = Field(default=60, ge=0)
    openai_api_key: Optional[str] = None
    assistant_id: Optional[str] = None
    assistant_max_polls: int = Field(default=20, ge=1)
    assistant_poll_interval: float = Field(default=1.2, ge=0)
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    @property
    def auth_key(self) -> Optional[str]:
        """Key sent as ``apikey`` on auth calls; the anon key when present."""
        return self.supabase_anon_key or self.supabase_service_role_key


def _env(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def _env_flag(*names: str) -> bool:
    raw = _env(*names)
    return bool(raw) and raw.strip().lower() in _TRUTHY


def _env_list(name: str) -> Optional[List[str]]:
    raw = os.getenv(name)
    if not raw:
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_config() -> AppConfig:
    """Build configuration from environment variables.

    Nothing here raises for missing provider credentials; the provider
    client checks those when it is first constructed.
    """

    values = {
        "supabase_url": _env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        "supabase_service_role_key": _env("SUPABASE_SERVICE_ROLE_KEY"),
        "supabase_anon_key": _env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
        "allow_public_access": _env_flag(
            "ALLOW_PUBLIC_ACCESS", "ALLOW_PUBLIC_CHECKINS", "ALLOW_PUBLIC_PROGRESS"
        ),
        "default_redirect_url": _env("DEFAULT_REDIRECT_URL"),
        "openai_api_key": _env("OPENAI_API_KEY"),
        "assistant_id": _env("ATTUNE_ASSISTANT_ID"),
        "log_level": _env("LOG_LEVEL") or "INFO",
    }
    retry_after = _env("OTP_RETRY_AFTER_SECONDS")
    if retry_after:
        values["otp_retry_after_seconds"] = int(retry_after)
    max_polls = _env("ASSISTANT_MAX_POLLS")
    if max_polls:
        values["assistant_max_polls"] = int(max_polls)
    poll_interval = _env("ASSISTANT_POLL_INTERVAL")
    if poll_interval:
        values["assistant_poll_interval"] = float(poll_interval)
    origins = _env_list("CORS_ORIGINS")
    if origins:
        values["cors_origins"] = origins
    return AppConfig(**values)


@lru_cache
def get_config() -> AppConfig:
    return load_config()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a single stdout format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )

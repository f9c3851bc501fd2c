"""Settings loaded from environment variables."""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field
from typing import Optional


logger = logging.getLogger(__name__)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0

    session_secret: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    session_max_age: int = 14 * 24 * 60 * 60

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 30.0

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def ai_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())


def _session_secret() -> str:
    secret = os.getenv("SESSION_SECRET")
    if secret and secret.strip():
        return secret
    logger.warning("SESSION_SECRET is not set; using a random per-process key, sessions will not survive a restart")
    return secrets.token_urlsafe(32)


def get_settings() -> Settings:
    return Settings(
        host=_env("HOST", "0.0.0.0") or "0.0.0.0",
        port=_env_int("PORT", 8000),
        redis_host=_env("REDIS_HOST", "redis"),
        redis_port=_env_int("REDIS_PORT", 6379),
        redis_db=_env_int("REDIS_DB", 0),
        session_secret=_session_secret(),
        session_max_age=_env_int("SESSION_MAX_AGE", 14 * 24 * 60 * 60),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        openai_model=_env("OPENAI_MODEL", "gpt-4o") or "gpt-4o",
        openai_timeout_seconds=_env_float("OPENAI_TIMEOUT_SECONDS", 30.0),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
    )

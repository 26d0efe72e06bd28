"""
Runtime configuration for Task Tamer.

All values come from environment variables so the same build runs in
development and production. Settings are read once and cached; tests
build their own Settings instances instead of touching the cache.

Variables:
- TASKTAMER_AI_API_URL: chat-completions endpoint (checked at request time)
- TASKTAMER_AI_API_KEY: bearer token, optional
- TASKTAMER_AI_MODEL: default model identifier
- TASKTAMER_AI_TIMEOUT: transport timeout in seconds
- TASKTAMER_MOTIVATION_CACHE_SIZE: max cached motivation lines per conversation
- TASKTAMER_MOTIVATION_CACHE_TTL: seconds before a cached line expires
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from tasktamer.lib.exceptions import ConfigurationError

DEFAULT_MODEL = "gpt-oss-120b"


def _int_env(name: str, default: int) -> int:
    """Read a positive integer environment variable."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    ai_api_url: str | None = None
    ai_api_key: str | None = None
    ai_model: str = DEFAULT_MODEL
    ai_timeout: int = 60
    motivation_cache_size: int = 512
    motivation_cache_ttl: int = 86400

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        return cls(
            ai_api_url=os.getenv("TASKTAMER_AI_API_URL") or None,
            ai_api_key=os.getenv("TASKTAMER_AI_API_KEY") or None,
            ai_model=os.getenv("TASKTAMER_AI_MODEL") or DEFAULT_MODEL,
            ai_timeout=_int_env("TASKTAMER_AI_TIMEOUT", 60),
            motivation_cache_size=_int_env("TASKTAMER_MOTIVATION_CACHE_SIZE", 512),
            motivation_cache_ttl=_int_env("TASKTAMER_MOTIVATION_CACHE_TTL", 86400),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings singleton."""
    return Settings.from_env()

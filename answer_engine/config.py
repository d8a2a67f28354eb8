"""Application settings loaded from environment variables.

Built once at startup and passed to the components that need it.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Keep all credentials and config centralized here."""

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    DATABASE_URL: str = "sqlite:///./answer_engine.db"
    CORS_ORIGINS: str = "*"

    # Google Gemini
    GOOGLE_GEMINI_API_KEY: Optional[str] = None
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1"
    PRIMARY_MODEL: str = "gemini-2.5-flash"
    FALLBACK_MODEL: str = "gemini-2.0-flash-lite"
    USE_FALLBACK_WHEN_QUOTA_EXCEEDED: bool = True
    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_MAX_TOKENS: int = 2048

    # Google Custom Search
    GOOGLE_CSE_API_KEY: Optional[str] = None
    GOOGLE_CSE_CX: Optional[str] = None
    SEARCH_API_URL: str = "https://www.googleapis.com/customsearch/v1"
    SEARCH_RESULT_LIMIT: int = 5

    # /api/answer admission control
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_TRACKED_KEYS: int = 10000

    UPSTREAM_TIMEOUT_SECONDS: float = 60.0
    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = 10.0

    # Placeholder identity until real authentication exists
    DEFAULT_OWNER_ID: int = 1

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            APP_ENV=os.getenv("APP_ENV", defaults.APP_ENV),
            LOG_LEVEL=os.getenv("LOG_LEVEL", defaults.LOG_LEVEL),
            DATABASE_URL=os.getenv("DATABASE_URL", defaults.DATABASE_URL),
            CORS_ORIGINS=os.getenv("CORS_ORIGINS", defaults.CORS_ORIGINS),
            GOOGLE_GEMINI_API_KEY=os.getenv("GOOGLE_GEMINI_API_KEY") or None,
            GEMINI_API_BASE=os.getenv("GEMINI_API_BASE", defaults.GEMINI_API_BASE),
            PRIMARY_MODEL=os.getenv("PRIMARY_MODEL", defaults.PRIMARY_MODEL),
            FALLBACK_MODEL=os.getenv("FALLBACK_MODEL", defaults.FALLBACK_MODEL),
            USE_FALLBACK_WHEN_QUOTA_EXCEEDED=_env_bool(
                "USE_FALLBACK_WHEN_QUOTA_EXCEEDED", defaults.USE_FALLBACK_WHEN_QUOTA_EXCEEDED
            ),
            GEMINI_TEMPERATURE=float(os.getenv("GEMINI_TEMPERATURE", str(defaults.GEMINI_TEMPERATURE))),
            GEMINI_MAX_TOKENS=int(os.getenv("GEMINI_MAX_TOKENS", str(defaults.GEMINI_MAX_TOKENS))),
            GOOGLE_CSE_API_KEY=os.getenv("GOOGLE_CSE_API_KEY") or None,
            GOOGLE_CSE_CX=os.getenv("GOOGLE_CSE_CX") or None,
            SEARCH_API_URL=os.getenv("SEARCH_API_URL", defaults.SEARCH_API_URL),
            SEARCH_RESULT_LIMIT=int(os.getenv("SEARCH_RESULT_LIMIT", str(defaults.SEARCH_RESULT_LIMIT))),
            RATE_LIMIT_MAX_REQUESTS=int(
                os.getenv("RATE_LIMIT_MAX_REQUESTS", str(defaults.RATE_LIMIT_MAX_REQUESTS))
            ),
            RATE_LIMIT_WINDOW_SECONDS=int(
                os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(defaults.RATE_LIMIT_WINDOW_SECONDS))
            ),
            RATE_LIMIT_MAX_TRACKED_KEYS=int(
                os.getenv("RATE_LIMIT_MAX_TRACKED_KEYS", str(defaults.RATE_LIMIT_MAX_TRACKED_KEYS))
            ),
            UPSTREAM_TIMEOUT_SECONDS=float(
                os.getenv("UPSTREAM_TIMEOUT_SECONDS", str(defaults.UPSTREAM_TIMEOUT_SECONDS))
            ),
            UPSTREAM_CONNECT_TIMEOUT_SECONDS=float(
                os.getenv(
                    "UPSTREAM_CONNECT_TIMEOUT_SECONDS", str(defaults.UPSTREAM_CONNECT_TIMEOUT_SECONDS)
                )
            ),
            DEFAULT_OWNER_ID=int(os.getenv("DEFAULT_OWNER_ID", str(defaults.DEFAULT_OWNER_ID))),
        )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

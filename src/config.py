"""
Cogno Timeline — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Cogno REST backend
    COGNO_API_BASE: str = "http://localhost:8080/api/timeline"
    COGNO_SESSION_COOKIE: str = ""   # value of the backend's JSESSIONID
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Timeline window
    TIMEZONE: str = "Asia/Seoul"
    DAY_START_HOUR: int = 0
    DAY_END_HOUR: int = 24

    LOG_LEVEL: str = "INFO"

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("DAY_START_HOUR", "DAY_END_HOUR", mode="before")
    @classmethod
    def parse_hour(cls, v: str | int) -> int:
        return int(v)

    @field_validator("COGNO_API_BASE")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_day_window(self) -> "Settings":
        if not 0 <= self.DAY_START_HOUR < self.DAY_END_HOUR <= 24:
            raise ValueError(
                f"Invalid day window {self.DAY_START_HOUR}-{self.DAY_END_HOUR}"
            )
        return self


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        COGNO_API_BASE=os.getenv("COGNO_API_BASE", "http://localhost:8080/api/timeline"),
        COGNO_SESSION_COOKIE=os.getenv("COGNO_SESSION_COOKIE", ""),
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "5"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Seoul"),
        DAY_START_HOUR=os.getenv("DAY_START_HOUR", "0"),
        DAY_END_HOUR=os.getenv("DAY_END_HOUR", "24"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()

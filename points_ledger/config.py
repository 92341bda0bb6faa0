"""
config.py - Application settings

Settings are read from POINTS_-prefixed environment variables and an optional
.env file. The library never configures logging on import; applications call
configure_logging() (PointsController.from_settings does so with LOG_LEVEL).
"""

from __future__ import annotations
from datetime import tzinfo
from typing import List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="POINTS_", env_file=".env", extra="ignore")

    # "memory" keeps the document in process; "file" persists it to STORE_PATH.
    STORE_BACKEND: Literal["memory", "file"] = "memory"
    STORE_PATH: str = "points-bonus.json"

    # IANA zone name used for "today"; empty means the system local zone.
    TIMEZONE: str = ""

    SIGN_IN_CHOICES: List[int] = [-5, 0, 5, 10]

    # Catalog sources. Each is optional and loads independently.
    TASKS_PATH: str = "tasks.json"
    REWARDS_PATH: str = "rewards.json"
    QUESTIONS_PATH: str = "questions.json"

    LOG_LEVEL: str = "INFO"

    @field_validator("SIGN_IN_CHOICES")
    @classmethod
    def _choices_not_empty(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("SIGN_IN_CHOICES must contain at least one value")
        return value

    @field_validator("TIMEZONE")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        value = value.strip()
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown time zone: {value!r}") from e
        return value

    def tzinfo(self) -> Optional[tzinfo]:
        """Resolved local zone, or None for the system zone."""
        return ZoneInfo(self.TIMEZONE) if self.TIMEZONE else None


def configure_logging(level: str = "INFO") -> None:
    """Basic console logging for applications embedding the ledger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

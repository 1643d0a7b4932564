"""
Idea Lab – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from dataclasses import dataclass
from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──
    APP_NAME: str = "Idea Lab"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    APP_URL: str = "http://localhost:8000"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./idealab.db"

    # ── JWT ──
    SECRET_KEY: str = "change-me-to-a-random-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ── Google OAuth ──
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    # ── GitHub OAuth ──
    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""

    # ── Realtime events (empty → in-process broadcaster) ──
    REDIS_URL: str = ""

    # ── Brainwriting ──
    BRAINWRITING_LOCK_DURATION_MINUTES: int = 10
    BRAINWRITING_MAX_PARTICIPANTS: int = 6
    BRAINWRITING_ROW_BUDGET: int = 6
    BRAINWRITING_COLUMNS: int = 3

    # ── AI worker callback ──
    AI_WORKER_TOKEN: str = ""


settings = Settings()


@dataclass(frozen=True)
class BrainwritingRules:
    """Grid geometry and turn limits shared by the lock, turn and join logic."""

    max_participants: int = 6
    row_budget: int = 6
    columns: int = 3
    lock_ttl: timedelta = timedelta(minutes=10)


def brainwriting_rules() -> BrainwritingRules:
    """Build the rule set from the current settings."""
    return BrainwritingRules(
        max_participants=settings.BRAINWRITING_MAX_PARTICIPANTS,
        row_budget=settings.BRAINWRITING_ROW_BUDGET,
        columns=settings.BRAINWRITING_COLUMNS,
        lock_ttl=timedelta(minutes=settings.BRAINWRITING_LOCK_DURATION_MINUTES),
    )

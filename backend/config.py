from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Learner State"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'learner_state.db'}"
    supported_languages: tuple[str, ...] = ("ro", "ko")
    default_easiness: float = 2.5
    min_easiness: float = 1.3
    unlock_threshold: int = 3  # encounters before a definition unlocks
    focus_word_limit: int = 20
    default_list_limit: int = 100
    due_items_limit: int = 20
    storage_retry_attempts: int = 3
    cors_origins: tuple[str, ...] = ("http://localhost:3000", "http://localhost:5173")
    debug: bool = False

    model_config = {"env_prefix": "LEARNER_STATE_", "env_file": ".env"}


settings = Settings()

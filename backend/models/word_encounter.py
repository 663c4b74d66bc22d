from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.config import utcnow
from backend.models.base import Base, TimestampMixin


class WordEncounter(Base, TimestampMixin):
    """How often a learner has met a word, and whether its definition is unlocked."""

    __tablename__ = "word_encounters"
    __table_args__ = (UniqueConstraint("user_id", "word", "language", name="uq_word_encounters_key"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    word: Mapped[str] = mapped_column(String(255), nullable=False)  # lower-cased
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    encounter_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    definition_unlocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    self_discovered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    looked_up: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)  # Sentence the word was last seen in
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)  # Content item ID
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

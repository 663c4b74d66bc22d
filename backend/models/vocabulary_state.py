from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class VocabularyState(Base, TimestampMixin):
    """Whether a learner can recognize and/or produce a word."""

    __tablename__ = "vocabulary_states"
    __table_args__ = (UniqueConstraint("user_id", "word", "language", name="uq_vocabulary_states_key"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    word: Mapped[str] = mapped_column(String(255), nullable=False)  # lower-cased
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    can_recognize: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_produce: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recognition_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    production_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_recognized_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_produced_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

"""Harvested error scheduled for SM-2 review."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import settings, utcnow
from backend.models.base import Base, TimestampMixin


class ReviewItem(Base, TimestampMixin):
    """A harvested error with its SM-2 scheduling state."""

    __tablename__ = "review_items"
    __table_args__ = (
        Index("ix_review_items_user_due", "user_id", "language", "due_at"),
        Index("ix_review_items_user_seen", "user_id", "last_seen_at"),
    )

    item_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    error_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="vocabulary"
    )  # vocabulary, comprehension, grammar, production, beautiful_failure
    original: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    user_guess: Mapped[str | None] = mapped_column(Text, nullable=True)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    easiness_factor: Mapped[float] = mapped_column(
        Float, nullable=False, default=settings.default_easiness
    )
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetition_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    occurrences: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # times the error was harvested
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    review_logs: Mapped[list["ReviewLog"]] = relationship(back_populates="item")  # type: ignore[name-defined] # noqa: F821

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base


class ReviewLog(Base):
    __tablename__ = "review_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(ForeignKey("review_items.item_id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quality: Mapped[int] = mapped_column(Integer, nullable=False)  # 0-5, below 3 is a failed recall
    easiness_before: Mapped[float] = mapped_column(Float, nullable=False)
    easiness_after: Mapped[float] = mapped_column(Float, nullable=False)
    interval_before: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_after: Mapped[int] = mapped_column(Integer, nullable=False)
    repetition_before: Mapped[int] = mapped_column(Integer, nullable=False)
    repetition_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    item: Mapped["ReviewItem"] = relationship(back_populates="review_logs")  # type: ignore[name-defined] # noqa: F821

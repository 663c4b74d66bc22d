"""Review scheduler: persists SM-2 state for harvested errors.

Every mutation of a review item runs under the item's lock, reading the
row, applying the SM-2 update and committing before the lock is released,
so concurrent reviews of one item never lose an update.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import Select, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.database import count_where, storage_errors
from backend.exceptions import DuplicateItemError, InvalidInputError, ReviewItemNotFoundError
from backend.locks import KeyedLock, review_locks
from backend.models.review_item import ReviewItem
from backend.models.review_log import ReviewLog
from backend.srs.sm2 import SM2, ItemState, validate_quality
from backend.validation import require_text, validate_language, validate_limit, validate_user_id

logger = logging.getLogger(__name__)

ERROR_TYPES = ("vocabulary", "comprehension", "grammar", "production", "beautiful_failure")

# Intervals above this many days count as mastered
MASTERED_INTERVAL_DAYS = 21


@dataclass
class ErrorStats:
    """Harvested errors broken down by type and language."""

    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_language: dict[str, int] = field(default_factory=dict)


@dataclass
class ReviewStats:
    """Aggregate scheduling statistics for a learner."""

    due_count: int = 0
    total_count: int = 0
    average_interval: float = 0.0
    due_this_week: int = 0
    mastered: int = 0
    learning: int = 0
    new_items: int = 0


class ReviewScheduler:
    """Spaced repetition scheduling for harvested errors."""

    def __init__(self, sm2: SM2 | None = None, locks: KeyedLock | None = None) -> None:
        self.sm2 = sm2 or SM2(
            default_easiness=settings.default_easiness,
            min_easiness=settings.min_easiness,
        )
        self.locks = locks or review_locks

    def _locked(self, item_id: str) -> Select[tuple[ReviewItem]]:
        # populate_existing: another session may have committed since this one loaded the row
        return (
            select(ReviewItem)
            .where(ReviewItem.item_id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    async def record_new_item(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str | None,
        language: str,
        original: str,
        correct_answer: str,
        context: str | None = None,
        *,
        error_type: str = "vocabulary",
        user_guess: str | None = None,
        now: datetime | None = None,
    ) -> ReviewItem:
        """Start scheduling a newly harvested error.

        The item is due immediately with first-review defaults.

        Args:
            db: Database session.
            user_id: Owner of the item.
            item_id: Caller-chosen identity, or None to generate one.
            language: Language code of the item.
            original: What the learner got wrong.
            correct_answer: The correct form.
            context: Optional sentence the error appeared in.
            error_type: Category of the error.
            user_guess: Optional answer the learner gave.
            now: Creation time (defaults to utcnow).

        Returns:
            The persisted ReviewItem.

        Raises:
            DuplicateItemError: If an item with item_id already exists.
            InvalidInputError: If a required field is blank or unknown.
        """
        user_id = validate_user_id(user_id)
        language = validate_language(language)
        original = require_text(original, "original")
        correct_answer = require_text(correct_answer, "correct_answer")
        if error_type not in ERROR_TYPES:
            raise InvalidInputError(f"Unknown error type {error_type!r}")
        item_id = item_id.strip() if item_id else uuid.uuid4().hex
        state = self.sm2.initial_state(now or utcnow())

        async with self.locks.hold(item_id), storage_errors(db, "record_new_item"):
            if await db.get(ReviewItem, item_id) is not None:
                raise DuplicateItemError(item_id)

            item = ReviewItem(
                item_id=item_id,
                user_id=user_id,
                language=language,
                error_type=error_type,
                original=original,
                correct_answer=correct_answer,
                user_guess=user_guess or None,
                context=context or None,
                easiness_factor=state.easiness,
                interval_days=state.interval_days,
                repetition_count=state.repetitions,
                due_at=state.due,
                last_reviewed_at=None,
                occurrences=1,
                last_seen_at=state.due,
            )
            db.add(item)
            await db.commit()

        logger.info("Scheduled new %s item %s for user %s", language, item_id, user_id)
        return item

    async def get_item(self, db: AsyncSession, item_id: str) -> ReviewItem:
        """Return a review item by ID or raise ReviewItemNotFoundError."""
        async with storage_errors(db, "get_item"):
            item = await db.get(ReviewItem, item_id)
        if item is None:
            raise ReviewItemNotFoundError(item_id)
        return item

    async def record_occurrence(
        self, db: AsyncSession, item_id: str, *, now: datetime | None = None
    ) -> ReviewItem:
        """Count one more harvest of an existing error.

        Scheduling state is left as it is; only the occurrence counter and
        last-seen time change.

        Raises:
            ReviewItemNotFoundError: If the item does not exist.
        """
        seen_at = now or utcnow()

        async with self.locks.hold(item_id), storage_errors(db, "record_occurrence"):
            item = (await db.execute(self._locked(item_id))).scalar_one_or_none()
            if item is None:
                raise ReviewItemNotFoundError(item_id)
            item.occurrences += 1
            item.last_seen_at = max(seen_at, item.last_seen_at)
            await db.commit()

        logger.info("Item %s harvested again (%d occurrences)", item_id, item.occurrences)
        return item

    async def list_items(
        self,
        db: AsyncSession,
        user_id: str,
        language: str | None = None,
        *,
        error_type: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ReviewItem]:
        """Return a learner's harvested errors, most recently seen first."""
        user_id = validate_user_id(user_id)
        limit = validate_limit(limit)
        if offset < 0:
            raise InvalidInputError(f"Offset must not be negative, got {offset}")
        if error_type is not None and error_type not in ERROR_TYPES:
            raise InvalidInputError(f"Unknown error type {error_type!r}")

        conditions = [ReviewItem.user_id == user_id]
        if language:
            conditions.append(ReviewItem.language == language)
        if error_type:
            conditions.append(ReviewItem.error_type == error_type)

        stmt = (
            select(ReviewItem)
            .where(and_(*conditions))
            .order_by(ReviewItem.last_seen_at.desc(), ReviewItem.item_id.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with storage_errors(db, "list_items"):
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def get_due_items(
        self,
        db: AsyncSession,
        user_id: str,
        language: str | None = None,
        *,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[ReviewItem]:
        """Return items due at or before now, oldest due first.

        Ties on due time are broken by item ID so the order is stable.
        """
        now = now or utcnow()
        user_id = validate_user_id(user_id)
        limit = validate_limit(limit)
        conditions = [ReviewItem.user_id == user_id, ReviewItem.due_at <= now]
        if language:
            conditions.append(ReviewItem.language == language)

        stmt = (
            select(ReviewItem)
            .where(and_(*conditions))
            .order_by(ReviewItem.due_at.asc(), ReviewItem.item_id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with storage_errors(db, "get_due_items"):
            result = await db.execute(stmt)
            items = list(result.scalars().all())

        logger.debug("User %s has %d due items (language=%s)", user_id, len(items), language)
        return items

    async def process_review(
        self,
        db: AsyncSession,
        item_id: str,
        quality: int,
        *,
        now: datetime | None = None,
    ) -> ReviewItem:
        """Apply an SM-2 review to an item and reschedule it.

        Quality is validated before anything is read, so an invalid rating
        leaves the item untouched.

        Raises:
            InvalidQualityError: If quality is not an integer in [0, 5].
            ReviewItemNotFoundError: If the item does not exist.
        """
        quality = validate_quality(quality)

        async with self.locks.hold(item_id), storage_errors(db, "process_review"):
            item = (await db.execute(self._locked(item_id))).scalar_one_or_none()
            if item is None:
                raise ReviewItemNotFoundError(item_id)

            review_time = now or utcnow()
            # due_at must never precede the latest review
            if item.last_reviewed_at is not None and review_time < item.last_reviewed_at:
                review_time = item.last_reviewed_at

            before = ItemState(
                easiness=item.easiness_factor,
                interval_days=item.interval_days,
                repetitions=item.repetition_count,
                due=item.due_at,
                last_reviewed=item.last_reviewed_at,
            )
            result = self.sm2.review(before, quality, review_time=review_time)
            after = result.new_state

            item.easiness_factor = after.easiness
            item.interval_days = after.interval_days
            item.repetition_count = after.repetitions
            item.due_at = after.due
            item.last_reviewed_at = after.last_reviewed

            db.add(
                ReviewLog(
                    item_id=item.item_id,
                    user_id=item.user_id,
                    quality=quality,
                    easiness_before=before.easiness,
                    easiness_after=after.easiness,
                    interval_before=before.interval_days,
                    interval_after=after.interval_days,
                    repetition_before=before.repetitions,
                    repetition_after=after.repetitions,
                    reviewed_at=review_time,
                )
            )
            await db.commit()

        logger.info(
            "Reviewed item %s: q=%d %s, reps=%d, interval=%dd, EF=%.2f",
            item_id,
            quality,
            "pass" if result.passed else "fail",
            after.repetitions,
            after.interval_days,
            after.easiness,
        )
        return item

    async def get_history(self, db: AsyncSession, item_id: str) -> list[ReviewLog]:
        """Return the review log of an item, oldest first."""
        await self.get_item(db, item_id)
        stmt = (
            select(ReviewLog)
            .where(ReviewLog.item_id == item_id)
            .order_by(ReviewLog.reviewed_at.asc(), ReviewLog.id.asc())
        )
        async with storage_errors(db, "get_history"):
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def get_stats(
        self,
        db: AsyncSession,
        user_id: str,
        language: str | None = None,
        *,
        now: datetime | None = None,
    ) -> ReviewStats:
        """Aggregate scheduling statistics, computed from the item rows."""
        now = now or utcnow()
        week_ahead = now + timedelta(days=7)
        user_id = validate_user_id(user_id)
        conditions = [ReviewItem.user_id == user_id]
        if language:
            conditions.append(ReviewItem.language == language)

        stmt = select(
            func.count(ReviewItem.item_id),
            count_where(ReviewItem.due_at <= now),
            func.avg(ReviewItem.interval_days),
            count_where(ReviewItem.due_at <= week_ahead),
            count_where(ReviewItem.interval_days > MASTERED_INTERVAL_DAYS),
            count_where(ReviewItem.interval_days.between(1, MASTERED_INTERVAL_DAYS)),
            count_where(ReviewItem.last_reviewed_at.is_(None)),
        ).where(and_(*conditions))

        async with storage_errors(db, "get_stats"):
            row = (await db.execute(stmt)).one()

        total, due, average, due_week, mastered, learning, new_items = row
        return ReviewStats(
            due_count=int(due),
            total_count=int(total),
            average_interval=round(float(average), 2) if average is not None else 0.0,
            due_this_week=int(due_week),
            mastered=int(mastered),
            learning=int(learning),
            new_items=int(new_items),
        )

    async def get_error_stats(
        self, db: AsyncSession, user_id: str, language: str | None = None
    ) -> ErrorStats:
        """Count a learner's harvested errors per type and per language."""
        user_id = validate_user_id(user_id)
        conditions = [ReviewItem.user_id == user_id]
        if language:
            conditions.append(ReviewItem.language == language)

        stats = ErrorStats()
        async with storage_errors(db, "get_error_stats"):
            for column, counts in (
                (ReviewItem.error_type, stats.by_type),
                (ReviewItem.language, stats.by_language),
            ):
                stmt = (
                    select(column, func.count(ReviewItem.item_id))
                    .where(and_(*conditions))
                    .group_by(column)
                    .order_by(column)
                )
                for key, count in (await db.execute(stmt)).all():
                    counts[key] = int(count)

        stats.total = sum(stats.by_type.values())
        return stats

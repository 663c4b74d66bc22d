"""Gap analyzer: recognition vs. production of vocabulary.

Learners typically recognize far more words than they can produce. Each
word's row records whether either has been observed; the aggregate gap
points practice at recognized-but-unproduced words, most-exposed first.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import ColumnElement, Select, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.database import count_where, storage_errors
from backend.locks import KeyedLock, vocabulary_locks
from backend.models.vocabulary_state import VocabularyState
from backend.srs.sm2 import round_half_up
from backend.validation import normalize_word, validate_language, validate_limit, validate_user_id

logger = logging.getLogger(__name__)

RECOGNITION = "recognition"
PRODUCTION = "production"


@dataclass
class ProductionGap:
    """How much of the recognized vocabulary the learner cannot yet produce."""

    recognize_only_count: int = 0
    produce_only_count: int = 0
    both_count: int = 0
    gap_percentage: int = 0
    focus_words: list[VocabularyState] = field(default_factory=list)


@dataclass
class VocabularyStats:
    total_words: int = 0
    recognized: int = 0
    produced: int = 0
    gap_words: int = 0


def gap_percentage(recognize_only: int, both: int) -> int:
    """Percentage of recognized words that are recognize-only, 0 if none recognized."""
    recognized = recognize_only + both
    if recognized == 0:
        return 0
    return round_half_up(recognize_only / recognized * 100)


class GapAnalyzer:
    """Tracks recognition and production events per word."""

    def __init__(self, focus_limit: int | None = None, locks: KeyedLock | None = None) -> None:
        self.focus_limit = focus_limit if focus_limit is not None else settings.focus_word_limit
        self.locks = locks or vocabulary_locks

    async def record_recognition(
        self,
        db: AsyncSession,
        user_id: str,
        word: str,
        language: str,
        *,
        now: datetime | None = None,
    ) -> VocabularyState:
        """Record that the learner recognized a word."""
        return await self._record(db, user_id, word, language, RECOGNITION, now)

    async def record_production(
        self,
        db: AsyncSession,
        user_id: str,
        word: str,
        language: str,
        *,
        now: datetime | None = None,
    ) -> VocabularyState:
        """Record that the learner produced a word."""
        return await self._record(db, user_id, word, language, PRODUCTION, now)

    async def _record(
        self,
        db: AsyncSession,
        user_id: str,
        word: str,
        language: str,
        kind: str,
        now: datetime | None,
    ) -> VocabularyState:
        user_id = validate_user_id(user_id)
        word = normalize_word(word)
        language = validate_language(language)
        now = now or utcnow()
        key = (user_id, word, language)

        stmt = (
            select(VocabularyState)
            .where(
                and_(
                    VocabularyState.user_id == user_id,
                    VocabularyState.word == word,
                    VocabularyState.language == language,
                )
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )

        async with self.locks.hold(key), storage_errors(db, f"record_{kind}"):
            state = (await db.execute(stmt)).scalar_one_or_none()
            if state is None:
                state = VocabularyState(
                    user_id=user_id,
                    word=word,
                    language=language,
                    can_recognize=False,
                    can_produce=False,
                    recognition_count=0,
                    production_count=0,
                )
                db.add(state)

            if kind == RECOGNITION:
                state.can_recognize = True
                state.recognition_count += 1
                state.last_recognized_at = now
            else:
                state.can_produce = True
                state.production_count += 1
                state.last_produced_at = now
            await db.commit()

        logger.debug("Recorded %s of %r (%s) for user %s", kind, word, language, user_id)
        return state

    def _filtered(self, user_id: str, language: str | None) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [VocabularyState.user_id == validate_user_id(user_id)]
        if language:
            conditions.append(VocabularyState.language == language)
        return conditions

    def _focus_query(self, user_id: str, language: str | None) -> Select[tuple[VocabularyState]]:
        return (
            select(VocabularyState)
            .where(
                and_(
                    *self._filtered(user_id, language),
                    VocabularyState.can_recognize.is_(True),
                    VocabularyState.can_produce.is_(False),
                )
            )
            .order_by(VocabularyState.recognition_count.desc(), VocabularyState.word.asc())
            .limit(self.focus_limit)
        )

    async def get_production_gap(
        self, db: AsyncSession, user_id: str, language: str | None = None
    ) -> ProductionGap:
        """Summarize the recognition/production gap and the words to practice."""
        recognize = VocabularyState.can_recognize.is_(True)
        produce = VocabularyState.can_produce.is_(True)
        counts_stmt = select(
            count_where(and_(recognize, VocabularyState.can_produce.is_(False))),
            count_where(and_(produce, VocabularyState.can_recognize.is_(False))),
            count_where(and_(recognize, produce)),
        ).where(and_(*self._filtered(user_id, language)))

        async with storage_errors(db, "get_production_gap"):
            recognize_only, produce_only, both = (await db.execute(counts_stmt)).one()
            focus = list((await db.execute(self._focus_query(user_id, language))).scalars().all())

        gap = ProductionGap(
            recognize_only_count=int(recognize_only),
            produce_only_count=int(produce_only),
            both_count=int(both),
            gap_percentage=gap_percentage(int(recognize_only), int(both)),
            focus_words=focus,
        )
        logger.debug(
            "Production gap for user %s: %d%% (%d recognize-only, %d both)",
            user_id,
            gap.gap_percentage,
            gap.recognize_only_count,
            gap.both_count,
        )
        return gap

    async def get_stats(
        self, db: AsyncSession, user_id: str, language: str | None = None
    ) -> VocabularyStats:
        """Word counts by recognition/production status."""
        stmt = select(
            func.count(VocabularyState.id),
            count_where(VocabularyState.can_recognize.is_(True)),
            count_where(VocabularyState.can_produce.is_(True)),
            count_where(
                and_(VocabularyState.can_recognize.is_(True), VocabularyState.can_produce.is_(False))
            ),
        ).where(and_(*self._filtered(user_id, language)))

        async with storage_errors(db, "vocabulary_stats"):
            total, recognized, produced, gap = (await db.execute(stmt)).one()

        return VocabularyStats(
            total_words=int(total),
            recognized=int(recognized),
            produced=int(produced),
            gap_words=int(gap),
        )

    async def list_states(
        self,
        db: AsyncSession,
        user_id: str,
        language: str | None = None,
        *,
        limit: int | None = None,
    ) -> list[VocabularyState]:
        """Return vocabulary rows, most recently practiced first."""
        limit = validate_limit(limit)
        stmt = (
            select(VocabularyState)
            .where(and_(*self._filtered(user_id, language)))
            .order_by(
                VocabularyState.last_recognized_at.desc().nulls_last(),
                VocabularyState.last_produced_at.desc().nulls_last(),
                VocabularyState.word.asc(),
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with storage_errors(db, "list_states"):
            result = await db.execute(stmt)
            return list(result.scalars().all())

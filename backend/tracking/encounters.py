"""Encounter unlocker: progressive definition unlocking.

A word's definition stays hidden until the learner has met it a few times
(``settings.unlock_threshold``), nudging them to infer meaning from context.
An explicit lookup or a self-discovery unlocks it immediately. Once a
definition is unlocked it stays unlocked.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import settings, utcnow
from backend.database import count_where, storage_errors
from backend.exceptions import EncounterNotFoundError
from backend.locks import KeyedLock, encounter_locks
from backend.models.word_encounter import WordEncounter
from backend.validation import normalize_word, validate_language, validate_limit, validate_user_id

logger = logging.getLogger(__name__)


@dataclass
class EncounterStats:
    """Unlock progress across a learner's encountered words."""

    total: int = 0
    unlocked: int = 0
    self_discovered: int = 0
    looked_up: int = 0
    pending_unlock: int = 0


class EncounterUnlocker:
    """Counts word exposures and decides when definitions unlock."""

    def __init__(self, threshold: int | None = None, locks: KeyedLock | None = None) -> None:
        self.threshold = threshold if threshold is not None else settings.unlock_threshold
        self.locks = locks or encounter_locks

    def _select(self, user_id: str, word: str, language: str) -> Select[tuple[WordEncounter]]:
        return (
            select(WordEncounter)
            .where(
                and_(
                    WordEncounter.user_id == user_id,
                    WordEncounter.word == word,
                    WordEncounter.language == language,
                )
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    async def record_encounter(
        self,
        db: AsyncSession,
        user_id: str,
        word: str,
        language: str,
        context: str | None = None,
        source_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> WordEncounter:
        """Record one exposure to a word, unlocking its definition at the threshold.

        Args:
            db: Database session.
            user_id: The learner.
            word: The word as it appeared (normalized before storage).
            language: Language code.
            context: Sentence the word appeared in. Replaces the stored
                context only when non-empty.
            source_id: Content item the word appeared in, same rule.
            now: Encounter time (defaults to utcnow).

        Returns:
            The updated WordEncounter.
        """
        user_id = validate_user_id(user_id)
        word = normalize_word(word)
        language = validate_language(language)
        now = now or utcnow()
        key = (user_id, word, language)

        async with self.locks.hold(key), storage_errors(db, "record_encounter"):
            record = (await db.execute(self._select(*key))).scalar_one_or_none()
            if record is None:
                record = WordEncounter(
                    user_id=user_id,
                    word=word,
                    language=language,
                    encounter_count=0,
                    definition_unlocked=False,
                    self_discovered=False,
                    looked_up=False,
                    first_seen_at=now,
                )
                db.add(record)

            record.encounter_count += 1
            record.last_seen_at = now
            if context and context.strip():
                record.context = context.strip()
            if source_id:
                record.source_id = source_id

            newly_unlocked = False
            if not record.definition_unlocked and record.encounter_count >= self.threshold:
                record.definition_unlocked = True
                newly_unlocked = True

            await db.commit()

        if newly_unlocked:
            logger.info(
                "Unlocked definition of %r (%s) for user %s after %d encounters",
                word,
                language,
                user_id,
                record.encounter_count,
            )
        else:
            logger.debug("Encounter %d of %r (%s) for user %s", record.encounter_count, word, language, user_id)
        return record

    async def mark_looked_up(
        self, db: AsyncSession, user_id: str, word: str, language: str
    ) -> WordEncounter:
        """Unlock a word's definition because the learner looked it up.

        Raises:
            EncounterNotFoundError: If the word was never encountered.
        """
        return await self._unlock(db, user_id, word, language, flag="looked_up")

    async def mark_self_discovered(
        self, db: AsyncSession, user_id: str, word: str, language: str
    ) -> WordEncounter:
        """Unlock a word's definition because the learner worked it out.

        Raises:
            EncounterNotFoundError: If the word was never encountered.
        """
        return await self._unlock(db, user_id, word, language, flag="self_discovered")

    async def _unlock(
        self, db: AsyncSession, user_id: str, word: str, language: str, flag: str
    ) -> WordEncounter:
        user_id = validate_user_id(user_id)
        word = normalize_word(word)
        language = validate_language(language)
        key = (user_id, word, language)

        async with self.locks.hold(key), storage_errors(db, flag):
            record = (await db.execute(self._select(*key))).scalar_one_or_none()
            if record is None:
                raise EncounterNotFoundError(word, language)
            setattr(record, flag, True)
            record.definition_unlocked = True
            await db.commit()

        logger.info("Marked %r (%s) %s for user %s", word, language, flag, user_id)
        return record

    async def get_record(
        self, db: AsyncSession, user_id: str, word: str, language: str
    ) -> WordEncounter | None:
        """Return the encounter record for a word, or None if never seen."""
        stmt = select(WordEncounter).where(
            and_(
                WordEncounter.user_id == validate_user_id(user_id),
                WordEncounter.word == normalize_word(word),
                WordEncounter.language == language,
            )
        )
        async with storage_errors(db, "get_record"):
            return (await db.execute(stmt)).scalar_one_or_none()

    async def list_records(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        language: str | None = None,
        unlocked_only: bool = False,
        limit: int | None = None,
    ) -> list[WordEncounter]:
        """Return a learner's encounter records, most recently seen first."""
        limit = validate_limit(limit)
        user_id = validate_user_id(user_id)
        conditions = [WordEncounter.user_id == user_id]
        if language:
            conditions.append(WordEncounter.language == language)
        if unlocked_only:
            conditions.append(WordEncounter.definition_unlocked.is_(True))

        stmt = (
            select(WordEncounter)
            .where(and_(*conditions))
            .order_by(WordEncounter.last_seen_at.desc(), WordEncounter.word.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with storage_errors(db, "list_records"):
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def get_stats(
        self, db: AsyncSession, user_id: str, language: str | None = None
    ) -> EncounterStats:
        """Aggregate unlock progress, computed from the encounter rows."""
        user_id = validate_user_id(user_id)
        conditions = [WordEncounter.user_id == user_id]
        if language:
            conditions.append(WordEncounter.language == language)

        stmt = select(
            func.count(WordEncounter.id),
            count_where(WordEncounter.definition_unlocked.is_(True)),
            count_where(WordEncounter.self_discovered.is_(True)),
            count_where(WordEncounter.looked_up.is_(True)),
            count_where(
                and_(
                    WordEncounter.definition_unlocked.is_(False),
                    WordEncounter.encounter_count < self.threshold,
                )
            ),
        ).where(and_(*conditions))

        async with storage_errors(db, "encounter_stats"):
            total, unlocked, self_discovered, looked_up, pending = (await db.execute(stmt)).one()

        return EncounterStats(
            total=int(total),
            unlocked=int(unlocked),
            self_discovered=int(self_discovered),
            looked_up=int(looked_up),
            pending_unlock=int(pending),
        )

"""Tests for database helpers."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database import count_where, retry_storage, storage_errors
from backend.exceptions import InvalidInputError, StorageFailureError
from backend.models import WordEncounter


@pytest.mark.asyncio
async def test_integrity_error_is_write_conflict() -> None:
    db = AsyncMock()
    with pytest.raises(StorageFailureError, match="Write conflict during insert") as info:
        async with storage_errors(db, "insert"):
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
    assert info.value.status_code == 503
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_operational_error_is_unavailable() -> None:
    db = AsyncMock()
    with pytest.raises(StorageFailureError, match="Storage unavailable during read"):
        async with storage_errors(db, "read"):
            raise OperationalError("SELECT", {}, Exception("database is locked"))
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_domain_errors_pass_through() -> None:
    db = AsyncMock()
    with pytest.raises(InvalidInputError):
        async with storage_errors(db, "read"):
            raise InvalidInputError("bad")
    db.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_retry_storage_reruns_operation() -> None:
    attempts = []

    @retry_storage
    async def flaky() -> str:
        attempts.append(1)
        if len(attempts) < 3:
            raise StorageFailureError("database is locked")
        return "done"

    assert await flaky() == "done"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retry_storage_gives_up() -> None:
    attempts = []

    @retry_storage
    async def broken() -> None:
        attempts.append(1)
        raise StorageFailureError("database is locked")

    with pytest.raises(StorageFailureError):
        await broken()
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retry_storage_ignores_domain_errors() -> None:
    attempts = []

    @retry_storage
    async def invalid() -> None:
        attempts.append(1)
        raise InvalidInputError("bad")

    with pytest.raises(InvalidInputError):
        await invalid()
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_count_where(db: AsyncSession) -> None:
    db.add_all(
        [
            WordEncounter(user_id="u1", word="mama", language="ro", encounter_count=3, definition_unlocked=True),
            WordEncounter(user_id="u1", word="tata", language="ro", encounter_count=1),
        ]
    )
    await db.commit()

    result = await db.execute(
        select(
            count_where(WordEncounter.definition_unlocked.is_(True)),
            count_where(WordEncounter.encounter_count > 5),
        )
    )
    assert tuple(result.one()) == (1, 0)

    empty = await db.execute(
        select(count_where(WordEncounter.definition_unlocked.is_(True))).where(WordEncounter.user_id == "nobody")
    )
    assert empty.scalar_one() == 0

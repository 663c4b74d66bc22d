"""API routes for word encounters and definition unlocking."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.dependencies import get_unlocker, get_user_id, http_error
from backend.api.schemas import (
    EncounterRequest,
    EncounterResponse,
    EncounterStatsResponse,
    UnlockRequest,
)
from backend.config import settings
from backend.database import get_session
from backend.exceptions import LearnerStateError
from backend.tracking.encounters import EncounterUnlocker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/encounters", tags=["encounters"])


@router.post("", response_model=EncounterResponse)
async def record_encounter(
    request: EncounterRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    unlocker: EncounterUnlocker = Depends(get_unlocker),
) -> EncounterResponse:
    """Record that the learner met a word."""
    try:
        record = await unlocker.record_encounter(
            db, user_id, request.word, request.language, request.context, request.source_id
        )
    except LearnerStateError as e:
        raise http_error(e) from e
    return EncounterResponse.model_validate(record)


@router.patch("", response_model=EncounterResponse)
async def unlock(
    request: UnlockRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    unlocker: EncounterUnlocker = Depends(get_unlocker),
) -> EncounterResponse:
    """Unlock a definition because the learner looked it up or worked it out."""
    try:
        if request.action == "lookup":
            record = await unlocker.mark_looked_up(db, user_id, request.word, request.language)
        else:
            record = await unlocker.mark_self_discovered(db, user_id, request.word, request.language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return EncounterResponse.model_validate(record)


@router.get("", response_model=list[EncounterResponse])
async def list_encounters(
    language: str | None = None,
    unlocked_only: bool = False,
    limit: int = Query(default=settings.default_list_limit, ge=1),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    unlocker: EncounterUnlocker = Depends(get_unlocker),
) -> list[EncounterResponse]:
    """List encountered words, most recently seen first."""
    try:
        records = await unlocker.list_records(
            db, user_id, language=language, unlocked_only=unlocked_only, limit=limit
        )
    except LearnerStateError as e:
        raise http_error(e) from e
    return [EncounterResponse.model_validate(r) for r in records]


@router.get("/stats", response_model=EncounterStatsResponse)
async def encounter_stats(
    language: str | None = None,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    unlocker: EncounterUnlocker = Depends(get_unlocker),
) -> EncounterStatsResponse:
    """Unlock progress across encountered words."""
    try:
        stats = await unlocker.get_stats(db, user_id, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return EncounterStatsResponse.model_validate(stats)


@router.get("/{language}/{word}", response_model=EncounterResponse)
async def get_encounter(
    language: str,
    word: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    unlocker: EncounterUnlocker = Depends(get_unlocker),
) -> EncounterResponse:
    """Get the encounter record for one word."""
    try:
        record = await unlocker.get_record(db, user_id, word, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    if record is None:
        raise HTTPException(status_code=404, detail="Word not encountered")
    return EncounterResponse.model_validate(record)

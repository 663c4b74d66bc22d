"""API routes for recognition/production tracking."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.dependencies import get_analyzer, get_user_id, http_error
from backend.api.schemas import (
    ProductionGapResponse,
    VocabularyEventRequest,
    VocabularyStateResponse,
    VocabularyStatsResponse,
)
from backend.config import settings
from backend.database import get_session
from backend.exceptions import LearnerStateError
from backend.tracking.vocabulary import GapAnalyzer

router = APIRouter(prefix="/api/vocabulary", tags=["vocabulary"])


@router.post("", response_model=VocabularyStateResponse)
async def record_event(
    request: VocabularyEventRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    analyzer: GapAnalyzer = Depends(get_analyzer),
) -> VocabularyStateResponse:
    """Record that the learner recognized or produced a word."""
    try:
        if request.type == "recognition":
            state = await analyzer.record_recognition(db, user_id, request.word, request.language)
        else:
            state = await analyzer.record_production(db, user_id, request.word, request.language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return VocabularyStateResponse.model_validate(state)


@router.get("", response_model=list[VocabularyStateResponse])
async def list_vocabulary(
    language: str | None = None,
    limit: int = Query(default=settings.default_list_limit, ge=1),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    analyzer: GapAnalyzer = Depends(get_analyzer),
) -> list[VocabularyStateResponse]:
    """List tracked words, most recently practiced first."""
    try:
        states = await analyzer.list_states(db, user_id, language, limit=limit)
    except LearnerStateError as e:
        raise http_error(e) from e
    return [VocabularyStateResponse.model_validate(s) for s in states]


@router.get("/gap", response_model=ProductionGapResponse)
async def production_gap(
    language: str | None = None,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    analyzer: GapAnalyzer = Depends(get_analyzer),
) -> ProductionGapResponse:
    """Recognition/production gap and the words to focus on."""
    try:
        gap = await analyzer.get_production_gap(db, user_id, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ProductionGapResponse.model_validate(gap)


@router.get("/stats", response_model=VocabularyStatsResponse)
async def vocabulary_stats(
    language: str | None = None,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    analyzer: GapAnalyzer = Depends(get_analyzer),
) -> VocabularyStatsResponse:
    """Word counts by recognition/production status."""
    try:
        stats = await analyzer.get_stats(db, user_id, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return VocabularyStatsResponse.model_validate(stats)

"""API routes for the review scheduler."""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.dependencies import get_scheduler, get_user_id, http_error
from backend.api.schemas import (
    ErrorStatsResponse,
    ReviewItemCreateRequest,
    ReviewItemResponse,
    ReviewLogResponse,
    ReviewRequest,
    ReviewStatsResponse,
)
from backend.config import settings
from backend.database import get_session
from backend.exceptions import LearnerStateError, ReviewItemNotFoundError
from backend.models.review_item import ReviewItem
from backend.srs.scheduler import ReviewScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/srs", tags=["srs"])


@router.post("/items", response_model=ReviewItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    request: ReviewItemCreateRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ReviewItemResponse:
    """Start scheduling a harvested error."""
    try:
        item = await scheduler.record_new_item(
            db,
            user_id,
            request.item_id,
            request.language,
            request.original,
            request.correct_answer,
            request.context,
            error_type=request.error_type,
            user_guess=request.user_guess,
        )
    except LearnerStateError as e:
        raise http_error(e) from e
    return ReviewItemResponse.model_validate(item)


@router.get("/due", response_model=list[ReviewItemResponse])
async def due_items(
    language: str | None = None,
    limit: int = Query(default=settings.due_items_limit, ge=1),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> list[ReviewItemResponse]:
    """List items due for review, oldest due first."""
    try:
        items = await scheduler.get_due_items(db, user_id, language, limit=limit)
    except LearnerStateError as e:
        raise http_error(e) from e
    return [ReviewItemResponse.model_validate(item) for item in items]


@router.post("/review", response_model=ReviewItemResponse)
async def review(
    request: ReviewRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ReviewItemResponse:
    """Apply a 0-5 quality rating to an item and reschedule it."""
    try:
        await _owned_item(db, scheduler, request.item_id, user_id)
        item = await scheduler.process_review(db, request.item_id, request.quality)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ReviewItemResponse.model_validate(item)


@router.get("/stats", response_model=ReviewStatsResponse)
async def stats(
    language: str | None = None,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ReviewStatsResponse:
    """Aggregate scheduling statistics."""
    try:
        review_stats = await scheduler.get_stats(db, user_id, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ReviewStatsResponse.model_validate(review_stats)


@router.get("/items", response_model=list[ReviewItemResponse])
async def list_items(
    language: str | None = None,
    error_type: str | None = None,
    limit: int = Query(default=settings.default_list_limit, ge=1),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> list[ReviewItemResponse]:
    """List harvested errors, most recently seen first."""
    try:
        items = await scheduler.list_items(
            db, user_id, language, error_type=error_type, limit=limit, offset=offset
        )
    except LearnerStateError as e:
        raise http_error(e) from e
    return [ReviewItemResponse.model_validate(item) for item in items]


@router.post("/items/{item_id}/occurrences", response_model=ReviewItemResponse)
async def record_occurrence(
    item_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ReviewItemResponse:
    """Count another harvest of an error the learner already has."""
    try:
        await _owned_item(db, scheduler, item_id, user_id)
        item = await scheduler.record_occurrence(db, item_id)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ReviewItemResponse.model_validate(item)


@router.get("/errors/stats", response_model=ErrorStatsResponse)
async def error_stats(
    language: str | None = None,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ErrorStatsResponse:
    """Harvested errors per type and language."""
    try:
        stats = await scheduler.get_error_stats(db, user_id, language)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ErrorStatsResponse.model_validate(stats)

@router.get("/items/{item_id}", response_model=ReviewItemResponse)
async def get_item(
    item_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> ReviewItemResponse:
    """Get one review item."""
    try:
        item = await _owned_item(db, scheduler, item_id, user_id)
    except LearnerStateError as e:
        raise http_error(e) from e
    return ReviewItemResponse.model_validate(item)


@router.get("/items/{item_id}/history", response_model=list[ReviewLogResponse])
async def item_history(
    item_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> list[ReviewLogResponse]:
    """Get the review history of an item, oldest first."""
    try:
        await _owned_item(db, scheduler, item_id, user_id)
        logs = await scheduler.get_history(db, item_id)
    except LearnerStateError as e:
        raise http_error(e) from e
    return [ReviewLogResponse.model_validate(log) for log in logs]


async def _owned_item(
    db: AsyncSession, scheduler: ReviewScheduler, item_id: str, user_id: str
) -> ReviewItem:
    """Fetch an item, hiding other users' items behind the same 404."""
    item = await scheduler.get_item(db, item_id)
    if item.user_id != user_id:
        logger.warning("User %s requested item %s owned by another user", user_id, item_id)
        raise ReviewItemNotFoundError(item_id)
    return item

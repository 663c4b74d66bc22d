"""Shared FastAPI dependencies for the learner state routers."""

from fastapi import Header, HTTPException, status

from backend.exceptions import LearnerStateError
from backend.srs.scheduler import ReviewScheduler
from backend.tracking.encounters import EncounterUnlocker
from backend.tracking.vocabulary import GapAnalyzer

scheduler = ReviewScheduler()
unlocker = EncounterUnlocker()
analyzer = GapAnalyzer()


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the caller-supplied user ID.

    Authentication happens upstream; the header is trusted as-is.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_scheduler() -> ReviewScheduler:
    return scheduler


def get_unlocker() -> EncounterUnlocker:
    return unlocker


def get_analyzer() -> GapAnalyzer:
    return analyzer


def http_error(e: LearnerStateError) -> HTTPException:
    """Translate a domain error into the HTTPException it maps to."""
    return HTTPException(status_code=e.status_code, detail=e.message)

"""FastAPI application entry point and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from backend.api.dependencies import http_error
from backend.api.encounters_router import router as encounters_router
from backend.api.srs_router import router as srs_router
from backend.api.vocabulary_router import router as vocabulary_router
from backend.config import settings
from backend.database import async_session, engine, storage_errors
from backend.exceptions import StorageFailureError
from backend.models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup and release connections on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Learner state tables ready (%s)", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Review scheduling, definition unlocking and production-gap tracking for language learners",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(srs_router)
app.include_router(encounters_router)
app.include_router(vocabulary_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Check database connectivity, answering 503 when it is unreachable."""
    async with async_session() as session:
        try:
            async with storage_errors(session, "health_check"):
                await session.execute(text("SELECT 1"))
        except StorageFailureError as e:
            raise http_error(e) from e
    return {"status": "ok"}

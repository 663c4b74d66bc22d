"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# --- Review scheduler ---


class ReviewItemCreateRequest(BaseModel):
    """Request to start scheduling a harvested error."""

    item_id: str | None = None  # Generated when omitted
    language: str
    original: str
    correct_answer: str
    context: str | None = None
    error_type: str = "vocabulary"
    user_guess: str | None = None


class ReviewItemResponse(BaseModel):
    """A review item with its scheduling state."""

    model_config = ConfigDict(from_attributes=True)

    item_id: str
    user_id: str
    language: str
    error_type: str
    original: str
    correct_answer: str
    user_guess: str | None
    context: str | None
    easiness_factor: float
    interval_days: int
    repetition_count: int
    due_at: datetime
    last_reviewed_at: datetime | None
    occurrences: int
    last_seen_at: datetime


class ReviewRequest(BaseModel):
    """Request to apply a review to an item.

    Quality is passed through untouched and validated by the scheduler, so
    `true`, `"5"` or `5.0` fail with the same 400 as an out-of-range rating
    instead of being coerced into one.
    """

    item_id: str
    quality: Any = Field(description="Recall quality, an integer from 0 to 5")


class ErrorStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    by_type: dict[str, int]
    by_language: dict[str, int]


class ReviewLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    quality: int
    easiness_before: float
    easiness_after: float
    interval_before: int
    interval_after: int
    repetition_before: int
    repetition_after: int
    reviewed_at: datetime


class ReviewStatsResponse(BaseModel):
    """Scheduling statistics for a learner."""

    model_config = ConfigDict(from_attributes=True)

    due_count: int
    total_count: int
    average_interval: float
    due_this_week: int
    mastered: int  # interval > 21 days
    learning: int  # interval 1-21 days
    new_items: int  # never reviewed


# --- Encounters ---


class EncounterRequest(BaseModel):
    """Request to record one exposure to a word."""

    word: str
    language: str
    context: str | None = None
    source_id: str | None = None


class UnlockRequest(BaseModel):
    """Request to unlock a word's definition explicitly."""

    word: str
    language: str
    action: Literal["lookup", "self-discovered"]


class EncounterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word: str
    language: str
    encounter_count: int
    definition_unlocked: bool
    self_discovered: bool
    looked_up: bool
    context: str | None
    source_id: str | None
    first_seen_at: datetime
    last_seen_at: datetime


class EncounterStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    unlocked: int
    self_discovered: int
    looked_up: int
    pending_unlock: int


# --- Vocabulary ---


class VocabularyEventRequest(BaseModel):
    """Request to record a recognition or production of a word."""

    word: str
    language: str
    type: Literal["recognition", "production"]


class VocabularyStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    word: str
    language: str
    can_recognize: bool
    can_produce: bool
    recognition_count: int
    production_count: int
    last_recognized_at: datetime | None
    last_produced_at: datetime | None


class ProductionGapResponse(BaseModel):
    """Recognition/production gap with the words most worth practicing."""

    model_config = ConfigDict(from_attributes=True)

    recognize_only_count: int
    produce_only_count: int
    both_count: int
    gap_percentage: int
    focus_words: list[VocabularyStateResponse] = Field(default_factory=list)


class VocabularyStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_words: int
    recognized: int
    produced: int
    gap_words: int

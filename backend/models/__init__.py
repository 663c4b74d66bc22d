"""SQLAlchemy ORM models for the learner state database."""

from backend.models.base import Base
from backend.models.review_item import ReviewItem
from backend.models.review_log import ReviewLog
from backend.models.vocabulary_state import VocabularyState
from backend.models.word_encounter import WordEncounter

__all__ = ["Base", "ReviewItem", "ReviewLog", "VocabularyState", "WordEncounter"]

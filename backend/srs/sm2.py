"""SM-2 spaced repetition algorithm.

Reference: P. A. Wozniak, "Optimization of learning" (1990), algorithm SM-2.

Key concepts:
- Quality (q): 0-5 self-assessed recall. Below 3 is a failed recall.
- Easiness factor (EF): multiplier for interval growth, floored at 1.3.
- Repetition count: consecutive successful recalls since the last failure.
- Interval: whole days until the item is due again.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from backend.config import utcnow
from backend.exceptions import InvalidQualityError

DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

# Fixed intervals for the first two successful repetitions
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6


@dataclass
class ItemState:
    """The SM-2 state of a review item."""

    easiness: float
    interval_days: int
    repetitions: int
    due: datetime
    last_reviewed: datetime | None = None


@dataclass
class ReviewResult:
    """The result of applying a review to an item."""

    new_state: ItemState
    quality: int
    passed: bool


def validate_quality(quality: object) -> int:
    """Return quality if it is an int in [0, 5], else raise InvalidQualityError.

    Booleans are rejected even though ``bool`` subclasses ``int``.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQualityError(quality)
    return quality


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


class SM2:
    """SuperMemo-2 scheduler."""

    def __init__(
        self,
        default_easiness: float = DEFAULT_EASINESS,
        min_easiness: float = MIN_EASINESS,
    ) -> None:
        self.default_easiness = default_easiness
        self.min_easiness = min_easiness

    def initial_state(self, now: datetime | None = None) -> ItemState:
        """Create the state of a newly harvested item: due immediately."""
        return ItemState(
            easiness=self.default_easiness,
            interval_days=0,
            repetitions=0,
            due=now or utcnow(),
        )

    def review(
        self,
        state: ItemState,
        quality: int,
        review_time: datetime | None = None,
    ) -> ReviewResult:
        """Apply a quality rating to an item state.

        Args:
            state: Current item state.
            quality: Recall quality, 0 (blackout) to 5 (perfect).
            review_time: When the review happened (defaults to now).

        Returns:
            ReviewResult with the new item state.

        Raises:
            InvalidQualityError: If quality is not an integer in [0, 5].
        """
        quality = validate_quality(quality)
        review_time = review_time or utcnow()
        passed = quality >= PASSING_QUALITY

        if passed:
            repetitions = state.repetitions + 1
            interval = self._next_interval(repetitions, state.interval_days, state.easiness)
        else:
            # Failed recall: start the repetition sequence over
            repetitions = 0
            interval = FIRST_INTERVAL

        new_state = ItemState(
            easiness=self._update_easiness(state.easiness, quality),
            interval_days=interval,
            repetitions=repetitions,
            due=review_time + timedelta(days=interval),
            last_reviewed=review_time,
        )
        return ReviewResult(new_state=new_state, quality=quality, passed=passed)

    def _next_interval(self, repetitions: int, previous_interval: int, easiness: float) -> int:
        """Interval after a successful recall, using the EF held before this review."""
        if repetitions == 1:
            return FIRST_INTERVAL
        if repetitions == 2:
            return SECOND_INTERVAL
        return round_half_up(previous_interval * easiness)

    def _update_easiness(self, easiness: float, quality: int) -> float:
        """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored.

        q=5 adds 0.1, q=4 leaves EF unchanged, q=3 subtracts 0.14 and
        q=0 subtracts 0.8.
        """
        miss = MAX_QUALITY - quality
        new_easiness = easiness + (0.1 - miss * (0.08 + miss * 0.02))
        return max(self.min_easiness, new_easiness)

"""Exception hierarchy for the learner state tracker.

Each error carries the HTTP status a request handler should answer with,
so routers can translate them without a lookup table.
"""


class LearnerStateError(Exception):
    """Base exception for all learner state errors."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        """Initialize exception with message and optional status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(LearnerStateError):
    """Malformed or missing input."""

    def __init__(self, message: str) -> None:
        """Initialize with message and 400 status code."""
        super().__init__(message, status_code=400)


class InvalidQualityError(InvalidInputError):
    """Review quality outside the 0-5 range."""

    def __init__(self, quality: object) -> None:
        """Initialize with the rejected quality value."""
        self.quality = quality
        super().__init__(f"Quality must be an integer from 0 to 5, got {quality!r}")


class NotFoundError(LearnerStateError):
    """The targeted record does not exist."""

    def __init__(self, message: str) -> None:
        """Initialize with message and 404 status code."""
        super().__init__(message, status_code=404)


class ReviewItemNotFoundError(NotFoundError):
    """Review item not found."""

    def __init__(self, item_id: str) -> None:
        """Initialize with the missing item ID."""
        self.item_id = item_id
        super().__init__(f"Review item {item_id!r} not found")


class EncounterNotFoundError(NotFoundError):
    """No encounter has been recorded for the word."""

    def __init__(self, word: str, language: str) -> None:
        """Initialize with the word and language that were looked for."""
        self.word = word
        self.language = language
        super().__init__(f"Word {word!r} ({language}) has never been encountered")


class DuplicateItemError(LearnerStateError):
    """A review item with the same ID already exists."""

    def __init__(self, item_id: str) -> None:
        """Initialize with the conflicting item ID and 409 status code."""
        self.item_id = item_id
        super().__init__(f"Review item {item_id!r} already exists", status_code=409)


class StorageFailureError(LearnerStateError):
    """The database is unavailable or a write conflicted with another writer."""

    def __init__(self, message: str) -> None:
        """Initialize with message and 503 status code."""
        super().__init__(message, status_code=503)

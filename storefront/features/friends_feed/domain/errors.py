"""
Error taxonomy for the friends feed feature.

Every error carries a machine-readable ``kind`` and the HTTP status it maps
to, so the API layer renders them uniformly without inspecting types.
"""

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    INSUFFICIENT_SELECTION = "insufficient_selection"
    CONTACT_NOT_FOUND = "contact_not_found"
    NO_ACTIVE_FEED = "no_active_feed"
    VALIDATION = "validation"
    UPLOAD_NOT_FOUND = "upload_not_found"
    FEED_GENERATION = "feed_generation"
    PERSISTENCE = "persistence"


class FriendsFeedError(Exception):
    """Base class for user-visible friends feed failures."""

    kind: ErrorKind = ErrorKind.FEED_GENERATION
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class InsufficientSelectionError(FriendsFeedError):
    kind = ErrorKind.INSUFFICIENT_SELECTION
    status_code = 400

    def __init__(self, required: int, received: int):
        super().__init__(
            f"Please select at least {required} contacts",
            {"required": required, "received": received},
        )
        self.required = required
        self.received = received


class ContactNotFoundError(FriendsFeedError):
    kind = ErrorKind.CONTACT_NOT_FOUND
    status_code = 400

    def __init__(self, missing_ids: list[str]):
        super().__init__(
            f"Some selected contacts were not found: {', '.join(missing_ids)}",
            {"missing_ids": list(missing_ids)},
        )
        self.missing_ids = list(missing_ids)


class NoActiveFeedError(FriendsFeedError):
    kind = ErrorKind.NO_ACTIVE_FEED
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("No active friends feed found. Generate a feed first.")
        self.user_id = user_id


class UploadValidationError(FriendsFeedError):
    """Batch-level ingestion problem (bad top-level shape or bad request)."""

    kind = ErrorKind.VALIDATION
    status_code = 400

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


class UploadNotFoundError(FriendsFeedError):
    kind = ErrorKind.UPLOAD_NOT_FOUND
    status_code = 404

    def __init__(self, upload_id: str):
        super().__init__("Upload not found")
        self.upload_id = upload_id


class FeedGenerationError(FriendsFeedError):
    kind = ErrorKind.FEED_GENERATION
    status_code = 500


class PersistenceError(FriendsFeedError):
    """Storage failure; the client only ever sees a generic message."""

    kind = ErrorKind.PERSISTENCE
    status_code = 500

    def __init__(self, operation: str):
        super().__init__("A storage error occurred. Please retry the request.")
        self.operation = operation


class InvalidFiltersError(FriendsFeedError):
    kind = ErrorKind.VALIDATION
    status_code = 400

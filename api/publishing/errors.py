"""Typed failures raised by the publishing engine.

Every error carries a stable ``code`` so callers (and the HTTP adapter) can
tell them apart without parsing messages. Raw storage exceptions never leave
the engine; they are wrapped in :class:`InternalError`.
"""

from typing import Any


class PublishingError(Exception):
    """Base class for all lifecycle failures."""

    code = "PUBLISHING_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(PublishingError):
    """Referenced post (or version) does not exist."""

    code = "NOT_FOUND"


class ConflictError(PublishingError):
    """Slug is already used by a different post."""

    code = "CONFLICT"


class InvalidTransitionError(PublishingError):
    """Status edge not permitted by the state machine."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}",
            details={"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class PostValidationError(PublishingError):
    """Input rejected by a lifecycle rule (e.g. scheduled_at not in the future)."""

    code = "VALIDATION_ERROR"


class LimitExceededError(PublishingError):
    """Batch input larger than the allowed maximum."""

    code = "LIMIT_EXCEEDED"

    def __init__(self, limit: int, received: int):
        super().__init__(
            f"Batch operation limited to {limit} items, received {received}",
            details={"limit": limit, "received": received},
        )
        self.limit = limit
        self.received = received


class InternalError(PublishingError):
    """Storage failure. The original exception is chained, not exposed."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)

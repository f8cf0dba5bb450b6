from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Carries enough context (operation + entity id + kind) for a caller to
    decide between retrying and surfacing the failure to the user.
    """

    kind = "domain_error"
    retryable = False

    def __init__(self, message: str, *, operation: Optional[str] = None, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "message": self.message,
            "operation": self.operation,
            "entity_id": self.entity_id,
        }


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "invalid_input"


class InvalidDurationError(ValidationError):
    kind = "invalid_duration"


class InvalidGeofenceError(ValidationError):
    kind = "invalid_geofence"


class NotFoundError(DomainError):
    kind = "not_found"


class AuthenticationError(DomainError):
    """Raised when no caller identity is available."""

    kind = "unauthenticated"


class AuthorizationError(DomainError):
    """Raised when the caller is not the owning instructor."""

    kind = "forbidden"


class AlreadyEndedError(DomainError):
    kind = "already_ended"


class AlreadyReviewedError(DomainError):
    kind = "already_reviewed"


class StoreUnavailableError(DomainError):
    """Transient I/O failure talking to the backing store."""

    kind = "store_unavailable"
    retryable = True


class StoreTimeoutError(DomainError):
    """A store call exceeded its bounded wait."""

    kind = "timeout"
    retryable = True

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations.

    ``status_code`` and ``code`` drive the JSON error response; ``details``
    carries the numeric context a client needs to self-correct.
    """

    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
        }
        payload.update(self.details)
        return payload


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class FacilityRequired(ValidationError):
    code = "FACILITY_REQUIRED"


class FacilityUnavailable(ValidationError):
    code = "FACILITY_UNAVAILABLE"


class GeofenceUnconfigured(ValidationError):
    """The facility has no coordinates, so presence cannot be proven."""

    code = "GEOFENCE_UNCONFIGURED"


class GeofenceViolation(ValidationError):
    code = "GEOFENCE_VIOLATION"

    def __init__(self, message: str, *, distance_meters: float, radius_meters: float):
        super().__init__(message, distance_meters=distance_meters, radius_meters=radius_meters)
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class SpoofingRejected(ValidationError):
    code = "SPOOFING_REJECTED"

    def __init__(self, message: str, *, flags: Sequence[str], errors: Sequence[str], warnings: Sequence[str] = ()):
        super().__init__(message, flags=list(flags), errors=list(errors), warnings=list(warnings))
        self.flags = list(flags)

    @property
    def reason(self) -> Optional[str]:
        return self.flags[0] if self.flags else None


class ConflictingState(DomainError):
    status_code = 409
    code = "CONFLICTING_STATE"


class AlreadyClockedIn(ConflictingState):
    code = "ALREADY_CLOCKED_IN"


class NotClockedIn(ConflictingState):
    code = "NOT_CLOCKED_IN"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    status_code = 401
    code = "INVALID_CREDENTIALS"


class SessionInvalid(DomainError):
    status_code = 401
    code = "SESSION_INVALID"


class MissingToken(SessionInvalid):
    code = "NO_TOKEN"


class SessionInvalidated(SessionInvalid):
    code = "SESSION_INVALIDATED"


class AccountDeactivated(SessionInvalid):
    code = "ACCOUNT_DEACTIVATED"


class TokenExpired(SessionInvalid):
    code = "TOKEN_EXPIRED"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class TooManyRequests(DomainError):
    status_code = 429
    code = "RATE_LIMITED"


class DatabaseError(DomainError):
    status_code = 500
    code = "DATABASE_ERROR"


class DuplicateEntry(DatabaseError):
    status_code = 409
    code = "DUPLICATE_ENTRY"


class InvalidReference(DatabaseError):
    status_code = 400
    code = "INVALID_REFERENCE"

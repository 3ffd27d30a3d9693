from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    BACKSTOPPER = "backstopper"
    FOCAL = "focal"
    DATA_CLERK = "data_clerk"
    TESTER = "tester"
    DDO = "ddo"


class AttendanceStatus(str, Enum):
    """Lifecycle of an attendance record."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ValidationStatus(str, Enum):
    """Confidence classification of a clock event."""

    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    FLAGGED = "flagged"
    REJECTED = "rejected"
    APPROVED = "approved"


class ConflictStrategy(str, Enum):
    """How a sync conflict between a device copy and the server copy is settled."""

    CLIENT_WINS = "client_wins"
    SERVER_WINS = "server_wins"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: Optional[str], *, default: Optional["ConflictStrategy"] = None) -> "ConflictStrategy":
        """Map a raw value onto a member.

        Missing values take ``default``. Unknown values fall back to SERVER_WINS
        and are logged so misbehaving clients show up.
        """

        fallback = default or cls.SERVER_WINS
        if value is None or value == "":
            return fallback
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown conflict strategy %r, falling back to %s", value, cls.SERVER_WINS.value)
            return cls.SERVER_WINS


class SyncAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    NO_CHANGE = "no_change"
    MANUAL_REVIEW = "manual_review"


class InvalidationReason(str, Enum):
    NEW_LOGIN = "new_login"
    LOGOUT = "logout"
    ADMIN_ACTION = "admin_action"
    EXPIRED = "expired"


class SpoofingFlag(str, Enum):
    MOCK_LOCATION = "mock_location"
    LOW_ACCURACY = "low_accuracy"
    SUSPICIOUS_ACCURACY = "suspicious_accuracy"
    INVALID_COORDINATES = "invalid_coordinates"
    NULL_ISLAND = "null_island"
    LOW_PRECISION = "low_precision"
    IMPOSSIBLE_SPEED = "impossible_speed"

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from ..core.exceptions import ValidationError


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the form MySQL DATETIME stores).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into naive UTC."""

    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp")

    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid timestamp: {value!r}")
    return to_naive_utc(parsed)


def parse_optional_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_iso_datetime(value, field_name)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat() + "Z"

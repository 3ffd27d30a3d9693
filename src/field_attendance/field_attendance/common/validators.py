from __future__ import annotations

import math
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def optional_float(value: Any, field_name: str) -> Optional[float]:
    """Coerce a JSON number (or numeric string) to float, keeping None."""

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def require_float(value: Any, field_name: str) -> float:
    number = optional_float(value, field_name)
    if number is None:
        raise ValidationError(f"{field_name} is required")
    return number


def optional_bool(value: Any, field_name: str) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "0", "no"}:
        return False
    raise ValidationError(f"{field_name} must be a boolean")


def is_valid_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def require_coordinates_in_range(latitude: Optional[float], longitude: Optional[float], prefix: str) -> None:
    """Both-or-neither rule used for stored coordinate pairs."""

    if latitude is None and longitude is None:
        return
    if not is_valid_coordinates(latitude, longitude):
        raise ValidationError(
            f"{prefix} coordinates out of range ({latitude}, {longitude}); "
            "latitude must be within ±90 and longitude within ±180"
        )

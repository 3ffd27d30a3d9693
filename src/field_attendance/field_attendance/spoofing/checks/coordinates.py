from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from ...common.validators import is_valid_coordinates
from ...core.constants import MIN_COORDINATE_DECIMALS, NULL_ISLAND_TOLERANCE_DEGREES
from ...core.enums import SpoofingFlag
from ..model import CheckOutcome, LocationSample
from .base import SpoofingCheck


def decimal_places(value: float) -> int:
    """Meaningful decimal digits of a reported coordinate (trailing zeros dropped)."""

    try:
        exponent = Decimal(str(value)).normalize().as_tuple().exponent
    except InvalidOperation:
        return 0
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


class CoordinateSanityCheck(SpoofingCheck):
    name = "coordinates"

    def __init__(
        self,
        *,
        null_island_tolerance: float = NULL_ISLAND_TOLERANCE_DEGREES,
        min_decimals: int = MIN_COORDINATE_DECIMALS,
    ):
        self._tolerance = float(null_island_tolerance)
        self._min_decimals = int(min_decimals)

    def run(self, sample: LocationSample, *, user_id: Optional[int], now: datetime) -> CheckOutcome:
        outcome = CheckOutcome()
        lat, lon = sample.latitude, sample.longitude

        if not is_valid_coordinates(lat, lon):
            return outcome.fail(
                SpoofingFlag.INVALID_COORDINATES,
                f"Invalid coordinates ({lat}, {lon}). Latitude must be within ±90 and longitude within ±180.",
            )

        if abs(lat) < self._tolerance and abs(lon) < self._tolerance:
            return outcome.fail(
                SpoofingFlag.NULL_ISLAND,
                "Location reported at (0, 0). The GPS fix is not usable, please retry.",
            )

        imprecise = [v for v in (lat, lon) if v != 0 and decimal_places(v) < self._min_decimals]
        if imprecise:
            outcome.warn(
                SpoofingFlag.LOW_PRECISION,
                f"Coordinates have fewer than {self._min_decimals} decimal places; the location may be approximate.",
            )
        return outcome

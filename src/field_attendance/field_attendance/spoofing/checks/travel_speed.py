from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ...activities.service import ActivityRecorder
from ...common.geo import DistanceFunction, haversine_distance
from ...common.validators import is_valid_coordinates
from ...core.constants import MAX_SPEED_KMH
from ...core.enums import SpoofingFlag
from ..model import CheckOutcome, LocationSample
from ..repository import LocationHistory
from .base import SpoofingCheck

logger = logging.getLogger(__name__)


class TravelSpeedCheck(SpoofingCheck):
    """Reject a fix that implies travelling faster than ``max_speed_kmh``
    since the user's previous clock-in.

    Only clock-in locations form the trail. A rejection is written to the
    audit log before the check returns; if that write fails the rejection
    still stands.
    """

    name = "travel_speed"

    def __init__(
        self,
        history: LocationHistory,
        recorder: ActivityRecorder,
        *,
        max_speed_kmh: float = MAX_SPEED_KMH,
        distance_fn: DistanceFunction = haversine_distance,
    ):
        self._history = history
        self._recorder = recorder
        self._max_speed = float(max_speed_kmh)
        self._distance = distance_fn

    def run(self, sample: LocationSample, *, user_id: Optional[int], now: datetime) -> CheckOutcome:
        outcome = CheckOutcome()
        if user_id is None or not is_valid_coordinates(sample.latitude, sample.longitude):
            return outcome

        last = self._history.get_last_clock_in_location(user_id)
        if last is None:
            return outcome

        distance_km = self._distance(last.latitude, last.longitude, sample.latitude, sample.longitude) / 1000.0
        elapsed_hours = (now - last.recorded_at).total_seconds() / 3600.0

        if elapsed_hours <= 0:
            reason = "Location timestamp is not later than the previous clock-in"
            speed = None
        else:
            speed = distance_km / elapsed_hours
            if speed <= self._max_speed:
                return outcome
            reason = f"Travel speed of {round(speed)} km/h exceeds maximum allowed ({round(self._max_speed)} km/h)"

        logger.warning(
            "Impossible speed for user %s: speed=%s distance_km=%.3f elapsed_h=%.4f",
            user_id, speed, distance_km, elapsed_hours,
        )
        self._log_suspicious(user_id, reason=reason, speed=speed, distance_km=distance_km, elapsed_hours=elapsed_hours)
        return outcome.fail(SpoofingFlag.IMPOSSIBLE_SPEED, reason)

    def _log_suspicious(
        self, user_id: int, *, reason: str, speed: Optional[float], distance_km: float, elapsed_hours: float
    ) -> None:
        try:
            self._recorder.record_strict(
                user_id=user_id,
                action="suspicious_location",
                entity_type="attendance",
                description=reason,
                metadata={
                    "type": SpoofingFlag.IMPOSSIBLE_SPEED.value,
                    "reason": reason,
                    "speed": round(speed) if speed is not None else None,
                    "distance": round(distance_km, 2),
                    "time_diff": round(elapsed_hours, 2),
                },
            )
        except Exception:
            logger.error("Failed to log suspicious activity for user %s", user_id, exc_info=True)

from __future__ import annotations

from typing import List

from ..activities.service import ActivityRecorder
from ..common.geo import DistanceFunction, haversine_distance
from .checks.accuracy import AccuracyCheck
from .checks.base import SpoofingCheck
from .checks.coordinates import CoordinateSanityCheck
from .checks.mock_location import MockLocationCheck
from .checks.travel_speed import TravelSpeedCheck
from .repository import LocationHistory
from .service import SpoofingDetector


def default_checks(
    history: LocationHistory,
    recorder: ActivityRecorder,
    *,
    distance_fn: DistanceFunction = haversine_distance,
) -> List[SpoofingCheck]:
    return [
        MockLocationCheck(),
        AccuracyCheck(),
        CoordinateSanityCheck(),
        TravelSpeedCheck(history, recorder, distance_fn=distance_fn),
    ]


def build_spoofing_detector(
    history: LocationHistory,
    recorder: ActivityRecorder,
    *,
    distance_fn: DistanceFunction = haversine_distance,
) -> SpoofingDetector:
    return SpoofingDetector(default_checks(history, recorder, distance_fn=distance_fn))

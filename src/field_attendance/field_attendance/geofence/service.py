from __future__ import annotations

import logging
from dataclasses import dataclass

from ..common.geo import DistanceFunction, haversine_distance
from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..core.exceptions import FacilityUnavailable, GeofenceUnconfigured
from ..facilities.repository import FacilityRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceResult:
    within_radius: bool
    distance_meters: float
    radius_meters: float
    facility_id: int
    facility_name: str


class GeofenceValidator:
    """Decide whether a point lies inside a facility's allowed radius.

    A facility without coordinates is a hard failure: presence can not be
    proven, so it is never treated as "allowed".
    """

    def __init__(self, facilities: FacilityRepository, *, distance_fn: DistanceFunction = haversine_distance):
        self._facilities = facilities
        self._distance = distance_fn

    def validate(self, facility_id: int, latitude: float, longitude: float) -> GeofenceResult:
        facility = self._facilities.get_by_id(facility_id)
        if not facility or not facility.is_active:
            raise FacilityUnavailable(f"Facility {facility_id} was not found or is inactive", facility_id=facility_id)

        if not facility.has_coordinates:
            logger.warning("Facility %s has no coordinates; geofence cannot be checked", facility_id)
            raise GeofenceUnconfigured(
                f"Facility '{facility.name}' has no registered location. Contact an administrator.",
                facility_id=facility_id,
            )

        radius = facility.geofence_radius_meters
        radius = float(DEFAULT_GEOFENCE_RADIUS_METERS if radius is None else radius)
        distance = self._distance(facility.latitude, facility.longitude, latitude, longitude)

        return GeofenceResult(
            within_radius=distance <= radius,
            distance_meters=distance,
            radius_meters=radius,
            facility_id=facility.facility_id,
            facility_name=facility.name,
        )

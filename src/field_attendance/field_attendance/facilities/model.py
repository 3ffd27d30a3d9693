from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS


@dataclass(frozen=True)
class Facility:
    """Work site a field worker is assigned to."""

    facility_id: int
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    geofence_radius_meters: Optional[float] = DEFAULT_GEOFENCE_RADIUS_METERS
    is_active: bool = True

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

from __future__ import annotations

import math
from typing import Callable

from ..core.constants import EARTH_RADIUS_METERS

# (lat1, lon1, lat2, lon2) -> meters. Any implementation with this shape
# (e.g. an ellipsoidal one) can be handed to the validators instead.
DistanceFunction = Callable[[float, float, float, float], float]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Rounding can push near-antipodal points just past 1.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c

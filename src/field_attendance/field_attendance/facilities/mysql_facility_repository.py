from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, optional_float
from .model import Facility
from .repository import FacilityRepository


class MySQLFacilityRepository(FacilityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, facility_id: int) -> Optional[Facility]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT facility_id, name, latitude, longitude, geofence_radius, is_active
                FROM facilities
                WHERE facility_id=%s
                """,
                (facility_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            radius = r.get("geofence_radius")
            return Facility(
                facility_id=int(r["facility_id"]),
                name=r["name"],
                latitude=optional_float(r.get("latitude")),
                longitude=optional_float(r.get("longitude")),
                geofence_radius_meters=float(radius) if radius is not None else DEFAULT_GEOFENCE_RADIUS_METERS,
                is_active=bool(r["is_active"]),
            )

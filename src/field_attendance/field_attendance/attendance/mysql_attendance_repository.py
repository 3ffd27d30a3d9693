from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus, ConflictStrategy, ValidationStatus
from ..core.exceptions import DatabaseError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json, optional_float
from ..spoofing.model import LastKnownLocation
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, facility_id, clock_in_time, clock_out_time,
    clock_in_latitude, clock_in_longitude, clock_out_latitude, clock_out_longitude,
    clock_in_accuracy_meters, clock_out_accuracy_meters,
    clock_in_distance_meters, clock_out_distance_meters,
    device_fingerprint, validation_status, status, notes, synced,
    client_timestamp, server_timestamp, device_id, sync_version,
    conflict_resolution_strategy, metadata, created_at, updated_at
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        facility_id=int(r["facility_id"]),
        clock_in_time=r["clock_in_time"],
        clock_out_time=r.get("clock_out_time"),
        clock_in_latitude=optional_float(r.get("clock_in_latitude")),
        clock_in_longitude=optional_float(r.get("clock_in_longitude")),
        clock_out_latitude=optional_float(r.get("clock_out_latitude")),
        clock_out_longitude=optional_float(r.get("clock_out_longitude")),
        clock_in_accuracy_meters=optional_float(r.get("clock_in_accuracy_meters")),
        clock_out_accuracy_meters=optional_float(r.get("clock_out_accuracy_meters")),
        clock_in_distance_meters=optional_float(r.get("clock_in_distance_meters")),
        clock_out_distance_meters=optional_float(r.get("clock_out_distance_meters")),
        device_fingerprint=r.get("device_fingerprint"),
        validation_status=ValidationStatus(r["validation_status"]),
        status=AttendanceStatus(r["status"]),
        notes=r.get("notes"),
        synced=bool(r["synced"]),
        client_timestamp=r.get("client_timestamp"),
        server_timestamp=r.get("server_timestamp"),
        device_id=r.get("device_id"),
        sync_version=int(r["sync_version"]),
        conflict_resolution_strategy=ConflictStrategy.parse(r.get("conflict_resolution_strategy")),
        metadata=load_json(r.get("metadata")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select_one(self, where: str, params: tuple) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE {where} LIMIT 1", params)
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._select_one("attendance_id=%s", (attendance_id,))

    def _require(self, attendance_id: int) -> AttendanceRecord:
        record = self.get_by_id(attendance_id)
        if record is None:
            raise DatabaseError(f"Attendance record {attendance_id} disappeared after write")
        return record

    def get_active_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._select_one("user_id=%s AND status='active'", (user_id,))

    def find_by_sync_key(self, device_id: str, client_timestamp: datetime) -> Optional[AttendanceRecord]:
        return self._select_one("device_id=%s AND client_timestamp=%s", (device_id, client_timestamp))

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE user_id=%s
                ORDER BY clock_in_time DESC
                LIMIT %s
                """,
                (user_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def get_last_clock_in_location(self, user_id: int) -> Optional[LastKnownLocation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT clock_in_latitude, clock_in_longitude, clock_in_time
                FROM attendance
                WHERE user_id=%s
                  AND clock_in_latitude IS NOT NULL
                  AND clock_in_longitude IS NOT NULL
                ORDER BY clock_in_time DESC
                LIMIT 1
                """,
                (user_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LastKnownLocation(
                latitude=float(r["clock_in_latitude"]),
                longitude=float(r["clock_in_longitude"]),
                recorded_at=r["clock_in_time"],
            )

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(
                    user_id, facility_id, clock_in_time, clock_out_time,
                    clock_in_latitude, clock_in_longitude, clock_out_latitude, clock_out_longitude,
                    clock_in_accuracy_meters, clock_out_accuracy_meters,
                    clock_in_distance_meters, clock_out_distance_meters,
                    device_fingerprint, validation_status, status, notes, synced,
                    client_timestamp, server_timestamp, device_id, sync_version,
                    conflict_resolution_strategy, metadata
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,COALESCE(%s, UTC_TIMESTAMP(3)),%s,%s,%s,%s)
                """,
                (
                    record.user_id,
                    record.facility_id,
                    record.clock_in_time,
                    record.clock_out_time,
                    record.clock_in_latitude,
                    record.clock_in_longitude,
                    record.clock_out_latitude,
                    record.clock_out_longitude,
                    record.clock_in_accuracy_meters,
                    record.clock_out_accuracy_meters,
                    record.clock_in_distance_meters,
                    record.clock_out_distance_meters,
                    record.device_fingerprint,
                    record.validation_status.value,
                    record.status.value,
                    record.notes,
                    int(record.synced),
                    record.client_timestamp,
                    record.server_timestamp,
                    record.device_id,
                    int(record.sync_version),
                    record.conflict_resolution_strategy.value,
                    dump_json(record.metadata),
                ),
            )
            new_id = int(cur.lastrowid)
        return self._require(new_id)

    def complete_clock_out(
        self,
        *,
        attendance_id: int,
        clock_out_time: datetime,
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy_meters: Optional[float],
        distance_meters: Optional[float],
        validation_status: ValidationStatus,
        notes: Optional[str],
        metadata: Dict[str, Any],
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET clock_out_time=%s,
                    clock_out_latitude=%s,
                    clock_out_longitude=%s,
                    clock_out_accuracy_meters=%s,
                    clock_out_distance_meters=%s,
                    validation_status=%s,
                    notes=COALESCE(%s, notes),
                    metadata=%s,
                    status='completed'
                WHERE attendance_id=%s AND status='active'
                """,
                (
                    clock_out_time,
                    latitude,
                    longitude,
                    accuracy_meters,
                    distance_meters,
                    validation_status.value,
                    notes,
                    dump_json(metadata),
                    attendance_id,
                ),
            )
            if cur.rowcount != 1:
                return None
        return self.get_by_id(attendance_id)

    def save_merged(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET facility_id=%s,
                    clock_in_time=%s,
                    clock_out_time=%s,
                    clock_in_latitude=%s,
                    clock_in_longitude=%s,
                    clock_out_latitude=%s,
                    clock_out_longitude=%s,
                    clock_in_accuracy_meters=%s,
                    clock_out_accuracy_meters=%s,
                    device_fingerprint=%s,
                    validation_status=%s,
                    status=%s,
                    notes=%s,
                    synced=%s,
                    server_timestamp=%s,
                    sync_version=%s,
                    conflict_resolution_strategy=%s,
                    metadata=%s
                WHERE attendance_id=%s
                """,
                (
                    record.facility_id,
                    record.clock_in_time,
                    record.clock_out_time,
                    record.clock_in_latitude,
                    record.clock_in_longitude,
                    record.clock_out_latitude,
                    record.clock_out_longitude,
                    record.clock_in_accuracy_meters,
                    record.clock_out_accuracy_meters,
                    record.device_fingerprint,
                    record.validation_status.value,
                    record.status.value,
                    record.notes,
                    int(record.synced),
                    record.server_timestamp,
                    int(record.sync_version),
                    record.conflict_resolution_strategy.value,
                    dump_json(record.metadata),
                    record.attendance_id,
                ),
            )
        return self._require(int(record.attendance_id))

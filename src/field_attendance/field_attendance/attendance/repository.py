from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import ValidationStatus
from ..spoofing.model import LastKnownLocation
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_active_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_last_clock_in_location(self, user_id: int) -> Optional[LastKnownLocation]:
        raise NotImplementedError

    def find_by_sync_key(self, device_id: str, client_timestamp: datetime) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a new row. ``attendance_id`` and audit timestamps are ignored."""

        raise NotImplementedError

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
        """Close the record only if it is still active; None otherwise."""

        raise NotImplementedError

    def save_merged(self, record: AttendanceRecord) -> AttendanceRecord:
        """Overwrite every mutable column of an existing row (sync merges)."""

        raise NotImplementedError

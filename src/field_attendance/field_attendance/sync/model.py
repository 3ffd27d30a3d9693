from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..attendance.model import AttendanceRecord, lifecycle_error
from ..common.datetime_utils import parse_iso_datetime, parse_optional_datetime
from ..common.validators import optional_float, optional_int, require_coordinates_in_range
from ..core.enums import AttendanceStatus, ConflictStrategy, SyncAction, ValidationStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class SyncRecord:
    """A client-originated attendance copy, keyed by (device_id, client_timestamp)."""

    device_id: str
    client_timestamp: datetime
    facility_id: int
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    clock_in_latitude: Optional[float] = None
    clock_in_longitude: Optional[float] = None
    clock_out_latitude: Optional[float] = None
    clock_out_longitude: Optional[float] = None
    clock_in_accuracy_meters: Optional[float] = None
    clock_out_accuracy_meters: Optional[float] = None
    device_fingerprint: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.COMPLETED
    notes: Optional[str] = None
    sync_version: int = 1
    strategy: ConflictStrategy = ConflictStrategy.SERVER_WINS
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(
        cls,
        payload: Dict[str, Any],
        *,
        default_facility_id: Optional[int],
        default_strategy: ConflictStrategy,
    ) -> "SyncRecord":
        facility_id = optional_int(payload.get("facility_id"), "facility_id") or default_facility_id
        if not facility_id:
            raise ValidationError("facility_id is required")

        if payload.get("clock_in_time") in (None, ""):
            raise ValidationError("clock_in_time is required")
        clock_in_time = parse_iso_datetime(payload.get("clock_in_time"), "clock_in_time")
        clock_out_time = parse_optional_datetime(payload.get("clock_out_time"), "clock_out_time")
        if clock_out_time is not None and clock_out_time <= clock_in_time:
            raise ValidationError("clock_out_time must be later than clock_in_time")

        in_lat = optional_float(payload.get("clock_in_latitude"), "clock_in_latitude")
        in_lon = optional_float(payload.get("clock_in_longitude"), "clock_in_longitude")
        out_lat = optional_float(payload.get("clock_out_latitude"), "clock_out_latitude")
        out_lon = optional_float(payload.get("clock_out_longitude"), "clock_out_longitude")
        require_coordinates_in_range(in_lat, in_lon, "Clock-in")
        require_coordinates_in_range(out_lat, out_lon, "Clock-out")

        raw_status = payload.get("status")
        if raw_status in (None, ""):
            status = AttendanceStatus.COMPLETED if clock_out_time else AttendanceStatus.ACTIVE
        else:
            try:
                status = AttendanceStatus(str(raw_status).strip().lower())
            except ValueError:
                raise ValidationError(f"Unknown status {raw_status!r}")

        problem = lifecycle_error(clock_in_time, clock_out_time, status)
        if problem:
            raise ValidationError(problem)

        sync_version = optional_int(payload.get("sync_version"), "sync_version")
        if sync_version is None:
            sync_version = 1
        if sync_version < 1:
            raise ValidationError("sync_version must be at least 1")

        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValidationError("metadata must be a JSON object")

        return cls(
            device_id=str(payload["device_id"]),
            client_timestamp=parse_iso_datetime(payload.get("client_timestamp"), "client_timestamp"),
            facility_id=facility_id,
            clock_in_time=clock_in_time,
            clock_out_time=clock_out_time,
            clock_in_latitude=in_lat,
            clock_in_longitude=in_lon,
            clock_out_latitude=out_lat,
            clock_out_longitude=out_lon,
            clock_in_accuracy_meters=optional_float(payload.get("clock_in_accuracy_meters"), "clock_in_accuracy_meters"),
            clock_out_accuracy_meters=optional_float(payload.get("clock_out_accuracy_meters"), "clock_out_accuracy_meters"),
            device_fingerprint=payload.get("device_fingerprint") or None,
            status=status,
            notes=payload.get("notes") or None,
            sync_version=sync_version,
            strategy=ConflictStrategy.parse(payload.get("conflict_resolution_strategy"), default=default_strategy),
            metadata=dict(metadata),
        )

    def to_attendance(self, *, user_id: int, now: datetime) -> AttendanceRecord:
        return AttendanceRecord(
            user_id=user_id,
            facility_id=self.facility_id,
            clock_in_time=self.clock_in_time,
            clock_out_time=self.clock_out_time,
            clock_in_latitude=self.clock_in_latitude,
            clock_in_longitude=self.clock_in_longitude,
            clock_out_latitude=self.clock_out_latitude,
            clock_out_longitude=self.clock_out_longitude,
            clock_in_accuracy_meters=self.clock_in_accuracy_meters,
            clock_out_accuracy_meters=self.clock_out_accuracy_meters,
            device_fingerprint=self.device_fingerprint,
            validation_status=ValidationStatus.UNVERIFIED,
            status=self.status,
            notes=self.notes,
            synced=True,
            client_timestamp=self.client_timestamp,
            server_timestamp=now,
            device_id=self.device_id,
            sync_version=self.sync_version,
            conflict_resolution_strategy=self.strategy,
            metadata=dict(self.metadata),
        )


@dataclass(frozen=True)
class SyncOutcome:
    index: int
    action: SyncAction
    attendance_id: Optional[int]
    conflict: bool = False
    resolution: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "action": self.action.value,
            "attendance_id": self.attendance_id,
            "conflict": self.conflict,
            "resolution": self.resolution,
        }


@dataclass
class BatchResult:
    submitted: int
    outcomes: List[SyncOutcome] = field(default_factory=list)
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    validation_errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def _count(self, action: SyncAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "submitted": self.submitted,
            "inserted": self._count(SyncAction.INSERT),
            "updated": self._count(SyncAction.UPDATE),
            "unchanged": self._count(SyncAction.NO_CHANGE),
            "conflicts": len(self.conflicts),
            "errors": len(self.errors),
            "validation_errors": len(self.validation_errors),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "conflicts": list(self.conflicts),
            "errors": list(self.errors),
            "validation_errors": list(self.validation_errors),
            "warnings": list(self.warnings),
        }

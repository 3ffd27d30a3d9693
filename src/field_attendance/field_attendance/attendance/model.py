from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import isoformat, parse_optional_datetime
from ..common.validators import optional_bool, optional_float, optional_int
from ..core.enums import AttendanceStatus, ConflictStrategy, ValidationStatus
from ..core.exceptions import ValidationError


def lifecycle_error(
    clock_in_time: datetime, clock_out_time: Optional[datetime], status: AttendanceStatus
) -> Optional[str]:
    """Why a (clock_in, clock_out, status) triple can not be stored, or None.

    Active means no clock-out yet; completed means one was recorded.
    Cancelled records may be in either state.
    """

    if clock_out_time is not None and clock_out_time <= clock_in_time:
        return "clock_out_time must be later than clock_in_time"
    if status == AttendanceStatus.ACTIVE and clock_out_time is not None:
        return "an active record can not have a clock_out_time"
    if status == AttendanceStatus.COMPLETED and clock_out_time is None:
        return "a completed record needs a clock_out_time"
    return None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one shift at a facility, from clock-in to clock-out."""

    user_id: int
    facility_id: int
    clock_in_time: datetime
    attendance_id: Optional[int] = None
    clock_out_time: Optional[datetime] = None
    clock_in_latitude: Optional[float] = None
    clock_in_longitude: Optional[float] = None
    clock_out_latitude: Optional[float] = None
    clock_out_longitude: Optional[float] = None
    clock_in_accuracy_meters: Optional[float] = None
    clock_out_accuracy_meters: Optional[float] = None
    clock_in_distance_meters: Optional[float] = None
    clock_out_distance_meters: Optional[float] = None
    device_fingerprint: Optional[str] = None
    validation_status: ValidationStatus = ValidationStatus.VERIFIED
    status: AttendanceStatus = AttendanceStatus.ACTIVE
    notes: Optional[str] = None
    synced: bool = True
    client_timestamp: Optional[datetime] = None
    server_timestamp: Optional[datetime] = None
    device_id: Optional[str] = None
    sync_version: int = 1
    conflict_resolution_strategy: ConflictStrategy = ConflictStrategy.SERVER_WINS
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def lifecycle_error(self) -> Optional[str]:
        return lifecycle_error(self.clock_in_time, self.clock_out_time, self.status)

    @property
    def duration_hours(self) -> Optional[float]:
        if self.clock_out_time is None:
            return None
        return (self.clock_out_time - self.clock_in_time).total_seconds() / 3600.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.attendance_id,
            "user_id": self.user_id,
            "facility_id": self.facility_id,
            "clock_in_time": isoformat(self.clock_in_time),
            "clock_out_time": isoformat(self.clock_out_time),
            "clock_in_latitude": self.clock_in_latitude,
            "clock_in_longitude": self.clock_in_longitude,
            "clock_out_latitude": self.clock_out_latitude,
            "clock_out_longitude": self.clock_out_longitude,
            "clock_in_accuracy_meters": self.clock_in_accuracy_meters,
            "clock_out_accuracy_meters": self.clock_out_accuracy_meters,
            "clock_in_distance_meters": self.clock_in_distance_meters,
            "clock_out_distance_meters": self.clock_out_distance_meters,
            "device_fingerprint": self.device_fingerprint,
            "validation_status": self.validation_status.value,
            "status": self.status.value,
            "notes": self.notes,
            "synced": self.synced,
            "client_timestamp": isoformat(self.client_timestamp),
            "server_timestamp": isoformat(self.server_timestamp),
            "device_id": self.device_id,
            "sync_version": self.sync_version,
            "conflict_resolution_strategy": self.conflict_resolution_strategy.value,
            "metadata": dict(self.metadata),
            "duration_hours": self.duration_hours,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


def _metadata(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError("metadata must be a JSON object")
    return dict(value)


def _is_offline(payload: Dict[str, Any]) -> bool:
    # Only an explicit ``synced: false`` marks an event as captured offline.
    return optional_bool(payload.get("synced"), "synced") is False


@dataclass(frozen=True)
class ClockInInput:
    facility_id: Optional[int]
    latitude: Optional[float]
    longitude: Optional[float]
    accuracy: Optional[float]
    is_mocked: bool
    is_offline: bool
    clock_in_time: Optional[datetime] = None
    device_fingerprint: Optional[str] = None
    device_id: Optional[str] = None
    client_timestamp: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ClockInInput":
        return cls(
            facility_id=optional_int(payload.get("facility_id"), "facility_id"),
            latitude=optional_float(payload.get("clock_in_latitude"), "clock_in_latitude"),
            longitude=optional_float(payload.get("clock_in_longitude"), "clock_in_longitude"),
            accuracy=optional_float(payload.get("accuracy"), "accuracy"),
            is_mocked=bool(optional_bool(payload.get("is_mocked"), "is_mocked")),
            is_offline=_is_offline(payload),
            clock_in_time=parse_optional_datetime(payload.get("clock_in_time"), "clock_in_time"),
            device_fingerprint=payload.get("device_fingerprint") or None,
            device_id=payload.get("device_id") or None,
            client_timestamp=parse_optional_datetime(payload.get("client_timestamp"), "client_timestamp"),
            notes=payload.get("notes") or None,
            metadata=_metadata(payload.get("metadata")),
        )


@dataclass(frozen=True)
class ClockOutInput:
    latitude: Optional[float]
    longitude: Optional[float]
    accuracy: Optional[float]
    is_mocked: bool
    is_offline: bool
    clock_out_time: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ClockOutInput":
        return cls(
            latitude=optional_float(payload.get("clock_out_latitude"), "clock_out_latitude"),
            longitude=optional_float(payload.get("clock_out_longitude"), "clock_out_longitude"),
            accuracy=optional_float(payload.get("accuracy"), "accuracy"),
            is_mocked=bool(optional_bool(payload.get("is_mocked"), "is_mocked")),
            is_offline=_is_offline(payload),
            clock_out_time=parse_optional_datetime(payload.get("clock_out_time"), "clock_out_time"),
            notes=payload.get("notes") or None,
            metadata=_metadata(payload.get("metadata")),
        )

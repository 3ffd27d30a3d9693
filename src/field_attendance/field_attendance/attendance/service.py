from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..activities.service import ActivityRecorder
from ..common.datetime_utils import isoformat, utc_now
from ..common.validators import require_coordinates_in_range, require_float
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import ValidationStatus
from ..core.exceptions import (
    AlreadyClockedIn,
    DuplicateEntry,
    FacilityRequired,
    GeofenceViolation,
    NotClockedIn,
    SpoofingRejected,
    ValidationError,
)
from ..geofence.service import GeofenceResult, GeofenceValidator
from ..spoofing.model import LocationSample, SpoofingReport
from ..spoofing.service import SpoofingDetector
from ..users.model import User
from .model import AttendanceRecord, ClockInInput, ClockOutInput
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceEngine:
    """Clock-in/clock-out state machine: NONE -> ACTIVE -> COMPLETED.

    Every validation runs before the single write, so a rejected event leaves
    no trace in the attendance table.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        spoofing: SpoofingDetector,
        geofence: GeofenceValidator,
        recorder: ActivityRecorder,
    ):
        self._attendance = attendance
        self._spoofing = spoofing
        self._geofence = geofence
        self._recorder = recorder

    def _verify_location(
        self,
        *,
        user_id: int,
        facility_id: int,
        latitude: Optional[float],
        longitude: Optional[float],
        accuracy: Optional[float],
        is_mocked: bool,
        event: str,
        now: datetime,
    ) -> tuple[SpoofingReport, GeofenceResult]:
        latitude = require_float(latitude, f"{event}_latitude")
        longitude = require_float(longitude, f"{event}_longitude")
        if accuracy is None:
            raise ValidationError(f"GPS accuracy is required for {event.replace('_', '-')}")

        report = self._spoofing.inspect(
            LocationSample(latitude=latitude, longitude=longitude, accuracy=accuracy, is_mocked=is_mocked),
            user_id=user_id,
            now=now,
        )
        if not report.passed:
            raise SpoofingRejected(
                report.errors[0] if report.errors else "Location verification failed",
                flags=report.flag_values,
                errors=report.errors,
                warnings=report.warnings,
            )

        result = self._geofence.validate(facility_id, latitude, longitude)
        if not result.within_radius:
            raise GeofenceViolation(
                f"You are {round(result.distance_meters)}m away from {result.facility_name}. "
                f"Maximum allowed: {round(result.radius_meters)}m",
                distance_meters=round(result.distance_meters, 2),
                radius_meters=result.radius_meters,
            )
        return report, result

    def clock_in(self, payload: Dict[str, Any], user: User, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or utc_now()

        if self._attendance.get_active_for_user(user.user_id):
            raise AlreadyClockedIn("You already have an active clock-in. Please clock out first.")

        data = ClockInInput.from_payload(payload)
        facility_id = data.facility_id or user.facility_id
        if not facility_id:
            raise FacilityRequired("Facility ID is required. Please ensure you are assigned to a facility.")

        metadata: Dict[str, Any] = dict(data.metadata)
        metadata["clock_in_method"] = "offline" if data.is_offline else "online"
        validation_status = ValidationStatus.VERIFIED
        accuracy = distance = None

        if data.is_offline:
            require_coordinates_in_range(data.latitude, data.longitude, "Clock-in")
            validation_status = ValidationStatus.UNVERIFIED
            clock_in_time = data.clock_in_time or now
        else:
            report, geofence = self._verify_location(
                user_id=user.user_id,
                facility_id=facility_id,
                latitude=data.latitude,
                longitude=data.longitude,
                accuracy=data.accuracy,
                is_mocked=data.is_mocked,
                event="clock_in",
                now=now,
            )
            if report.warnings:
                metadata["spoofing_warnings"] = list(report.warnings)
                metadata["spoofing_flags"] = report.flag_values
                validation_status = ValidationStatus.FLAGGED
            accuracy = data.accuracy
            distance = round(geofence.distance_meters, 2)
            metadata["distance_from_facility"] = distance
            metadata["geofence_radius"] = geofence.radius_meters
            metadata["gps_accuracy"] = data.accuracy
            clock_in_time = now

        record = AttendanceRecord(
            user_id=user.user_id,
            facility_id=facility_id,
            clock_in_time=clock_in_time,
            clock_in_latitude=data.latitude,
            clock_in_longitude=data.longitude,
            clock_in_accuracy_meters=accuracy,
            clock_in_distance_meters=distance,
            device_fingerprint=data.device_fingerprint,
            validation_status=validation_status,
            notes=data.notes,
            synced=not data.is_offline,
            client_timestamp=data.client_timestamp or now,
            server_timestamp=now,
            device_id=data.device_id,
            metadata=metadata,
        )

        try:
            created = self._attendance.create(record)
        except DuplicateEntry:
            # Lost the race against a concurrent clock-in for the same user.
            if self._attendance.get_active_for_user(user.user_id):
                raise AlreadyClockedIn("You already have an active clock-in. Please clock out first.")
            raise

        self._recorder.record(
            user_id=user.user_id,
            action="clock_in",
            entity_type="attendance",
            entity_id=created.attendance_id,
            description=f"User clocked in at {isoformat(created.clock_in_time)}",
            metadata={
                "facility_id": created.facility_id,
                "device_id": created.device_id,
                "distance_from_facility": metadata.get("distance_from_facility"),
            },
        )
        logger.info(
            "User %s clocked in (attendance=%s facility=%s status=%s distance=%s)",
            user.user_id, created.attendance_id, created.facility_id,
            created.validation_status.value, metadata.get("distance_from_facility"),
        )
        return created

    def clock_out(self, payload: Dict[str, Any], user: User, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or utc_now()

        active = self._attendance.get_active_for_user(user.user_id)
        if not active:
            raise NotClockedIn("No active clock-in found. Please clock in first.")

        data = ClockOutInput.from_payload(payload)
        metadata: Dict[str, Any] = {**active.metadata, **data.metadata}
        metadata["clock_out_method"] = "offline" if data.is_offline else "online"
        validation_status = active.validation_status
        accuracy = distance = None

        if data.is_offline:
            require_coordinates_in_range(data.latitude, data.longitude, "Clock-out")
            clock_out_time = data.clock_out_time or now
        else:
            report, geofence = self._verify_location(
                user_id=user.user_id,
                facility_id=active.facility_id,
                latitude=data.latitude,
                longitude=data.longitude,
                accuracy=data.accuracy,
                is_mocked=data.is_mocked,
                event="clock_out",
                now=now,
            )
            if report.warnings:
                metadata["clock_out_spoofing_warnings"] = list(report.warnings)
                metadata["clock_out_spoofing_flags"] = report.flag_values
                if validation_status == ValidationStatus.VERIFIED:
                    validation_status = ValidationStatus.FLAGGED
            accuracy = data.accuracy
            distance = round(geofence.distance_meters, 2)
            metadata["clock_out_distance_from_facility"] = distance
            metadata["clock_out_gps_accuracy"] = data.accuracy
            clock_out_time = now

        if clock_out_time <= active.clock_in_time:
            raise ValidationError(
                "Clock-out time must be later than clock-in time",
                clock_in_time=isoformat(active.clock_in_time),
                clock_out_time=isoformat(clock_out_time),
            )

        updated = self._attendance.complete_clock_out(
            attendance_id=int(active.attendance_id),
            clock_out_time=clock_out_time,
            latitude=data.latitude,
            longitude=data.longitude,
            accuracy_meters=accuracy,
            distance_meters=distance,
            validation_status=validation_status,
            notes=data.notes,
            metadata=metadata,
        )
        if updated is None:
            raise NotClockedIn("No active clock-in found. Please clock in first.")

        duration_hours = updated.duration_hours
        self._recorder.record(
            user_id=user.user_id,
            action="clock_out",
            entity_type="attendance",
            entity_id=updated.attendance_id,
            description=f"User clocked out at {isoformat(updated.clock_out_time)}",
            metadata={
                "facility_id": updated.facility_id,
                "duration_hours": round(duration_hours, 2) if duration_hours is not None else None,
                "distance_from_facility": metadata.get("clock_out_distance_from_facility"),
            },
        )
        logger.info(
            "User %s clocked out (attendance=%s duration_hours=%.2f)",
            user.user_id, updated.attendance_id, duration_hours or 0.0,
        )
        return updated

    def get_current(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._attendance.get_active_for_user(user_id)

    def get_history(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        limit = max(1, min(int(limit), 200))
        return self._attendance.get_recent_for_user(user_id, limit)

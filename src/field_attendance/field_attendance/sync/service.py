from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence, Tuple

from ..activities.service import ActivityRecorder
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import parse_iso_datetime, utc_now
from ..core.constants import SYNC_MAX_AGE_DAYS, SYNC_TIMESTAMP_TOLERANCE_SECONDS
from ..core.enums import ConflictStrategy, SyncAction
from ..core.exceptions import AuthorizationError, DomainError, DuplicateEntry, ValidationError
from ..users.model import User
from .factory import ConflictResolverFactory
from .model import BatchResult, SyncOutcome, SyncRecord

logger = logging.getLogger(__name__)

_TOLERANCE = timedelta(seconds=SYNC_TIMESTAMP_TOLERANCE_SECONDS)


def _times_differ(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return a is not b
    return abs(a - b) > _TOLERANCE


def detect_conflict(client: AttendanceRecord, server: AttendanceRecord) -> bool:
    """Differing version, or a critical field that differs beyond rounding."""

    if client.sync_version != server.sync_version:
        return True
    if _times_differ(client.clock_in_time, server.clock_in_time):
        return True
    if _times_differ(client.clock_out_time, server.clock_out_time):
        return True
    return client.status != server.status


def prevalidate(payload: Any, *, now: datetime) -> Tuple[List[str], List[str]]:
    """Check the dedupe key before anything else. Returns (errors, warnings)."""

    if not isinstance(payload, dict):
        return ["record must be a JSON object"], []

    errors: List[str] = []
    warnings: List[str] = []
    if not payload.get("device_id"):
        errors.append("device_id is required for sync")

    if not payload.get("client_timestamp"):
        errors.append("client_timestamp is required for sync")
    else:
        try:
            client_ts = parse_iso_datetime(payload["client_timestamp"], "client_timestamp")
        except ValidationError as exc:
            errors.append(exc.message)
        else:
            if client_ts > now:
                errors.append("client_timestamp is in the future")
            elif now - client_ts > timedelta(days=SYNC_MAX_AGE_DAYS):
                warnings.append(f"client_timestamp is more than {SYNC_MAX_AGE_DAYS} days old")
    return errors, warnings


class SyncReconciler:
    """Reconcile offline attendance copies against server state.

    Records are processed one by one, each in its own transaction; a bad
    record lands in ``errors``/``validation_errors`` and the batch goes on.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        recorder: ActivityRecorder,
        *,
        factory: Optional[ConflictResolverFactory] = None,
        default_strategy: ConflictStrategy = ConflictStrategy.SERVER_WINS,
    ):
        self._attendance = attendance
        self._recorder = recorder
        self._factory = factory or ConflictResolverFactory()
        self._default_strategy = default_strategy

    def sync_batch(self, records: Sequence[Any], user: User, *, now: Optional[datetime] = None) -> BatchResult:
        now = now or utc_now()
        result = BatchResult(submitted=len(records))
        logger.info("Starting sync of %s offline records for user %s", len(records), user.user_id)

        for index, payload in enumerate(records):
            errors, warnings = prevalidate(payload, now=now)
            for w in warnings:
                result.warnings.append({"index": index, "warning": w})
            if errors:
                result.validation_errors.append({"index": index, "errors": errors})
                continue

            try:
                record = SyncRecord.from_payload(
                    payload,
                    default_facility_id=user.facility_id,
                    default_strategy=self._default_strategy,
                )
            except ValidationError as exc:
                result.validation_errors.append({"index": index, "errors": [exc.message]})
                continue

            try:
                self._process(index, record, user, now=now, result=result)
            except DomainError as exc:
                logger.warning("Sync record %s failed: %s", index, exc.message)
                result.errors.append({"index": index, "error": exc.message, "code": exc.code})
            except Exception as exc:
                logger.error("Sync record %s failed unexpectedly", index, exc_info=True)
                result.errors.append({"index": index, "error": str(exc) or type(exc).__name__, "code": "INTERNAL_ERROR"})

        summary = result.summary
        self._recorder.record(
            user_id=user.user_id,
            action="sync",
            entity_type="attendance",
            description=f"Synced {summary['inserted'] + summary['updated']} offline attendance records",
            metadata=summary,
        )
        logger.info("Offline sync completed for user %s: %s", user.user_id, summary)
        return result

    def _process(self, index: int, record: SyncRecord, user: User, *, now: datetime, result: BatchResult) -> None:
        candidate = record.to_attendance(user_id=user.user_id, now=now)
        server = self._attendance.find_by_sync_key(record.device_id, record.client_timestamp)

        if server is None:
            try:
                created = self._attendance.create(candidate)
            except DuplicateEntry:
                # Another request stored the same key first; resolve against it once.
                server = self._attendance.find_by_sync_key(record.device_id, record.client_timestamp)
                if server is None:
                    raise
            else:
                result.outcomes.append(SyncOutcome(index=index, action=SyncAction.INSERT, attendance_id=created.attendance_id))
                return

        self._resolve(index, candidate, server, user, now=now, result=result)

    def _resolve(
        self,
        index: int,
        candidate: AttendanceRecord,
        server: AttendanceRecord,
        user: User,
        *,
        now: datetime,
        result: BatchResult,
    ) -> None:
        if server.user_id != user.user_id:
            raise AuthorizationError("Record belongs to another user")

        if not detect_conflict(candidate, server):
            result.outcomes.append(SyncOutcome(index=index, action=SyncAction.NO_CHANGE, attendance_id=server.attendance_id))
            return

        resolver = self._factory.for_strategy(candidate.conflict_resolution_strategy)
        resolution = resolver.resolve(candidate, server, now=now)
        strategy = resolution.strategy.value

        if resolution.action == SyncAction.UPDATE and resolution.resolved is not None:
            problem = resolution.resolved.lifecycle_error()
            if problem:
                raise ValidationError(f"Merged record is inconsistent: {problem}")
            saved = self._attendance.save_merged(resolution.resolved)
            outcome = SyncOutcome(index, SyncAction.UPDATE, saved.attendance_id, conflict=True, resolution=strategy)
        elif resolution.action == SyncAction.MANUAL_REVIEW:
            result.conflicts.append(
                {
                    "index": index,
                    "client_record": candidate.to_dict(),
                    "server_record": server.to_dict(),
                }
            )
            outcome = SyncOutcome(index, SyncAction.MANUAL_REVIEW, server.attendance_id, conflict=True, resolution=strategy)
        else:
            outcome = SyncOutcome(index, SyncAction.NO_CHANGE, server.attendance_id, conflict=True, resolution=strategy)
        result.outcomes.append(outcome)

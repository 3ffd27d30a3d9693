from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.field_attendance.field_attendance.activities.service import ActivityRecorder
from src.field_attendance.field_attendance.attendance.model import AttendanceRecord
from src.field_attendance.field_attendance.core.enums import (
    AttendanceStatus,
    ConflictStrategy,
    SyncAction,
    ValidationStatus,
)
from src.field_attendance.field_attendance.core.exceptions import DuplicateEntry
from src.field_attendance.field_attendance.sync.factory import ConflictResolverFactory
from src.field_attendance.field_attendance.sync.service import SyncReconciler, detect_conflict, prevalidate
from src.field_attendance.field_attendance.sync.strategies.base import ConflictResolver, Resolution
from src.field_attendance.field_attendance.sync.strategies.manual import ManualResolver
from src.field_attendance.field_attendance.sync.strategies.server_wins import ServerWinsResolver

CLIENT_TS = datetime(2025, 3, 9, 7, 0, 0)


def offline_payload(**overrides):
    payload = {
        "device_id": "tablet-7",
        "client_timestamp": "2025-03-09T07:00:00Z",
        "facility_id": 1,
        "clock_in_time": "2025-03-09T07:00:00Z",
        "clock_out_time": "2025-03-09T15:00:00Z",
        "clock_in_latitude": -1.9540,
        "clock_in_longitude": 30.0609,
        "status": "completed",
        "sync_version": 1,
    }
    payload.update(overrides)
    return payload


def seed_server_copy(repo, *, user_id=1, sync_version=1, clock_out=datetime(2025, 3, 9, 15, 0, 0)):
    return repo.create(
        AttendanceRecord(
            user_id=user_id,
            facility_id=1,
            clock_in_time=CLIENT_TS,
            clock_out_time=clock_out,
            status=AttendanceStatus.COMPLETED,
            validation_status=ValidationStatus.UNVERIFIED,
            device_id="tablet-7",
            client_timestamp=CLIENT_TS,
            server_timestamp=datetime(2025, 3, 9, 16, 0, 0),
            sync_version=sync_version,
            notes="server note",
            metadata={"source": "server"},
        )
    )


@pytest.fixture
def reconciler(container):
    return container.sync_reconciler


def test_new_record_is_inserted_unverified(reconciler, users, attendance_repo, activities, fixed_now):
    result = reconciler.sync_batch([offline_payload()], users.get_by_id(1), now=fixed_now)

    [outcome] = result.outcomes
    assert outcome.action == SyncAction.INSERT
    stored = attendance_repo.get_by_id(outcome.attendance_id)
    assert stored.validation_status == ValidationStatus.UNVERIFIED
    assert stored.synced is True
    assert stored.server_timestamp == fixed_now
    assert result.summary["inserted"] == 1
    assert activities.entries[-1].action == "sync"


def test_resubmitting_identical_record_is_no_change(reconciler, users, attendance_repo, fixed_now):
    user = users.get_by_id(1)
    reconciler.sync_batch([offline_payload()], user, now=fixed_now)

    result = reconciler.sync_batch([offline_payload()], user, now=fixed_now)

    assert [o.action for o in result.outcomes] == [SyncAction.NO_CHANGE]
    assert result.outcomes[0].conflict is False
    assert len(attendance_repo.records) == 1


def test_client_wins_merges_and_bumps_version(reconciler, users, attendance_repo, fixed_now):
    server = seed_server_copy(attendance_repo, sync_version=1)
    payload = offline_payload(
        sync_version=2,
        clock_out_time="2025-03-09T16:00:00Z",
        conflict_resolution_strategy="client_wins",
        metadata={"source": "client"},
    )

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    [outcome] = result.outcomes
    assert outcome.action == SyncAction.UPDATE
    assert outcome.resolution == "client_wins"
    merged = attendance_repo.get_by_id(server.attendance_id)
    assert merged.sync_version == 3
    assert merged.synced is True
    assert merged.clock_out_time == datetime(2025, 3, 9, 16, 0, 0)
    assert merged.attendance_id == server.attendance_id
    assert merged.created_at == server.created_at
    assert merged.notes == "server note"
    assert merged.metadata["source"] == "client"
    assert merged.metadata["conflict_resolved"] is True
    assert merged.metadata["resolution_strategy"] == "client_wins"


def test_server_wins_keeps_stored_row(reconciler, users, attendance_repo, fixed_now):
    server = seed_server_copy(attendance_repo, sync_version=1)

    result = reconciler.sync_batch([offline_payload(sync_version=2)], users.get_by_id(1), now=fixed_now)

    [outcome] = result.outcomes
    assert outcome.action == SyncAction.NO_CHANGE
    assert outcome.conflict is True
    assert outcome.resolution == "server_wins"
    assert attendance_repo.get_by_id(server.attendance_id) == server


def test_manual_strategy_returns_both_copies(reconciler, users, attendance_repo, fixed_now):
    server = seed_server_copy(attendance_repo, sync_version=1)
    payload = offline_payload(sync_version=2, conflict_resolution_strategy="manual")

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.outcomes[0].action == SyncAction.MANUAL_REVIEW
    [pair] = result.conflicts
    assert pair["index"] == 0
    assert pair["server_record"]["id"] == server.attendance_id
    assert pair["client_record"]["sync_version"] == 2
    assert result.summary["conflicts"] == 1
    assert attendance_repo.get_by_id(server.attendance_id) == server


def test_record_without_device_id_is_skipped_and_batch_continues(reconciler, users, fixed_now):
    records = [
        offline_payload(),
        offline_payload(device_id=None),
        offline_payload(device_id="tablet-8"),
    ]

    result = reconciler.sync_batch(records, users.get_by_id(1), now=fixed_now)

    assert len(result.outcomes) == 2
    assert [v["index"] for v in result.validation_errors] == [1]
    assert result.summary["submitted"] == 3
    assert result.summary["validation_errors"] == 1


def test_future_client_timestamp_is_rejected(reconciler, users, fixed_now):
    payload = offline_payload(client_timestamp="2025-03-11T07:00:00Z")

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.outcomes == []
    assert result.validation_errors == [{"index": 0, "errors": ["client_timestamp is in the future"]}]


def test_old_record_is_accepted_with_warning(reconciler, users, fixed_now):
    payload = offline_payload(
        client_timestamp="2025-01-02T07:00:00Z",
        clock_in_time="2025-01-02T07:00:00Z",
        clock_out_time="2025-01-02T15:00:00Z",
    )

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.outcomes[0].action == SyncAction.INSERT
    assert result.warnings[0]["index"] == 0


def test_invalid_record_lands_in_validation_errors(reconciler, users, fixed_now):
    payload = offline_payload(clock_out_time="2025-03-09T06:00:00Z")

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.validation_errors[0]["index"] == 0
    assert result.outcomes == []


def test_key_owned_by_another_user_is_an_error(reconciler, users, attendance_repo, fixed_now):
    seed_server_copy(attendance_repo, user_id=2, sync_version=1)

    result = reconciler.sync_batch([offline_payload(sync_version=2)], users.get_by_id(1), now=fixed_now)

    assert result.outcomes == []
    assert result.errors[0]["code"] == "FORBIDDEN"


def test_insert_race_resolves_against_the_winner(reconciler, users, attendance_repo, fixed_now):
    original_find = attendance_repo.find_by_sync_key
    calls = {"n": 0}

    def find_after_race(device_id, client_timestamp):
        calls["n"] += 1
        if calls["n"] == 1:
            seed_server_copy(attendance_repo)
            return None
        return original_find(device_id, client_timestamp)

    attendance_repo.find_by_sync_key = find_after_race

    result = reconciler.sync_batch([offline_payload()], users.get_by_id(1), now=fixed_now)

    assert [o.action for o in result.outcomes] == [SyncAction.NO_CHANGE]
    assert len(attendance_repo.records) == 1


def test_duplicate_without_matching_key_is_reported(reconciler, users, attendance_repo, fixed_now):
    def always_duplicate(record):
        raise DuplicateEntry("Duplicate entry")

    attendance_repo.create = always_duplicate

    result = reconciler.sync_batch([offline_payload()], users.get_by_id(1), now=fixed_now)

    assert result.errors[0]["code"] == "DUPLICATE_ENTRY"


def test_prevalidate_reports_every_missing_key(fixed_now):
    errors, warnings = prevalidate({}, now=fixed_now)

    assert len(errors) == 2
    assert warnings == []
    assert prevalidate("nope", now=fixed_now)[0] == ["record must be a JSON object"]


def test_detect_conflict_tolerates_sub_second_drift():
    server = AttendanceRecord(user_id=1, facility_id=1, clock_in_time=CLIENT_TS)
    drifted = AttendanceRecord(user_id=1, facility_id=1, clock_in_time=CLIENT_TS.replace(microsecond=500_000))

    assert detect_conflict(drifted, server) is False
    assert detect_conflict(AttendanceRecord(user_id=1, facility_id=1, clock_in_time=CLIENT_TS, sync_version=2), server) is True
    assert detect_conflict(
        AttendanceRecord(user_id=1, facility_id=1, clock_in_time=CLIENT_TS, status=AttendanceStatus.COMPLETED),
        server,
    ) is True


def test_default_strategy_comes_from_reconciler(users, attendance_repo, activities, fixed_now):
    reconciler = SyncReconciler(
        attendance_repo,
        ActivityRecorder(activities),
        default_strategy=ConflictStrategy.CLIENT_WINS,
    )
    seed_server_copy(attendance_repo, sync_version=1)

    result = reconciler.sync_batch([offline_payload(sync_version=2)], users.get_by_id(1), now=fixed_now)

    assert result.outcomes[0].action == SyncAction.UPDATE


def test_client_wins_reopening_a_shift_clears_stored_clock_out(reconciler, users, attendance_repo, fixed_now):
    server = seed_server_copy(attendance_repo, sync_version=1, clock_out=datetime(2025, 3, 9, 9, 0, 0))
    payload = offline_payload(
        clock_in_time="2025-03-09T10:00:00Z",
        clock_out_time=None,
        status="active",
        sync_version=2,
        conflict_resolution_strategy="client_wins",
    )

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.errors == []
    merged = attendance_repo.get_by_id(server.attendance_id)
    assert merged.status == AttendanceStatus.ACTIVE
    assert merged.clock_in_time == datetime(2025, 3, 9, 10, 0, 0)
    assert merged.clock_out_time is None


def test_status_contradicting_clock_out_is_a_validation_error(reconciler, users, attendance_repo, fixed_now):
    result = reconciler.sync_batch([offline_payload(status="active")], users.get_by_id(1), now=fixed_now)

    assert result.outcomes == []
    assert result.validation_errors[0]["index"] == 0
    assert attendance_repo.records == {}


class ReversingResolver(ConflictResolver):
    strategy = ConflictStrategy.CLIENT_WINS

    def resolve(self, client, server, *, now):
        broken = replace(server, clock_out_time=server.clock_in_time - timedelta(hours=1))
        return Resolution(action=SyncAction.UPDATE, resolved=broken, strategy=self.strategy)


def test_inconsistent_merge_is_reported_and_not_saved(users, attendance_repo, activities, fixed_now):
    reconciler = SyncReconciler(
        attendance_repo,
        ActivityRecorder(activities),
        factory=ConflictResolverFactory([ReversingResolver(), ServerWinsResolver(), ManualResolver()]),
    )
    server = seed_server_copy(attendance_repo, sync_version=1)
    payload = offline_payload(sync_version=2, conflict_resolution_strategy="client_wins")

    result = reconciler.sync_batch([payload], users.get_by_id(1), now=fixed_now)

    assert result.outcomes == []
    assert result.errors[0]["code"] == "VALIDATION_ERROR"
    assert attendance_repo.get_by_id(server.attendance_id) == server


def test_repeated_client_wins_merges_keep_identity_and_raise_version(reconciler, users, attendance_repo, fixed_now):
    server = seed_server_copy(attendance_repo, sync_version=1)
    user = users.get_by_id(1)

    for round_no, clock_out_hour in enumerate((16, 17, 18), start=1):
        now = fixed_now + timedelta(minutes=round_no)
        stored = attendance_repo.get_by_id(server.attendance_id)
        payload = offline_payload(
            clock_out_time=f"2025-03-09T{clock_out_hour}:00:00Z",
            sync_version=stored.sync_version,
            conflict_resolution_strategy="client_wins",
        )

        result = reconciler.sync_batch([payload], user, now=now)

        assert result.outcomes[0].action == SyncAction.UPDATE
        merged = attendance_repo.get_by_id(server.attendance_id)
        assert merged.sync_version == stored.sync_version + 1 == round_no + 1
        assert merged.attendance_id == server.attendance_id
        assert merged.created_at == server.created_at
        assert merged.clock_out_time == datetime(2025, 3, 9, clock_out_hour, 0, 0)
        assert merged.metadata["resolved_at"] == now.isoformat() + "Z"

    assert len(attendance_repo.records) == 1

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest
from werkzeug.security import generate_password_hash

from src.field_attendance.field_attendance.activities.model import Activity
from src.field_attendance.field_attendance.attendance.model import AttendanceRecord
from src.field_attendance.field_attendance.container import assemble_container
from src.field_attendance.field_attendance.core.enums import AttendanceStatus, InvalidationReason, Role
from src.field_attendance.field_attendance.core.exceptions import DuplicateEntry
from src.field_attendance.field_attendance.devices.model import UserDevice
from src.field_attendance.field_attendance.facilities.model import Facility
from src.field_attendance.field_attendance.main import create_app
from src.field_attendance.field_attendance.sessions.model import SessionLookup, SessionMeta, UserSession
from src.field_attendance.field_attendance.spoofing.model import LastKnownLocation
from src.field_attendance.field_attendance.users.model import User

PASSWORD = "secret-pass-1"
FACILITY_LAT = -1.9536
FACILITY_LON = 30.0606


class InMemoryUsers:
    def __init__(self, users: List[User]):
        self.users_by_id: Dict[int, User] = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self.users_by_id.values() if u.email == email), None)

    def touch_last_login(self, user_id: int, *, at: datetime) -> None:
        self.users_by_id[user_id] = replace(self.users_by_id[user_id], last_login_at=at)

    def deactivate(self, user_id: int) -> None:
        self.users_by_id[user_id] = replace(self.users_by_id[user_id], is_active=False)


class InMemoryFacilities:
    def __init__(self, facilities: List[Facility]):
        self.facilities = {f.facility_id: f for f in facilities}

    def get_by_id(self, facility_id: int) -> Optional[Facility]:
        return self.facilities.get(facility_id)


class InMemoryAttendance:
    """Mirrors the two UNIQUE constraints of the attendance table."""

    def __init__(self):
        self.records: Dict[int, AttendanceRecord] = {}
        self._id = 0

    def _check_unique(self, record: AttendanceRecord, *, ignore_id: Optional[int] = None) -> None:
        for other in self.records.values():
            if other.attendance_id == ignore_id:
                continue
            if (
                record.status == AttendanceStatus.ACTIVE
                and other.status == AttendanceStatus.ACTIVE
                and other.user_id == record.user_id
            ):
                raise DuplicateEntry("Duplicate entry", detail="uq_attendance_one_active")
            if (
                record.device_id is not None
                and record.client_timestamp is not None
                and (other.device_id, other.client_timestamp) == (record.device_id, record.client_timestamp)
            ):
                raise DuplicateEntry("Duplicate entry", detail="uq_attendance_sync_key")

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(attendance_id)

    def get_active_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        return next(
            (r for r in self.records.values() if r.user_id == user_id and r.status == AttendanceStatus.ACTIVE),
            None,
        )

    def get_recent_for_user(self, user_id: int, limit: int):
        items = [r for r in self.records.values() if r.user_id == user_id]
        items.sort(key=lambda r: r.clock_in_time, reverse=True)
        return items[:limit]

    def get_last_clock_in_location(self, user_id: int) -> Optional[LastKnownLocation]:
        items = [
            r
            for r in self.records.values()
            if r.user_id == user_id and r.clock_in_latitude is not None and r.clock_in_longitude is not None
        ]
        if not items:
            return None
        last = max(items, key=lambda r: r.clock_in_time)
        return LastKnownLocation(last.clock_in_latitude, last.clock_in_longitude, last.clock_in_time)

    def find_by_sync_key(self, device_id: str, client_timestamp: datetime) -> Optional[AttendanceRecord]:
        return next(
            (r for r in self.records.values() if r.device_id == device_id and r.client_timestamp == client_timestamp),
            None,
        )

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        self._check_unique(record)
        self._id += 1
        stamp = record.server_timestamp or record.clock_in_time
        created = replace(record, attendance_id=self._id, created_at=stamp, updated_at=stamp)
        self.records[self._id] = created
        return created

    def complete_clock_out(self, *, attendance_id: int, clock_out_time, latitude, longitude, accuracy_meters,
                           distance_meters, validation_status, notes, metadata) -> Optional[AttendanceRecord]:
        current = self.records.get(attendance_id)
        if not current or current.status != AttendanceStatus.ACTIVE:
            return None
        updated = replace(
            current,
            clock_out_time=clock_out_time,
            clock_out_latitude=latitude,
            clock_out_longitude=longitude,
            clock_out_accuracy_meters=accuracy_meters,
            clock_out_distance_meters=distance_meters,
            validation_status=validation_status,
            notes=notes if notes is not None else current.notes,
            metadata=dict(metadata),
            status=AttendanceStatus.COMPLETED,
        )
        self.records[attendance_id] = updated
        return updated

    def save_merged(self, record: AttendanceRecord) -> AttendanceRecord:
        self._check_unique(record, ignore_id=record.attendance_id)
        self.records[record.attendance_id] = record
        return record


class InMemoryActivities:
    def __init__(self):
        self.entries: List[Activity] = []
        self.failing_actions: set = set()

    def append(self, *, user_id, action, entity_type, entity_id=None, description=None, metadata=None) -> None:
        if action in self.failing_actions:
            raise RuntimeError(f"activity store unavailable for {action}")
        self.entries.append(Activity(user_id, action, entity_type, entity_id, description, dict(metadata or {})))

    def actions(self) -> List[str]:
        return [e.action for e in self.entries]


class InMemorySessions:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self.sessions: Dict[int, UserSession] = {}
        self._id = 0

    def _invalidate_where(self, predicate, *, reason: InvalidationReason, now: datetime) -> int:
        count = 0
        for sid, s in list(self.sessions.items()):
            if s.is_active and predicate(s):
                self.sessions[sid] = replace(s, is_active=False, invalidated_at=now, invalidation_reason=reason)
                count += 1
        return count

    def replace_active_session(self, *, user_id: int, token_hash: str, meta: SessionMeta, expires_at: datetime,
                               now: datetime) -> Tuple[UserSession, int]:
        invalidated = self._invalidate_where(
            lambda s: s.user_id == user_id, reason=InvalidationReason.NEW_LOGIN, now=now
        )
        self._id += 1
        session = UserSession(
            session_id=self._id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            device_fingerprint=meta.device_fingerprint,
            ip_address=meta.ip_address,
            user_agent=meta.user_agent,
            created_at=now,
        )
        self.sessions[self._id] = session
        return session, invalidated

    def find_by_token_hash(self, token_hash: str) -> Optional[SessionLookup]:
        for s in self.sessions.values():
            if s.token_hash == token_hash and s.is_active:
                user = self._users.get_by_id(s.user_id)
                return SessionLookup(session=s, user_is_active=bool(user and user.is_active))
        return None

    def invalidate(self, session_id: int, *, reason: InvalidationReason, now: datetime) -> bool:
        return self._invalidate_where(lambda s: s.session_id == session_id, reason=reason, now=now) == 1

    def invalidate_user_sessions(self, user_id: int, *, reason: InvalidationReason, now: datetime) -> int:
        return self._invalidate_where(lambda s: s.user_id == user_id, reason=reason, now=now)

    def cleanup_expired(self, *, now: datetime) -> int:
        return self._invalidate_where(lambda s: s.expires_at <= now, reason=InvalidationReason.EXPIRED, now=now)

    def list_active(self, user_id: int, *, now: datetime):
        return [s for s in self.sessions.values() if s.user_id == user_id and s.is_active and s.expires_at > now]

    def active_for(self, user_id: int) -> List[UserSession]:
        return [s for s in self.sessions.values() if s.user_id == user_id and s.is_active]


class InMemoryDevices:
    def __init__(self):
        self.devices: Dict[int, UserDevice] = {}
        self._id = 0

    def upsert(self, *, user_id, device_fingerprint, device_id, browser, platform, now) -> UserDevice:
        for pk, d in self.devices.items():
            if d.user_id == user_id and d.device_fingerprint == device_fingerprint:
                updated = replace(
                    d,
                    device_id=device_id or d.device_id,
                    browser=browser or d.browser,
                    platform=platform or d.platform,
                    last_used_at=now,
                )
                self.devices[pk] = updated
                return updated
        self._id += 1
        device = UserDevice(self._id, user_id, device_fingerprint, device_id, None, browser, platform, last_used_at=now)
        self.devices[self._id] = device
        return device

    def get_by_id(self, device_pk: int) -> Optional[UserDevice]:
        return self.devices.get(device_pk)

    def list_for_user(self, user_id: int):
        return [d for d in self.devices.values() if d.user_id == user_id]

    def set_approval(self, device_pk: int, *, approved_by, at) -> Optional[UserDevice]:
        current = self.devices.get(device_pk)
        if not current:
            return None
        updated = replace(current, is_active=approved_by is not None, approved_by=approved_by, approved_at=at)
        self.devices[device_pk] = updated
        return updated


def make_user(user_id: int, *, role: Role = Role.DATA_CLERK, facility_id: Optional[int] = 1, is_active: bool = True) -> User:
    return User(
        user_id=user_id,
        email=f"user{user_id}@example.org",
        full_name=f"User {user_id}",
        password_hash=generate_password_hash(PASSWORD, method="pbkdf2:sha256:1000"),
        role=role,
        facility_id=facility_id,
        is_active=is_active,
    )


@pytest.fixture
def password() -> str:
    return PASSWORD


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 10, 8, 0, 0)


@pytest.fixture
def settings():
    return SimpleNamespace(
        SECRET_KEY="test-secret",
        JWT_SECRET="test-jwt-secret",
        JWT_REFRESH_SECRET="test-refresh-secret",
        JWT_ISSUER="field-attendance",
        JWT_AUDIENCE="field-workers",
        ACCESS_TOKEN_TTL_HOURS=24,
        REFRESH_TOKEN_TTL_DAYS=7,
        LOGIN_RATE_LIMIT={"max_attempts": 5, "window_seconds": 900, "block_seconds": 1800},
        SYNC_DEFAULT_STRATEGY="server_wins",
        TRUSTED_PROXY_HOPS=0,
        SWEEP_INTERVAL_SECONDS=300,
        ENABLE_SWEEPERS=False,
        AUTO_INIT_DB=False,
        DEBUG=False,
        TESTING=True,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def users() -> InMemoryUsers:
    return InMemoryUsers([
        make_user(1),
        make_user(2, facility_id=None),
        make_user(3, is_active=False),
        make_user(9, role=Role.ADMIN),
    ])


@pytest.fixture
def facilities() -> InMemoryFacilities:
    return InMemoryFacilities([
        Facility(1, "Kigali Health Centre", FACILITY_LAT, FACILITY_LON, 100),
        Facility(2, "Unmapped Post", None, None, 100),
        Facility(3, "Closed Clinic", -1.95, 30.06, 100, is_active=False),
    ])


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def activities() -> InMemoryActivities:
    return InMemoryActivities()


@pytest.fixture
def sessions_repo(users) -> InMemorySessions:
    return InMemorySessions(users)


@pytest.fixture
def devices_repo() -> InMemoryDevices:
    return InMemoryDevices()


@pytest.fixture
def container(settings, users, facilities, attendance_repo, activities, sessions_repo, devices_repo):
    return assemble_container(
        settings=settings,
        users_repo=users,
        facilities_repo=facilities,
        attendance_repo=attendance_repo,
        activities_repo=activities,
        sessions_repo=sessions_repo,
        devices_repo=devices_repo,
    )


@pytest.fixture
def app(container, settings):
    return create_app(container, settings=settings)


@pytest.fixture
def client(app):
    return app.test_client()

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from .activities.mysql_activity_repository import MySQLActivityRepository
from .activities.repository import ActivityRepository
from .activities.service import ActivityRecorder
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceEngine
from .core.constants import DEFAULT_SWEEP_INTERVAL_SECONDS
from .core.enums import ConflictStrategy
from .database.connection import DBConfig, DatabaseConnection
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.repository import DeviceRepository
from .devices.service import DeviceRegistry
from .facilities.mysql_facility_repository import MySQLFacilityRepository
from .facilities.repository import FacilityRepository
from .geofence.service import GeofenceValidator
from .ratelimit.limiter import LoginRateLimiter
from .ratelimit.store import InMemoryRateLimitStore, RateLimitStore
from .sessions.middleware import AuthGuard
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionManager
from .sessions.tokens import TokenIssuer
from .spoofing.factory import build_spoofing_detector
from .spoofing.service import SpoofingDetector
from .sync.factory import ConflictResolverFactory
from .sync.service import SyncReconciler
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    facilities_repo: FacilityRepository
    attendance_repo: AttendanceRepository
    activities_repo: ActivityRepository
    sessions_repo: SessionRepository
    devices_repo: DeviceRepository

    activity_recorder: ActivityRecorder
    geofence_validator: GeofenceValidator
    spoofing_detector: SpoofingDetector
    attendance_engine: AttendanceEngine
    sync_reconciler: SyncReconciler
    session_manager: SessionManager
    token_issuer: TokenIssuer
    device_registry: DeviceRegistry
    rate_limiter: LoginRateLimiter
    auth_service: AuthService
    auth_guard: AuthGuard

    sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS


def assemble_container(
    *,
    settings: Any,
    users_repo: UserRepository,
    facilities_repo: FacilityRepository,
    attendance_repo: AttendanceRepository,
    activities_repo: ActivityRepository,
    sessions_repo: SessionRepository,
    devices_repo: DeviceRepository,
    rate_limit_store: Optional[RateLimitStore] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories (MySQL in production, fakes in tests)."""

    access_ttl = timedelta(hours=int(getattr(settings, "ACCESS_TOKEN_TTL_HOURS", 24)))
    refresh_ttl = timedelta(days=int(getattr(settings, "REFRESH_TOKEN_TTL_DAYS", 7)))
    limits = dict(getattr(settings, "LOGIN_RATE_LIMIT", {}) or {})

    activity_recorder = ActivityRecorder(activities_repo)
    geofence_validator = GeofenceValidator(facilities_repo)
    spoofing_detector = build_spoofing_detector(attendance_repo, activity_recorder)
    attendance_engine = AttendanceEngine(attendance_repo, spoofing_detector, geofence_validator, activity_recorder)
    sync_reconciler = SyncReconciler(
        attendance_repo,
        activity_recorder,
        factory=ConflictResolverFactory(),
        default_strategy=ConflictStrategy.parse(getattr(settings, "SYNC_DEFAULT_STRATEGY", None)),
    )
    session_manager = SessionManager(sessions_repo, ttl=access_ttl)
    token_issuer = TokenIssuer(
        secret=str(getattr(settings, "JWT_SECRET")),
        refresh_secret=str(getattr(settings, "JWT_REFRESH_SECRET")),
        issuer=str(getattr(settings, "JWT_ISSUER", "field-attendance")),
        audience=str(getattr(settings, "JWT_AUDIENCE", "field-workers")),
        access_ttl=access_ttl,
        refresh_ttl=refresh_ttl,
    )
    device_registry = DeviceRegistry(devices_repo)
    rate_limiter = LoginRateLimiter(
        rate_limit_store or InMemoryRateLimitStore(),
        max_attempts=int(limits.get("max_attempts", 5)),
        window=timedelta(seconds=int(limits.get("window_seconds", 900))),
        block=timedelta(seconds=int(limits.get("block_seconds", 1800))),
    )
    auth_service = AuthService(
        users_repo,
        session_manager,
        token_issuer,
        device_registry,
        activity_recorder,
        rate_limiter,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        facilities_repo=facilities_repo,
        attendance_repo=attendance_repo,
        activities_repo=activities_repo,
        sessions_repo=sessions_repo,
        devices_repo=devices_repo,
        activity_recorder=activity_recorder,
        geofence_validator=geofence_validator,
        spoofing_detector=spoofing_detector,
        attendance_engine=attendance_engine,
        sync_reconciler=sync_reconciler,
        session_manager=session_manager,
        token_issuer=token_issuer,
        device_registry=device_registry,
        rate_limiter=rate_limiter,
        auth_service=auth_service,
        auth_guard=AuthGuard(session_manager, users_repo),
        sweep_interval_seconds=int(getattr(settings, "SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)),
    )


def build_container(settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))

    return assemble_container(
        settings=settings,
        users_repo=MySQLUserRepository(conn),
        facilities_repo=MySQLFacilityRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        activities_repo=MySQLActivityRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        devices_repo=MySQLDeviceRepository(conn),
        conn=conn,
    )

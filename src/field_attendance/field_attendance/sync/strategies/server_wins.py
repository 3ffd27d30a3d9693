from __future__ import annotations

from datetime import datetime

from ...attendance.model import AttendanceRecord
from ...core.enums import ConflictStrategy, SyncAction
from .base import ConflictResolver, Resolution


class ServerWinsResolver(ConflictResolver):
    """Discard the client copy; the stored row stays as it is."""

    strategy = ConflictStrategy.SERVER_WINS

    def resolve(self, client: AttendanceRecord, server: AttendanceRecord, *, now: datetime) -> Resolution:
        return Resolution(action=SyncAction.NO_CHANGE, resolved=server, strategy=self.strategy)

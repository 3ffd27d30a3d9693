from __future__ import annotations

from datetime import datetime

from ...attendance.model import AttendanceRecord
from ...core.enums import ConflictStrategy, SyncAction
from .base import ConflictResolver, Resolution


class ManualResolver(ConflictResolver):
    """Apply nothing; the pair is handed back for human review."""

    strategy = ConflictStrategy.MANUAL

    def resolve(self, client: AttendanceRecord, server: AttendanceRecord, *, now: datetime) -> Resolution:
        return Resolution(action=SyncAction.MANUAL_REVIEW, resolved=None, strategy=self.strategy)

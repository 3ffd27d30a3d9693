from __future__ import annotations

from dataclasses import fields, replace
from datetime import datetime

from ...attendance.model import AttendanceRecord
from ...common.datetime_utils import isoformat
from ...core.enums import ConflictStrategy, SyncAction
from .base import ConflictResolver, Resolution

# Identity and audit columns always come from the stored row.
_SERVER_OWNED = {"attendance_id", "user_id", "created_at", "updated_at", "device_id", "client_timestamp"}
# Recomputed by the merge itself.
_MERGE_MANAGED = {"sync_version", "synced", "server_timestamp", "metadata"}
# Shift lifecycle fields move together, None included, so a reopened
# shift does not keep the stored clock-out.
_LIFECYCLE = ("clock_in_time", "clock_out_time", "status")


class ClientWinsResolver(ConflictResolver):
    strategy = ConflictStrategy.CLIENT_WINS

    def resolve(self, client: AttendanceRecord, server: AttendanceRecord, *, now: datetime) -> Resolution:
        changes = {name: getattr(client, name) for name in _LIFECYCLE}
        for f in fields(AttendanceRecord):
            if f.name in _SERVER_OWNED or f.name in _MERGE_MANAGED or f.name in _LIFECYCLE:
                continue
            value = getattr(client, f.name)
            if value is not None:
                changes[f.name] = value

        merged = replace(
            server,
            **changes,
            sync_version=max(client.sync_version, server.sync_version) + 1,
            synced=True,
            server_timestamp=now,
            metadata={
                **server.metadata,
                **client.metadata,
                "conflict_resolved": True,
                "resolution_strategy": self.strategy.value,
                "resolved_at": isoformat(now),
            },
        )
        return Resolution(action=SyncAction.UPDATE, resolved=merged, strategy=self.strategy)

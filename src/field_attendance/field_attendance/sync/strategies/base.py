from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...attendance.model import AttendanceRecord
from ...core.enums import ConflictStrategy, SyncAction


@dataclass(frozen=True)
class Resolution:
    action: SyncAction
    resolved: Optional[AttendanceRecord]
    strategy: ConflictStrategy


class ConflictResolver(ABC):
    """Strategy Pattern: settle a conflicting client/server pair."""

    strategy: ConflictStrategy

    @abstractmethod
    def resolve(self, client: AttendanceRecord, server: AttendanceRecord, *, now: datetime) -> Resolution:
        raise NotImplementedError

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol


@dataclass
class RateLimitEntry:
    count: int
    window_ends_at: datetime
    blocked_until: Optional[datetime] = None


class RateLimitStore(Protocol):
    """Where attempt counters live. Swap in a shared store for multi-process deployments."""

    def get(self, key: str) -> Optional[RateLimitEntry]:
        raise NotImplementedError

    def increment(
        self, key: str, *, now: datetime, window: timedelta, max_attempts: int, block: timedelta
    ) -> RateLimitEntry:
        """Count one attempt and apply the block as a single atomic step."""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def cleanup(self, *, now: datetime) -> int:
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    """Single-process store guarded by a lock."""

    def __init__(self, *, grace: timedelta = timedelta(minutes=1)):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._grace = grace

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return RateLimitEntry(entry.count, entry.window_ends_at, entry.blocked_until)

    def increment(
        self, key: str, *, now: datetime, window: timedelta, max_attempts: int, block: timedelta
    ) -> RateLimitEntry:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now > entry.window_ends_at:
                # A running block outlives the counting window.
                blocked_until = entry.blocked_until if entry else None
                entry = RateLimitEntry(count=1, window_ends_at=now + window, blocked_until=blocked_until)
            else:
                entry.count += 1
            if entry.count >= max_attempts and (entry.blocked_until is None or now >= entry.blocked_until):
                entry.blocked_until = now + block
            self._entries[key] = entry
            return RateLimitEntry(entry.count, entry.window_ends_at, entry.blocked_until)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def cleanup(self, *, now: datetime) -> int:
        with self._lock:
            stale = [
                key
                for key, entry in self._entries.items()
                if now > entry.window_ends_at + self._grace
                and (entry.blocked_until is None or now > entry.blocked_until)
            ]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

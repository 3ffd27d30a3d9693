from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import utc_now
from ..core.constants import DEFAULT_LOGIN_BLOCK_SECONDS, DEFAULT_LOGIN_MAX_ATTEMPTS, DEFAULT_LOGIN_WINDOW_SECONDS
from ..core.exceptions import TooManyRequests
from .store import RateLimitStore

logger = logging.getLogger(__name__)


class LoginRateLimiter:
    """Fixed-window counter of failed logins per client key.

    Reaching ``max_attempts`` inside the window blocks the key for
    ``block`` regardless of later successes.
    """

    def __init__(
        self,
        store: RateLimitStore,
        *,
        max_attempts: int = DEFAULT_LOGIN_MAX_ATTEMPTS,
        window: timedelta = timedelta(seconds=DEFAULT_LOGIN_WINDOW_SECONDS),
        block: timedelta = timedelta(seconds=DEFAULT_LOGIN_BLOCK_SECONDS),
    ):
        self._store = store
        self._max_attempts = int(max_attempts)
        self._window = window
        self._block = block

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def check(self, key: str, *, now: Optional[datetime] = None) -> None:
        now = now or utc_now()
        entry = self._store.get(key)
        if entry and entry.blocked_until and now < entry.blocked_until:
            retry_after = max(1, math.ceil((entry.blocked_until - now).total_seconds()))
            raise TooManyRequests(
                "Too many login attempts. Please try again later.",
                retry_after=retry_after,
            )

    def hit(self, key: str, *, now: Optional[datetime] = None) -> int:
        now = now or utc_now()
        entry = self._store.increment(
            key, now=now, window=self._window, max_attempts=self._max_attempts, block=self._block
        )
        if entry.blocked_until == now + self._block:
            logger.warning("Rate limit exceeded for %s; blocked for %ss", key, int(self._block.total_seconds()))
        return entry.count

    def reset(self, key: str) -> None:
        self._store.delete(key)

    def cleanup(self, *, now: Optional[datetime] = None) -> int:
        return self._store.cleanup(now=now or utc_now())

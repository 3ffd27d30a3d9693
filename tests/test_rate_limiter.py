import threading
from datetime import datetime, timedelta

import pytest

from src.field_attendance.field_attendance.core.exceptions import TooManyRequests
from src.field_attendance.field_attendance.ratelimit.limiter import LoginRateLimiter
from src.field_attendance.field_attendance.ratelimit.store import InMemoryRateLimitStore

NOW = datetime(2025, 3, 10, 8, 0, 0)


def make_limiter(**kwargs):
    return LoginRateLimiter(
        InMemoryRateLimitStore(),
        max_attempts=kwargs.get("max_attempts", 3),
        window=timedelta(minutes=15),
        block=timedelta(minutes=30),
    )


def test_blocks_after_max_attempts():
    limiter = make_limiter()
    for _ in range(3):
        limiter.check("ip", now=NOW)
        limiter.hit("ip", now=NOW)

    with pytest.raises(TooManyRequests) as exc:
        limiter.check("ip", now=NOW + timedelta(minutes=10))
    assert exc.value.details["retry_after"] == 20 * 60


def test_block_lifts_after_block_period():
    limiter = make_limiter()
    for _ in range(3):
        limiter.hit("ip", now=NOW)

    limiter.check("ip", now=NOW + timedelta(minutes=30))


def test_window_expiry_resets_count():
    limiter = make_limiter()
    limiter.hit("ip", now=NOW)
    limiter.hit("ip", now=NOW)

    assert limiter.hit("ip", now=NOW + timedelta(minutes=16)) == 1
    limiter.check("ip", now=NOW + timedelta(minutes=16))


def test_keys_are_independent_and_reset_clears():
    limiter = make_limiter()
    for _ in range(3):
        limiter.hit("a", now=NOW)

    limiter.check("b", now=NOW)
    limiter.reset("a")
    limiter.check("a", now=NOW)


def test_cleanup_drops_stale_entries_only():
    limiter = make_limiter()
    limiter.hit("stale", now=NOW)
    for _ in range(3):
        limiter.hit("blocked", now=NOW)

    removed = limiter.cleanup(now=NOW + timedelta(minutes=20))

    assert removed == 1
    assert len(limiter.store) == 1


def test_concurrent_hits_are_all_counted():
    limiter = make_limiter(max_attempts=10_000)

    def hammer():
        for _ in range(50):
            limiter.hit("ip", now=NOW)

    workers = [threading.Thread(target=hammer) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    entry = limiter.store.get("ip")
    assert entry.count == 400
    assert entry.blocked_until is None

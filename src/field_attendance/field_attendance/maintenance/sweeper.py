from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run ``task`` every ``interval_seconds`` on a daemon thread.

    A failing run is logged and the schedule continues; request handling
    never waits on a sweep.
    """

    def __init__(self, name: str, task: Callable[[], object], *, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._name = name
        self._task = task
        self._interval = float(interval_seconds)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> object:
        try:
            result = self._task()
        except Exception:
            logger.error("Sweeper %s failed", self._name, exc_info=True)
            return None
        logger.debug("Sweeper %s finished: %s", self._name, result)
        return result

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            self.run_once()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"sweeper-{self._name}", daemon=True)
        self._thread.start()
        logger.info("Sweeper %s started (every %ss)", self._name, int(self._interval))

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

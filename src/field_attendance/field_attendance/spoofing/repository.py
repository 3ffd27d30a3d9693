from __future__ import annotations

from typing import Optional, Protocol

from .model import LastKnownLocation


class LocationHistory(Protocol):
    def get_last_clock_in_location(self, user_id: int) -> Optional[LastKnownLocation]:
        """Most recent clock-in that carried coordinates, or None."""

        raise NotImplementedError

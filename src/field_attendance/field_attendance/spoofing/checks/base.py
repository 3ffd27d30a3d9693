from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..model import CheckOutcome, LocationSample


class SpoofingCheck(ABC):
    """Strategy Pattern: one independent way of judging a GPS sample."""

    name: str = "check"

    @abstractmethod
    def run(self, sample: LocationSample, *, user_id: Optional[int], now: datetime) -> CheckOutcome:
        raise NotImplementedError

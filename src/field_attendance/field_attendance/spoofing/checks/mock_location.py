from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import SpoofingFlag
from ..model import CheckOutcome, LocationSample
from .base import SpoofingCheck


class MockLocationCheck(SpoofingCheck):
    name = "mock_location"

    def run(self, sample: LocationSample, *, user_id: Optional[int], now: datetime) -> CheckOutcome:
        outcome = CheckOutcome()
        if sample.is_mocked is True:
            outcome.fail(SpoofingFlag.MOCK_LOCATION, "Mock location detected. Please disable fake GPS apps.")
        return outcome

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ...core.constants import MAX_ACCEPTABLE_ACCURACY_METERS, MIN_SUSPICIOUS_ACCURACY_METERS
from ...core.enums import SpoofingFlag
from ..model import CheckOutcome, LocationSample
from .base import SpoofingCheck

logger = logging.getLogger(__name__)


class AccuracyCheck(SpoofingCheck):
    """Too coarse a fix is rejected; an implausibly perfect one is only flagged."""

    name = "accuracy"

    def __init__(
        self,
        *,
        max_acceptable: float = MAX_ACCEPTABLE_ACCURACY_METERS,
        min_plausible: float = MIN_SUSPICIOUS_ACCURACY_METERS,
    ):
        self._max_acceptable = float(max_acceptable)
        self._min_plausible = float(min_plausible)

    def run(self, sample: LocationSample, *, user_id: Optional[int], now: datetime) -> CheckOutcome:
        outcome = CheckOutcome()
        accuracy = sample.accuracy
        if accuracy is None:
            return outcome

        if accuracy > self._max_acceptable:
            outcome.fail(
                SpoofingFlag.LOW_ACCURACY,
                f"GPS accuracy too low ({round(accuracy)}m, limit {round(self._max_acceptable)}m). "
                "Please move to an open area for better GPS signal.",
            )
        elif accuracy < self._min_plausible:
            logger.warning("Suspiciously perfect GPS accuracy %.2fm for user %s", accuracy, user_id)
            outcome.warn(
                SpoofingFlag.SUSPICIOUS_ACCURACY,
                f"Unusually precise GPS reading ({accuracy}m). This may indicate a simulated location.",
            )
        return outcome

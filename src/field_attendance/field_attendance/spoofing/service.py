from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import utc_now
from .checks.base import SpoofingCheck
from .model import CheckOutcome, LocationSample, SpoofingReport

logger = logging.getLogger(__name__)


class SpoofingDetector:
    """Run every check and fold the outcomes into one report.

    Checks are independent; all of them run even after a hard failure so the
    report lists every problem at once.
    """

    def __init__(self, checks: Sequence[SpoofingCheck]):
        self._checks = list(checks)

    def inspect(self, sample: LocationSample, *, user_id: Optional[int], now: Optional[datetime] = None) -> SpoofingReport:
        now = now or utc_now()
        combined = CheckOutcome()
        for check in self._checks:
            outcome = check.run(sample, user_id=user_id, now=now)
            combined.errors.extend(outcome.errors)
            combined.warnings.extend(outcome.warnings)
            combined.flags.extend(outcome.flags)

        report = SpoofingReport(
            passed=not combined.errors,
            errors=combined.errors,
            warnings=combined.warnings,
            flags=combined.flags,
        )
        if not report.passed:
            logger.warning("Spoofing checks failed for user %s: %s", user_id, report.flag_values)
        return report

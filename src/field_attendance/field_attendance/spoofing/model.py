from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..core.enums import SpoofingFlag


@dataclass(frozen=True)
class LocationSample:
    """A GPS reading as reported by the device."""

    latitude: Optional[float]
    longitude: Optional[float]
    accuracy: Optional[float] = None
    is_mocked: bool = False


@dataclass(frozen=True)
class LastKnownLocation:
    latitude: float
    longitude: float
    recorded_at: datetime


@dataclass
class CheckOutcome:
    """Result of a single check. Any entry in ``errors`` is a hard failure."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    flags: List[SpoofingFlag] = field(default_factory=list)

    def fail(self, flag: SpoofingFlag, message: str) -> "CheckOutcome":
        self.errors.append(message)
        self.flags.append(flag)
        return self

    def warn(self, flag: SpoofingFlag, message: str) -> "CheckOutcome":
        self.warnings.append(message)
        self.flags.append(flag)
        return self


@dataclass(frozen=True)
class SpoofingReport:
    passed: bool
    errors: List[str]
    warnings: List[str]
    flags: List[SpoofingFlag]

    @property
    def flag_values(self) -> List[str]:
        return [f.value for f in self.flags]

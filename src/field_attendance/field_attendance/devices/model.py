from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import isoformat


@dataclass(frozen=True)
class UserDevice:
    device_pk: int
    user_id: int
    device_fingerprint: str
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    browser: Optional[str] = None
    platform: Optional[str] = None
    is_active: bool = False
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.device_pk,
            "device_fingerprint": self.device_fingerprint,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "browser": self.browser,
            "platform": self.platform,
            "is_active": self.is_active,
            "approved_by": self.approved_by,
            "approved_at": isoformat(self.approved_at),
            "last_used_at": isoformat(self.last_used_at),
        }

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import isoformat
from ..core.enums import InvalidationReason


@dataclass(frozen=True)
class UserSession:
    session_id: int
    user_id: int
    token_hash: str
    expires_at: datetime
    is_active: bool = True
    device_fingerprint: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    invalidated_at: Optional[datetime] = None
    invalidation_reason: Optional[InvalidationReason] = None

    def to_dict(self) -> Dict[str, Any]:
        # token_hash stays server-side.
        return {
            "id": self.session_id,
            "device_fingerprint": self.device_fingerprint,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "is_active": self.is_active,
            "expires_at": isoformat(self.expires_at),
            "created_at": isoformat(self.created_at),
        }


@dataclass(frozen=True)
class SessionLookup:
    """An active session joined to its owner's activation flag."""

    session: UserSession
    user_is_active: bool


@dataclass(frozen=True)
class SessionMeta:
    device_fingerprint: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

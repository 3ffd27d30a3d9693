from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import UserDevice


class DeviceRepository(Protocol):
    def upsert(
        self,
        *,
        user_id: int,
        device_fingerprint: str,
        device_id: Optional[str],
        browser: Optional[str],
        platform: Optional[str],
        now: datetime,
    ) -> UserDevice:
        """Insert, or refresh ``last_used_at`` (and non-null details) of an existing device."""

        raise NotImplementedError

    def get_by_id(self, device_pk: int) -> Optional[UserDevice]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[UserDevice]:
        raise NotImplementedError

    def set_approval(self, device_pk: int, *, approved_by: Optional[int], at: Optional[datetime]) -> Optional[UserDevice]:
        """Approve (``approved_by`` set) or revoke (``approved_by`` None)."""

        raise NotImplementedError

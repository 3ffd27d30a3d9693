from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import utc_now
from ..core.exceptions import NotFoundError
from .model import UserDevice
from .repository import DeviceRepository

logger = logging.getLogger(__name__)


def extract_browser(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    # Edge and Opera also advertise "Chrome", and Chrome advertises "Safari".
    if "Edg" in user_agent:
        return "Edge"
    if "OPR" in user_agent or "Opera" in user_agent:
        return "Opera"
    if "Chrome" in user_agent:
        return "Chrome"
    if "Firefox" in user_agent:
        return "Firefox"
    if "Safari" in user_agent:
        return "Safari"
    return "Other"


def extract_platform(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    if "Android" in user_agent:
        return "Android"
    if "iPhone" in user_agent or "iPad" in user_agent:
        return "iOS"
    if "Windows" in user_agent:
        return "Windows"
    if "Mac" in user_agent:
        return "MacOS"
    if "Linux" in user_agent:
        return "Linux"
    return "Other"


class DeviceRegistry:
    def __init__(self, devices: DeviceRepository):
        self._devices = devices

    def register(
        self,
        *,
        user_id: int,
        device_fingerprint: str,
        user_agent: Optional[str],
        device_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UserDevice:
        return self._devices.upsert(
            user_id=user_id,
            device_fingerprint=device_fingerprint,
            device_id=device_id,
            browser=extract_browser(user_agent),
            platform=extract_platform(user_agent),
            now=now or utc_now(),
        )

    def list_for_user(self, user_id: int) -> Sequence[UserDevice]:
        return self._devices.list_for_user(user_id)

    def approve(self, device_pk: int, *, approved_by: int, now: Optional[datetime] = None) -> UserDevice:
        if not self._devices.get_by_id(device_pk):
            raise NotFoundError(f"Device {device_pk} not found")
        device = self._devices.set_approval(device_pk, approved_by=approved_by, at=now or utc_now())
        logger.info("Device %s approved by user %s", device_pk, approved_by)
        return device

    def revoke(self, device_pk: int, *, revoked_by: int) -> UserDevice:
        if not self._devices.get_by_id(device_pk):
            raise NotFoundError(f"Device {device_pk} not found")
        device = self._devices.set_approval(device_pk, approved_by=None, at=None)
        logger.info("Device %s revoked by user %s", device_pk, revoked_by)
        return device

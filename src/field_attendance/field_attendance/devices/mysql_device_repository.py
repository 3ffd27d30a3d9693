from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.exceptions import DatabaseError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import UserDevice
from .repository import DeviceRepository

_COLUMNS = """
    device_pk, user_id, device_fingerprint, device_id, device_name, browser, platform,
    is_active, approved_by, approved_at, last_used_at
"""


def _to_device(r: Dict[str, Any]) -> UserDevice:
    return UserDevice(
        device_pk=int(r["device_pk"]),
        user_id=int(r["user_id"]),
        device_fingerprint=r["device_fingerprint"],
        device_id=r.get("device_id"),
        device_name=r.get("device_name"),
        browser=r.get("browser"),
        platform=r.get("platform"),
        is_active=bool(r["is_active"]),
        approved_by=int(r["approved_by"]) if r.get("approved_by") is not None else None,
        approved_at=r.get("approved_at"),
        last_used_at=r.get("last_used_at"),
    )


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO user_devices(user_id, device_fingerprint, device_id, browser, platform, last_used_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    device_id=COALESCE(VALUES(device_id), device_id),
                    browser=COALESCE(VALUES(browser), browser),
                    platform=COALESCE(VALUES(platform), platform),
                    last_used_at=VALUES(last_used_at)
                """,
                (user_id, device_fingerprint, device_id, browser, platform, now),
            )
            cur.execute(
                f"SELECT {_COLUMNS} FROM user_devices WHERE user_id=%s AND device_fingerprint=%s",
                (user_id, device_fingerprint),
            )
            r = fetchone(cur)
            if not r:
                raise DatabaseError("Device row missing after upsert")
            return _to_device(r)

    def get_by_id(self, device_pk: int) -> Optional[UserDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM user_devices WHERE device_pk=%s", (device_pk,))
            r = fetchone(cur)
            return _to_device(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[UserDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM user_devices WHERE user_id=%s ORDER BY last_used_at DESC",
                (user_id,),
            )
            return [_to_device(r) for r in fetchall(cur)]

    def set_approval(self, device_pk: int, *, approved_by: Optional[int], at: Optional[datetime]) -> Optional[UserDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE user_devices
                SET is_active=%s, approved_by=%s, approved_at=%s
                WHERE device_pk=%s
                """,
                (int(approved_by is not None), approved_by, at, device_pk),
            )
        return self.get_by_id(device_pk)

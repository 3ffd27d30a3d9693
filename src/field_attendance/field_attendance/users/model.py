from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import isoformat
from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a field worker or administrator.

    Plain data object; it never touches the database itself.
    """

    user_id: int
    email: str
    full_name: str
    password_hash: str
    role: Role
    facility_id: Optional[int]
    is_active: bool = True
    last_login_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role.value,
            "facility_id": self.facility_id,
            "is_active": self.is_active,
            "last_login_at": isoformat(self.last_login_at),
        }

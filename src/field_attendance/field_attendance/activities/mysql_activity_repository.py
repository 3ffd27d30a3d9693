from __future__ import annotations

from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json
from .repository import ActivityRepository


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        user_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activities(user_id, action, entity_type, entity_id, description, metadata)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    user_id,
                    action,
                    entity_type,
                    str(entity_id) if entity_id is not None else None,
                    description,
                    dump_json(metadata),
                ),
            )

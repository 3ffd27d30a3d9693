from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Writes audit entries.

    ``record`` is best effort: a failed write is logged and swallowed so it
    never blocks the operation being audited. ``record_strict`` propagates.
    """

    def __init__(self, activities: ActivityRepository):
        self._activities = activities

    def record_strict(
        self,
        *,
        user_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Any = None,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._activities.append(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            description=description,
            metadata=metadata or {},
        )

    def record(self, **kwargs: Any) -> bool:
        try:
            self.record_strict(**kwargs)
            return True
        except Exception:
            logger.warning("Failed to write %s activity", kwargs.get("action"), exc_info=True)
            return False

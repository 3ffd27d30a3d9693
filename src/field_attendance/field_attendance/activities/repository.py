from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class ActivityRepository(Protocol):
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
        raise NotImplementedError

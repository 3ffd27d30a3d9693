from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Activity:
    """Append-only audit trail entry."""

    user_id: Optional[int]
    action: str
    entity_type: str
    entity_id: Optional[str]
    description: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

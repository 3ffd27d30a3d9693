from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..core.enums import ConflictStrategy
from .strategies.base import ConflictResolver
from .strategies.client_wins import ClientWinsResolver
from .strategies.manual import ManualResolver
from .strategies.server_wins import ServerWinsResolver


class ConflictResolverFactory:
    """Factory Pattern: one resolver per ConflictStrategy member, no gaps."""

    def __init__(self, resolvers: Optional[Iterable[ConflictResolver]] = None):
        items = list(resolvers) if resolvers is not None else [
            ClientWinsResolver(),
            ServerWinsResolver(),
            ManualResolver(),
        ]
        self._resolvers: Dict[ConflictStrategy, ConflictResolver] = {r.strategy: r for r in items}
        missing = [s.value for s in ConflictStrategy if s not in self._resolvers]
        if missing:
            raise ValueError(f"No conflict resolver registered for: {', '.join(missing)}")

    def for_strategy(self, strategy: ConflictStrategy) -> ConflictResolver:
        return self._resolvers[strategy]

    def for_value(self, value: Optional[str], *, default: Optional[ConflictStrategy] = None) -> ConflictResolver:
        return self.for_strategy(ConflictStrategy.parse(value, default=default))

"""
Aggregate base class with an explicit tracking state tag.
"""

from enum import Enum
from typing import Any, Dict
from pydantic import BaseModel, PrivateAttr


class EntityState(str, Enum):
    """Whether an instance is registered with a unit of work."""
    DETACHED = "detached"
    ATTACHED = "attached"


class AggregateRoot(BaseModel):
    """Root entity; identity is caller-assigned, version guards concurrent writes."""

    id: int
    version: int = 0

    _state: EntityState = PrivateAttr(default=EntityState.DETACHED)

    @property
    def state(self) -> EntityState:
        return self._state

    @property
    def is_attached(self) -> bool:
        return self._state is EntityState.ATTACHED

    def snapshot(self) -> Dict[str, Any]:
        """Plain copy of the field values, owned objects included."""
        return self.model_dump()

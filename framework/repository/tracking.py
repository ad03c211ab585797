"""
Change tracking: an explicit registry of the aggregates a unit of work knows about.

Each entry is keyed by (aggregate type, id) and records the tracked instance,
the change staged for it and the snapshot of its last known persisted state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Type

from .entity import AggregateRoot, EntityState


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class TrackedEntry:
    repository: Any
    entity: AggregateRoot
    change: Optional[ChangeKind] = None
    snapshot: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> Tuple[type, Any]:
        return type(self.entity), self.entity.id

    def is_modified(self) -> bool:
        """True when field values differ from the last persisted snapshot."""
        return self.snapshot is not None and self.entity.snapshot() != self.snapshot


class PendingChange(NamedTuple):
    entry: TrackedEntry
    kind: ChangeKind


class ChangeTracker:
    """Identity map plus pending changes, kept in the order they were staged."""

    def __init__(self):
        self._entries: Dict[Tuple[type, Any], TrackedEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entity_type: Type[AggregateRoot], entity_id: Any) -> Optional[TrackedEntry]:
        return self._entries.get((entity_type, entity_id))

    def attach(
        self,
        repository: Any,
        entity: AggregateRoot,
        change: Optional[ChangeKind] = None,
    ) -> TrackedEntry:
        """Track ``entity``; a different instance tracked under the same key is detached."""
        previous = self._entries.get((type(entity), entity.id))
        if previous is not None and previous.entity is not entity:
            previous.entity._state = EntityState.DETACHED

        # Found entities carry their persisted state; staged ones have none yet
        snapshot = entity.snapshot() if change is None else None
        entry = TrackedEntry(repository=repository, entity=entity, change=change, snapshot=snapshot)
        self._entries.pop(entry.key, None)
        self._entries[entry.key] = entry
        entity._state = EntityState.ATTACHED
        return entry

    def stage(self, entry: TrackedEntry, change: ChangeKind) -> None:
        """Set the change on a tracked entry and move it to the end of the commit order."""
        entry.change = change
        self._entries.pop(entry.key, None)
        self._entries[entry.key] = entry

    def detach(self, entity_type: Type[AggregateRoot], entity_id: Any) -> Optional[TrackedEntry]:
        entry = self._entries.pop((entity_type, entity_id), None)
        if entry is not None:
            entry.entity._state = EntityState.DETACHED
        return entry

    def pending(self, detect_changes: bool = False) -> List[PendingChange]:
        """Staged changes; with ``detect_changes`` modified attached entities count as updates."""
        changes = []
        for entry in self._entries.values():
            if entry.change is not None:
                changes.append(PendingChange(entry, entry.change))
            elif detect_changes and entry.is_modified():
                changes.append(PendingChange(entry, ChangeKind.UPDATE))
        return changes

    def accept(self, change: PendingChange) -> None:
        """Record that ``change`` is now durable."""
        entry = change.entry
        if change.kind is ChangeKind.DELETE:
            self.detach(*entry.key)
            return
        if change.kind is ChangeKind.UPDATE:
            entry.entity.version = entry.entity.version + 1
        entry.change = None
        entry.snapshot = entry.entity.snapshot()

    def clear(self, detect_changes: bool = False) -> int:
        """Detach everything; returns how many changes were dropped.

        With ``detect_changes`` modified attached entities are counted too.
        """
        dropped = len(self.pending(detect_changes=detect_changes))
        for entry in self._entries.values():
            entry.entity._state = EntityState.DETACHED
        self._entries.clear()
        return dropped

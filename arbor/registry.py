"""
Arbor Registry - Reducer Arena
==============================

Registrations live in an arena: each entry is allocated a stable integer id
and handles refer to entries through ``(registry, id)`` instead of closing
over the entry itself. Removing a handle frees its slot; a removed handle
stays valid as an object but every operation on it becomes a no-op.

Ids are never reused, so a stale handle can never pause or remove an entry
that was registered after it was freed.

Iteration order is allocation order (oldest first), which is the evaluation
order of the pipeline folds.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from .actions import WILDCARD

E = TypeVar("E", bound="Entry")


@dataclass
class Entry:
    for_type: str
    paused: bool = field(default=False, init=False)

    def accepts(self, action_type: Any) -> bool:
        return not self.paused and (
            self.for_type == WILDCARD or self.for_type == action_type
        )


@dataclass
class ReducerEntry(Entry):
    reducer: Optional[Callable[..., Any]] = None


class EntryArena(Generic[E]):
    """
    Ordered, id-addressed storage for registry entries.

    Attributes:
        name: Label used in log messages and reprs ("pre-processors", ...)
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[int, E] = {}
        self._next_id = 0

    def allocate(self, entry: E) -> int:
        entry_id = self._next_id
        self._next_id += 1
        self._entries[entry_id] = entry
        return entry_id

    def get(self, entry_id: int) -> Optional[E]:
        return self._entries.get(entry_id)

    def free(self, entry_id: int) -> Optional[E]:
        return self._entries.pop(entry_id, None)

    def matching(self, action_type: Any) -> List[E]:
        """Snapshot of active entries for ``action_type`` in registration order."""
        return [e for e in self._entries.values() if e.accepts(action_type)]

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: int) -> bool:
        return entry_id in self._entries

    def __repr__(self) -> str:
        return f"EntryArena({self.name!r}, entries={len(self._entries)})"


class Handle:
    """Capability returned by every registration."""

    __slots__ = ("_arena", "_id")

    def __init__(self, arena: EntryArena, entry_id: int):
        self._arena = arena
        self._id = entry_id

    @property
    def id(self) -> int:
        return self._id

    @property
    def is_paused(self) -> bool:
        entry = self._arena.get(self._id)
        return entry is not None and entry.paused

    @property
    def is_removed(self) -> bool:
        return self._id not in self._arena

    def pause(self) -> "Handle":
        entry = self._arena.get(self._id)
        if entry is not None:
            entry.paused = True
        return self

    def resume(self) -> "Handle":
        entry = self._arena.get(self._id)
        if entry is not None:
            entry.paused = False
        return self

    def remove(self) -> None:
        self._arena.free(self._id)

    def __repr__(self) -> str:
        state = "removed" if self.is_removed else ("paused" if self.is_paused else "active")
        return f"{type(self).__name__}({self._arena.name}#{self._id}, {state})"

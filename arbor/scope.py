"""
Arbor Scope - Sub-tree Proxies
==============================

A ``StateScope`` is a view of the container rooted at a base path. Reads and
writes take paths relative to that base, registrations are tracked so the
scope can undo them, and every observable it hands out ends when the scope is
completed.

```python
users = state.sub_handler("users")
alice = users.sub_handler("alice")        # rooted at users.alice

alice.set_in("name", "Alice")             # writes users.alice.name
alice.peek_key("name")                    # "Alice"
alice.peek_key(["..", "bob", "name"])     # users.bob.name

alice.complete()                          # drops alice's handlers and streams
```

Each verb comes in two flavours: ``list_push(items)`` acts on the base path
itself and ``list_push_in(path, items)`` on a path below it.

Actions surfaced on ``actions`` are those whose payload path lies under the
base path, compared segment by segment: a scope on ``users`` never sees
``usersettings``.
"""

from typing import Any, Callable, Iterable, List, Optional, Union

import reactivex
from reactivex import Observable
from reactivex import operators as ops
from reactivex.subject import Subject

from .actions import WILDCARD, Action
from .async_processor import AsyncHandle
from .errors import StateClosedError
from .paths import Path, PathLike, combine_paths, is_prefix, to_path
from .registry import Handle
from .select import SelectSettings


class StateScope:
    """
    Proxy over a ``ReactiveState`` rooted at ``base_path``.

    Args:
        owner: The container every call is delegated to
        base_path: Segments of the base path (relative tokens allowed)
    """

    def __init__(self, owner: Any, base_path: Path):
        self._owner = owner
        self._base: Path = tuple(base_path)
        self._resolved_base: Path = to_path(self._base)
        self._handles: List[Handle] = []
        self._children: List["StateScope"] = []
        self._terminator: Subject = Subject()
        self._completed = False

    def __repr__(self) -> str:
        base = ".".join(str(s) for s in self._resolved_base) or "~"
        status = "completed" if self._completed else "live"
        return f"StateScope({base!r}, {status}, handles={len(self._handles)})"

    @property
    def owner(self) -> Any:
        return self._owner

    @property
    def base_path(self) -> Path:
        return self._resolved_base

    @property
    def is_completed(self) -> bool:
        return self._completed

    def _path(self, path: PathLike) -> Path:
        return combine_paths(self._base, path)

    def _scoped(self, observable: Observable) -> Observable:
        if self._completed:
            return reactivex.empty()
        return observable.pipe(ops.take_until(self._terminator))

    def _in_scope(self, action: Action) -> bool:
        path = action.path
        if path is None:
            return False
        return is_prefix(self._resolved_base, to_path(path))

    def _track(self, handle: Handle) -> Handle:
        self._handles.append(handle)
        return handle

    def _ensure_live(self) -> None:
        if self._completed:
            raise StateClosedError(f"{self!r} is completed")

    # ------------------------------------------------------------------
    # Streams and reads
    # ------------------------------------------------------------------

    @property
    def source(self) -> Observable:
        """Observable of the value at the base path."""
        return self._scoped(self._owner.select(self._base))

    @property
    def actions(self) -> Observable:
        """Observable of actions whose payload path lies under the base path."""
        return self._scoped(self._owner.actions.pipe(ops.filter(self._in_scope)))

    def on(self, action_type: str) -> Observable:
        return self.actions.pipe(
            ops.filter(lambda a: action_type == WILDCARD or a.type == action_type)
        )

    def peek(self) -> Any:
        return self._owner.peek_key(self._base)

    def peek_key(self, path: PathLike) -> Any:
        return self._owner.peek_key(self._path(path))

    def select(
        self,
        path: PathLike = None,
        settings: Optional[SelectSettings] = None,
        **kwargs: Any,
    ) -> Observable:
        return self._scoped(self._owner.select(self._path(path), settings, **kwargs))

    def select_flatten(
        self,
        path: PathLike = None,
        settings: Optional[SelectSettings] = None,
        **kwargs: Any,
    ) -> Observable:
        return self._scoped(
            self._owner.select_flatten(self._path(path), settings, **kwargs)
        )

    def select_map(self, path: PathLike, mapping: Callable[[Any], Any]) -> Observable:
        return self.select(path).pipe(ops.map(mapping))

    # ------------------------------------------------------------------
    # Dispatch and verbs
    # ------------------------------------------------------------------

    def dispatch(self, action: Union[Action, str], payload: Any = None) -> "StateScope":
        """
        Dispatch with the payload path made absolute.

        Only dict payloads are rewritten; the caller's payload is copied, not
        mutated. A missing path targets the base path itself.
        """
        action = Action.coerce(action, payload)
        if isinstance(action.payload, dict):
            action = action.with_payload(
                {**action.payload, "path": self._path(action.payload.get("path"))}
            )
        self._owner.dispatch(action)
        return self

    def set(self, value: Any) -> "StateScope":
        self._owner.set_in(self._base, value)
        return self

    def set_in(self, path: PathLike, value: Any) -> "StateScope":
        self._owner.set_in(self._path(path), value)
        return self

    def patch(self, value: Any) -> "StateScope":
        self._owner.patch(self._base, value)
        return self

    def patch_in(self, path: PathLike, value: Any) -> "StateScope":
        self._owner.patch(self._path(path), value)
        return self

    def apply(self, operation: Callable[[Any], Any]) -> "StateScope":
        self._owner.apply(self._base, operation)
        return self

    def apply_in(self, path: PathLike, operation: Callable[[Any], Any]) -> "StateScope":
        self._owner.apply(self._path(path), operation)
        return self

    def delete(self, key: Any) -> "StateScope":
        self._owner.delete(self._base, key)
        return self

    def delete_in(self, path: PathLike, key: Any) -> "StateScope":
        self._owner.delete(self._path(path), key)
        return self

    def list_push(self, items: Iterable[Any]) -> "StateScope":
        return self.list_push_in(None, items)

    def list_push_in(self, path: PathLike, items: Iterable[Any]) -> "StateScope":
        self._owner.list_push(self._path(path), items)
        return self

    def list_pop(self) -> "StateScope":
        return self.list_pop_in(None)

    def list_pop_in(self, path: PathLike) -> "StateScope":
        self._owner.list_pop(self._path(path))
        return self

    def list_shift(self) -> "StateScope":
        return self.list_shift_in(None)

    def list_shift_in(self, path: PathLike) -> "StateScope":
        self._owner.list_shift(self._path(path))
        return self

    def list_unshift(self, items: Iterable[Any]) -> "StateScope":
        return self.list_unshift_in(None, items)

    def list_unshift_in(self, path: PathLike, items: Iterable[Any]) -> "StateScope":
        self._owner.list_unshift(self._path(path), items)
        return self

    def list_splice(
        self, index: int, delete_count: int = 0, items: Iterable[Any] = ()
    ) -> "StateScope":
        return self.list_splice_in(None, index, delete_count, items)

    def list_splice_in(
        self,
        path: PathLike,
        index: int,
        delete_count: int = 0,
        items: Iterable[Any] = (),
    ) -> "StateScope":
        self._owner.list_splice(self._path(path), index, delete_count, items)
        return self

    def list_insert(self, index: int, items: Iterable[Any]) -> "StateScope":
        return self.list_splice_in(None, index, 0, items)

    def list_insert_in(self, path: PathLike, index: int, items: Iterable[Any]) -> "StateScope":
        return self.list_splice_in(path, index, 0, items)

    def list_remove_at(self, index: int, delete_count: int = 1) -> "StateScope":
        return self.list_splice_in(None, index, delete_count)

    def list_remove_at_in(
        self, path: PathLike, index: int, delete_count: int = 1
    ) -> "StateScope":
        return self.list_splice_in(path, index, delete_count)

    def list_remove_find(
        self, predicate: Callable[[Any], bool], delete_count: int = 1
    ) -> "StateScope":
        return self.list_remove_find_in(None, predicate, delete_count)

    def list_remove_find_in(
        self, path: PathLike, predicate: Callable[[Any], bool], delete_count: int = 1
    ) -> "StateScope":
        self._owner.list_remove_find(self._path(path), predicate, delete_count)
        return self

    def list_sort(
        self,
        compare: Optional[Callable[[Any, Any], int]] = None,
        key: Optional[Callable[[Any], Any]] = None,
    ) -> "StateScope":
        return self.list_sort_in(None, compare, key)

    def list_sort_in(
        self,
        path: PathLike,
        compare: Optional[Callable[[Any, Any], int]] = None,
        key: Optional[Callable[[Any], Any]] = None,
    ) -> "StateScope":
        self._owner.list_sort(self._path(path), compare, key)
        return self

    def list_filter(self, predicate: Callable[[Any], bool]) -> "StateScope":
        return self.list_filter_in(None, predicate)

    def list_filter_in(self, path: PathLike, predicate: Callable[[Any], bool]) -> "StateScope":
        self._owner.list_filter(self._path(path), predicate)
        return self

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_pre_processor(self, for_type: str, reducer: Callable) -> Handle:
        self._ensure_live()
        return self._track(self._owner.register_pre_processor(for_type, reducer))

    def register_global_pre_processor(self, reducer: Callable) -> Handle:
        return self.register_pre_processor(WILDCARD, reducer)

    def register_processor(self, for_type: str, reducer: Callable) -> Handle:
        self._ensure_live()
        return self._track(self._owner.register_processor(for_type, reducer))

    def register_global_processor(self, reducer: Callable) -> Handle:
        return self.register_processor(WILDCARD, reducer)

    def register_async(self, for_type: str, handler: Callable) -> AsyncHandle:
        self._ensure_live()
        return self._track(self._owner.register_async(for_type, handler))

    # ------------------------------------------------------------------
    # Nesting and lifecycle
    # ------------------------------------------------------------------

    def sub_handler(self, path: PathLike) -> "StateScope":
        """Nested scope; its base is this scope's base plus ``path``."""
        self._ensure_live()
        child = StateScope(self._owner, self._path(path))
        self._children.append(child)
        return child

    def complete(self) -> None:
        """
        Remove every handler this scope registered and end its observables.

        Nested scopes are completed too. The owner and sibling scopes are not
        affected.
        """
        if self._completed:
            return
        self._completed = True
        for child in self._children:
            child.complete()
        self._children.clear()
        for handle in self._handles:
            handle.remove()
        self._handles.clear()
        self._terminator.on_next(None)
        self._terminator.on_completed()

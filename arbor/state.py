"""
Arbor State - Reactive State Container
======================================

``ReactiveState`` is a single-writer container around a persistent state
tree. Every change goes through ``dispatch``:

    caller -> dispatch -> pre-processors -> processors -> new snapshot
           -> state observable emits -> post-action record (next tick)

A pass is synchronous: when ``dispatch`` returns, ``peek()`` already sees the
new snapshot. Dispatches issued while a pass is running (from subscribers,
async lifecycles or reducers) are queued and drained, in order, before the
outermost ``dispatch`` call returns.

Basic Usage
-----------

```python
from arbor import ReactiveState

state = ReactiveState({"todos": []})

state.select("todos").subscribe(print)
state.list_push("todos", [{"title": "write docs", "done": False}])
state.apply("todos.0.done", lambda done: not done)

state.peek_key("todos.0.done")  # True
```

Custom Actions
--------------

```python
state.register_processor(
    "RENAME", lambda s, a: set_in(s, ("user", "name"), a.payload)
)
state.dispatch("RENAME", "Alice")
```

Errors
------

Exceptions raised by reducers and async handlers propagate out of
``dispatch``. A pass that fails while reducing leaves the state untouched and
the container stays usable for later dispatches.

An exception raised by a ``source``/``select`` or ``actions`` subscriber also
propagates, but by then the pass is committed. The new snapshot stays
published and the action still reaches ``actions`` along with its
``PostAction``.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Iterable, Optional, Union

from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import SchedulerBase
from reactivex.scheduler import TimeoutScheduler
from reactivex.scheduler.eventloop import AsyncIOScheduler
from reactivex.subject import BehaviorSubject, Subject

from .actions import WILDCARD, Action, StateActions
from .async_processor import AsyncHandle, AsyncOrchestrator
from .errors import StateClosedError
from .global_state import _claim_active_state, _release_active_state
from .notifier import PostAction, PostActionNotifier
from .paths import PathLike, ensure_array, to_path
from .pipeline import reduce_action, reduce_data
from .processors import BUILTIN_PROCESSORS
from .registry import EntryArena, Handle, ReducerEntry
from .select import SelectSettings, select_path
from .tree import EMPTY_MAP, coerce, get_in, get_list

ActionReducer = Callable[[Any, Action], Any]
DataReducer = Callable[[Any, Action], Any]


def _default_scheduler() -> SchedulerBase:
    """Next-tick scheduler: the running asyncio loop if any, else timers."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return TimeoutScheduler()
    return AsyncIOScheduler(loop)


class ReactiveState:
    """
    Single-writer reactive state container.

    Args:
        initial_state: Initial tree; plain dicts/lists are coerced into
            persistent collections. Defaults to an empty map.
        scheduler: Scheduler for post-action delivery and debounced
            selections. Defaults to the running asyncio loop, falling back
            to a timer-based scheduler.

    Raises:
        SingleInstanceViolation: If another container is live in this process
    """

    def __init__(
        self,
        initial_state: Any = None,
        *,
        scheduler: Optional[SchedulerBase] = None,
    ):
        _claim_active_state(self)
        try:
            self._scheduler = scheduler or _default_scheduler()
            self._lock = threading.RLock()
            self._pending: Deque[Action] = deque()
            self._draining = False
            self._completed = False

            self._pre_processors: EntryArena[ReducerEntry] = EntryArena("pre-processors")
            self._processors: EntryArena[ReducerEntry] = EntryArena("processors")
            self._async = AsyncOrchestrator(self)

            self._actions: Subject = Subject()
            self._state = BehaviorSubject(
                EMPTY_MAP if initial_state is None else coerce(initial_state)
            )
            self._notifier = PostActionNotifier(self._scheduler)

            for verb, processor in BUILTIN_PROCESSORS.items():
                self.register_processor(verb, processor)
        except Exception:
            _release_active_state(self)
            raise

    def __repr__(self) -> str:
        status = "completed" if self._completed else "live"
        return (
            f"ReactiveState({status}, pre_processors={len(self._pre_processors)}, "
            f"processors={len(self._processors)})"
        )

    def __enter__(self) -> "ReactiveState":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.complete()

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    @property
    def source(self) -> Observable:
        """Observable of state snapshots; replays the current one."""
        return self._state.pipe(ops.as_observable())

    @property
    def actions(self) -> Observable:
        """Observable of processed actions, as they were dispatched."""
        return self._actions.pipe(ops.as_observable())

    @property
    def post_actions(self) -> Observable:
        """Observable of ``PostAction`` records, delivered on the scheduler."""
        return self._notifier.observable.pipe(ops.as_observable())

    @property
    def scheduler(self) -> SchedulerBase:
        return self._scheduler

    @property
    def is_completed(self) -> bool:
        return self._completed

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, action: Union[Action, str], payload: Any = None) -> "ReactiveState":
        """
        Dispatch an action, either as ``Action`` or as ``(type, payload)``.

        Raises:
            StateClosedError: If the container has been completed
            Exception: Whatever a reducer or async handler raised
        """
        action = Action.coerce(action, payload)
        errors = []
        with self._lock:
            if self._completed:
                raise StateClosedError(
                    f"Cannot dispatch {action.type!s}: the state container is completed"
                )
            self._pending.append(action)
            if self._draining:
                return self

            self._draining = True
            try:
                while self._pending and not self._completed:
                    current = self._pending.popleft()
                    try:
                        self._process(current)
                    except Exception as e:
                        logging.debug(f"Pass for {current.type!s} failed: {e!r}")
                        errors.append(e)
                self._pending.clear()
            finally:
                self._draining = False

        if errors:
            for extra in errors[1:]:
                logging.error(f"Additional error while draining dispatch queue: {extra!r}")
            raise errors[0]
        return self

    def _process(self, action: Action) -> None:
        state = self._state.value

        entry = self._async.find(action.type)
        if entry is not None:
            self._async.run(entry, state, action)
            try:
                self._actions.on_next(action)
            finally:
                self._notifier.notify(PostAction(state, state, action, None))
            return

        executed, stopped = reduce_action(self._pre_processors, state, action)
        next_state = state if stopped else reduce_data(self._processors, state, executed)

        # Once the snapshot is published the pass is committed: the action and
        # its record go out even if a state subscriber raises.
        try:
            if next_state is not state:
                self._state.on_next(next_state)
        finally:
            try:
                self._actions.on_next(action)
            finally:
                self._notifier.notify(PostAction(state, next_state, action, executed))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def peek(self) -> Any:
        """Current state snapshot."""
        return self._state.value

    def peek_key(self, path: PathLike) -> Any:
        """Current value at ``path`` (None when absent)."""
        return get_in(self._state.value, to_path(path))

    def select(
        self, path: PathLike, settings: Optional[SelectSettings] = None, **kwargs: Any
    ) -> Observable:
        """
        Observable of the value at ``path``, without consecutive duplicates.

        Settings can be passed as a ``SelectSettings`` or as keywords
        (``debounce``, ``pre_filter``, ``map``, ``post_filter``).
        """
        if kwargs:
            settings = SelectSettings(**kwargs)
        return select_path(
            self._state, path, settings, owner=self, scheduler=self._scheduler
        )

    def select_flatten(
        self, path: PathLike, settings: Optional[SelectSettings] = None, **kwargs: Any
    ) -> Observable:
        """
        Like ``select`` but emits plain ``dict``/``list`` values.

        The selected subtree is thawed on every state change, which costs
        O(size) per emission. Use with caution on large or busy subtrees.
        """
        if kwargs:
            settings = SelectSettings(**kwargs)
        return select_path(
            self._state,
            path,
            settings,
            owner=self,
            scheduler=self._scheduler,
            flatten_values=True,
        )

    def on(self, action_type: str) -> Observable:
        """Observable of processed actions of ``action_type`` (``"*"`` for all)."""
        return self._actions.pipe(
            ops.filter(lambda a: action_type == WILDCARD or a.type == action_type)
        )

    # ------------------------------------------------------------------
    # Built-in verbs
    # ------------------------------------------------------------------

    def set(self, value: Any) -> "ReactiveState":
        return self.dispatch(StateActions.set(value))

    def set_in(self, path: PathLike, value: Any) -> "ReactiveState":
        return self.dispatch(StateActions.set_in(path, value))

    def patch(self, path: PathLike, value: Any) -> "ReactiveState":
        return self.dispatch(StateActions.patch(path, value))

    def apply(self, path: PathLike, operation: Callable[[Any], Any]) -> "ReactiveState":
        return self.dispatch(StateActions.apply(path, operation))

    def delete(self, path: PathLike, key: Any) -> "ReactiveState":
        return self.dispatch(StateActions.delete(path, key))

    def list_push(self, path: PathLike, items: Iterable[Any]) -> "ReactiveState":
        return self.dispatch(StateActions.list_push(path, items))

    def list_pop(self, path: PathLike) -> "ReactiveState":
        return self.dispatch(StateActions.list_pop(path))

    def list_shift(self, path: PathLike) -> "ReactiveState":
        return self.dispatch(StateActions.list_shift(path))

    def list_unshift(self, path: PathLike, items: Iterable[Any]) -> "ReactiveState":
        return self.dispatch(StateActions.list_unshift(path, items))

    def list_splice(
        self,
        path: PathLike,
        index: int,
        delete_count: int = 0,
        items: Iterable[Any] = (),
    ) -> "ReactiveState":
        return self.dispatch(StateActions.list_splice(path, index, delete_count, items))

    def list_insert(self, path: PathLike, index: int, items: Iterable[Any]) -> "ReactiveState":
        """Splice ``items`` in at ``index`` without deleting anything."""
        return self.list_splice(path, index, 0, items)

    def list_remove_at(
        self, path: PathLike, index: int, delete_count: int = 1
    ) -> "ReactiveState":
        """Splice out ``delete_count`` items starting at ``index``."""
        return self.list_splice(path, index, delete_count)

    def list_remove_find(
        self,
        path: PathLike,
        predicate: Callable[[Any], bool],
        delete_count: int = 1,
    ) -> "ReactiveState":
        """Remove items starting at the first one matching ``predicate``, if any."""
        items = get_list(self._state.value, to_path(path))
        index = next((i for i, item in enumerate(items) if predicate(item)), -1)
        if index > -1:
            return self.list_remove_at(path, index, delete_count)
        return self

    def list_sort(
        self,
        path: PathLike,
        compare: Optional[Callable[[Any, Any], int]] = None,
        key: Optional[Callable[[Any], Any]] = None,
    ) -> "ReactiveState":
        return self.dispatch(StateActions.list_sort(path, compare, key))

    def list_filter(self, path: PathLike, predicate: Callable[[Any], bool]) -> "ReactiveState":
        return self.dispatch(StateActions.list_filter(path, predicate))

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_pre_processor(self, for_type: str, reducer: ActionReducer) -> Handle:
        """
        Register a reducer that may rewrite actions of ``for_type``.

        ``reducer(state, action)`` returns an ``Action``, ``Continue(action)``
        or ``Stop(action)``. ``Stop`` also skips the processors for this
        dispatch. Pre-processors run in registration order.
        """
        entry_id = self._pre_processors.allocate(ReducerEntry(str(for_type), reducer))
        return Handle(self._pre_processors, entry_id)

    def register_global_pre_processor(self, reducer: ActionReducer) -> Handle:
        return self.register_pre_processor(WILDCARD, reducer)

    def register_processor(self, for_type: str, reducer: DataReducer) -> Handle:
        """
        Register a reducer that computes the next state for ``for_type``.

        ``reducer(state, action)`` returns the new tree, ``Continue(tree)`` or
        ``Stop(tree)``. Processors run in registration order, after the
        built-in ones.
        """
        entry_id = self._processors.allocate(ReducerEntry(str(for_type), reducer))
        return Handle(self._processors, entry_id)

    def register_global_processor(self, reducer: DataReducer) -> Handle:
        return self.register_processor(WILDCARD, reducer)

    def register_async(
        self, for_type: str, handler: Callable[[Any, Action], Any]
    ) -> AsyncHandle:
        """
        Register the async processor for ``for_type``.

        Raises:
            ConflictError: If ``for_type`` already has an async processor
        """
        return self._async.register(for_type, handler)

    # ------------------------------------------------------------------
    # Scoping and lifecycle
    # ------------------------------------------------------------------

    def sub_handler(self, path: PathLike) -> "StateScope":
        """Create a scope proxy rooted at ``path``."""
        from .scope import StateScope

        return StateScope(self, ensure_array(path))

    def complete(self) -> None:
        """
        Complete every stream, drop in-flight async work and free the
        process-wide slot so a new container can be created.
        """
        with self._lock:
            if self._completed:
                return
            self._completed = True
            self._pending.clear()
        self._async.dispose()
        self._notifier.complete()
        self._actions.on_completed()
        self._state.on_completed()
        _release_active_state(self)

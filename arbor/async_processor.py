"""
Arbor Async - Asynchronous Action Lifecycles
============================================

An async processor owns an action type. Dispatching that type does not run
the normal reduction; instead the orchestrator:

1. calls ``handler(state, action)`` to obtain a single-value producer,
2. dispatches ``"<type>::START"`` with the original payload,
3. subscribes to the producer keeping only its first emission,
4. dispatches ``"<type>::NEXT"`` with that value followed by
   ``"<type>::COMPLETE"``, or ``"<type>::ERROR"`` with the exception, or just
   ``"<type>::COMPLETE"`` when the producer finishes without a value.

Lifecycle actions are ordinary dispatches: other actions may interleave
between ``::START`` and the terminal action. Consumers turn them into real
mutations with ``on_start``/``on_next``/``on_error``/``on_complete``, each of
which installs a pre-processor that replaces the lifecycle action.

Producers may be ``reactivex`` observables, awaitables (run through
``asyncio.ensure_future``) or plain values. Awaitables need a running event
loop; without one the dispatch raises ``RuntimeError``.

Example:
    handle = state.register_async("LOAD", lambda s, a: fetch_user(a.payload))
    handle.on_next(lambda user: StateActions.set_in("user", user))
    handle.on_error(lambda e: StateActions.set_in("error", str(e)))
    state.dispatch("LOAD", 42)
"""

import asyncio
import concurrent.futures
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

import reactivex
from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import DisposableBase
from reactivex.disposable import SingleAssignmentDisposable

from .actions import Action
from .errors import ConflictError
from .registry import Entry, EntryArena, Handle

START = "START"
NEXT = "NEXT"
ERROR = "ERROR"
COMPLETE = "COMPLETE"


def lifecycle_type(for_type: Any, suffix: str) -> str:
    """Type of the lifecycle action ``suffix`` for ``for_type``."""
    return f"{for_type!s}::{suffix}"


def to_observable(produced: Any) -> Observable:
    """Coerce a handler result into an observable."""
    if isinstance(produced, Observable):
        return produced
    if isinstance(produced, concurrent.futures.Future):
        return reactivex.from_future(produced)
    if inspect.isawaitable(produced):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(produced):
                produced.close()
            raise RuntimeError(
                "Awaitable async producers need a running asyncio event loop; "
                "dispatch from inside the loop or return an Observable"
            ) from None
        return reactivex.from_future(asyncio.ensure_future(produced, loop=loop))
    return reactivex.of(produced)


@dataclass
class AsyncEntry(Entry):
    handler: Optional[Callable[[Any, Action], Any]] = None
    lifecycle: List[Handle] = field(default_factory=list)


class AsyncHandle(Handle):
    """
    Handle to an async processor.

    On top of pause/resume/remove it installs lifecycle pre-processors and
    relays external sources. Removing it also removes every lifecycle
    pre-processor it installed.
    """

    __slots__ = ("_owner",)

    def __init__(self, arena: EntryArena, entry_id: int, owner: Any):
        super().__init__(arena, entry_id)
        self._owner = owner

    def remove(self) -> None:
        entry = self._arena.free(self._id)
        if entry is not None:
            for handle in entry.lifecycle:
                handle.remove()
            entry.lifecycle.clear()

    def _on(self, suffix: str, reducer: Callable[[Any, Action], Any]) -> "AsyncHandle":
        entry = self._arena.get(self._id)
        if entry is None:
            logging.debug(f"Ignoring ::{suffix} callback on a removed async handle")
            return self
        handle = self._owner.register_pre_processor(
            lifecycle_type(entry.for_type, suffix), reducer
        )
        entry.lifecycle.append(handle)
        return self

    def on_start(self, callback: Callable[[Any], Any]) -> "AsyncHandle":
        """``callback(payload)`` returns the action replacing ``::START``."""
        return self._on(START, lambda state, action: callback(action.payload))

    def on_next(self, callback: Callable[[Any], Any]) -> "AsyncHandle":
        """``callback(value)`` returns the action replacing ``::NEXT``."""
        return self._on(NEXT, lambda state, action: callback(action.payload))

    def on_error(self, callback: Callable[[Any], Any]) -> "AsyncHandle":
        """``callback(error)`` returns the action replacing ``::ERROR``."""
        return self._on(ERROR, lambda state, action: callback(action.payload))

    def on_complete(self, callback: Callable[[], Any]) -> "AsyncHandle":
        """``callback()`` returns the action replacing ``::COMPLETE``."""
        return self._on(COMPLETE, lambda state, action: callback())

    def trigger(self, source: Observable) -> DisposableBase:
        """Dispatch this handle's type with every value ``source`` emits."""
        entry = self._arena.get(self._id)
        for_type = entry.for_type if entry is not None else None

        def relay(value: Any) -> None:
            if for_type is not None:
                self._owner.dispatch(for_type, value)

        return source.subscribe(on_next=relay)


class AsyncOrchestrator:
    """Registry of async processors plus the subscribe-and-relay logic."""

    def __init__(self, owner: Any):
        self._owner = owner
        self._arena: EntryArena[AsyncEntry] = EntryArena("async-processors")
        self._by_type: Dict[str, int] = {}
        self._in_flight: Set[SingleAssignmentDisposable] = set()

    def register(
        self, for_type: Any, handler: Callable[[Any, Action], Any]
    ) -> AsyncHandle:
        key = str(for_type)
        if self.find(key) is not None:
            raise ConflictError(
                f"An async processor for {key!r} has already been registered"
            )
        entry_id = self._arena.allocate(AsyncEntry(key, handler=handler))
        self._by_type[key] = entry_id
        return AsyncHandle(self._arena, entry_id, self._owner)

    def find(self, action_type: Any) -> Optional[AsyncEntry]:
        entry_id = self._by_type.get(str(action_type))
        if entry_id is None:
            return None
        return self._arena.get(entry_id)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def run(self, entry: AsyncEntry, state: Any, action: Action) -> None:
        """Start the lifecycle of ``action``; lifecycle actions are dispatched."""
        if entry.paused:
            logging.debug(f"Async processor {entry.for_type!r} is paused, dropping action")
            return

        producer = to_observable(entry.handler(state, action))
        dispatch = self._owner.dispatch
        for_type = entry.for_type

        subscription = SingleAssignmentDisposable()
        self._in_flight.add(subscription)

        def finish(suffix: str, payload: Any) -> None:
            self._in_flight.discard(subscription)
            dispatch(lifecycle_type(for_type, suffix), payload)

        dispatch(lifecycle_type(for_type, START), action.payload)
        subscription.disposable = producer.pipe(ops.take(1)).subscribe(
            on_next=lambda value: dispatch(lifecycle_type(for_type, NEXT), value),
            on_error=lambda error: finish(ERROR, error),
            on_completed=lambda: finish(COMPLETE, None),
        )

    def dispose(self) -> None:
        for subscription in list(self._in_flight):
            subscription.dispose()
        self._in_flight.clear()
        self._arena.clear()
        self._by_type.clear()

"""
Global State - process-wide slot for the active container.

Only one ``ReactiveState`` may be live per process. The container claims this
slot on construction and releases it in ``complete()``. Application code
should pass the container around explicitly; the slot exists for the
single-instance check and for binding helpers that cannot receive it.

Implementation:
    - get_active_state(): current container or None
    - _claim_active_state(): fail-fast claim used by the constructor
    - _release_active_state(): used by ``complete()``
    - _reset_active_state(): testing only

Thread Safety:
    Claims are serialized with a module-level lock.
"""

import threading
from typing import Any, Optional

from .errors import SingleInstanceViolation

_active_state = None
_lock = threading.Lock()


def get_active_state() -> Optional[Any]:
    """Return the live container, or None when no container exists."""
    return _active_state


def _claim_active_state(state: Any) -> None:
    """
    Register ``state`` as the live container.

    Raises:
        SingleInstanceViolation: If another container is already live
    """
    global _active_state
    with _lock:
        if _active_state is not None:
            raise SingleInstanceViolation(
                "A state container has already been defined, only a single "
                "instance can be defined per process"
            )
        _active_state = state


def _release_active_state(state: Any) -> None:
    """Release the slot if ``state`` is the one holding it."""
    global _active_state
    with _lock:
        if _active_state is state:
            _active_state = None


def _reset_active_state() -> None:
    """
    Clear the slot for testing purposes.

    Completes the live container, if any, so its subjects do not leak into
    the next test. Not for production use.
    """
    global _active_state
    state = _active_state
    if state is not None:
        state.complete()
    _active_state = None

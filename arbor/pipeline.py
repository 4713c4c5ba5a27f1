"""
Arbor Pipeline - Action and Data Folds
======================================

A dispatched action goes through two folds:

1. ``reduce_action``: pre-processors rewrite the action. Entries are matched
   against the *current* action type, so a pre-processor that changes the
   type hands the action over to the pre-processors of the new type.
2. ``reduce_data``: processors compute the next state snapshot.

Both folds walk their arena in registration order, skip paused entries and
honour ``Stop`` results. A pre-processor ``Stop`` also tells the caller to
skip the data fold entirely.
"""

from typing import Any, Tuple

from .actions import Action, unwrap
from .registry import EntryArena, ReducerEntry


def reduce_action(
    arena: EntryArena[ReducerEntry], state: Any, action: Action
) -> Tuple[Action, bool]:
    """
    Fold ``action`` through the pre-processors.

    Returns:
        ``(action, stopped)`` where ``stopped`` is True when a pre-processor
        returned ``Stop``.
    """
    result = action
    for entry in arena:
        if not entry.accepts(result.type):
            continue
        result, stop = unwrap(entry.reducer(state, result))
        if not isinstance(result, Action):
            raise TypeError(
                f"Pre-processor for {entry.for_type!r} returned {result!r}, "
                f"expected an Action"
            )
        if stop:
            return result, True
    return result, False


def reduce_data(arena: EntryArena[ReducerEntry], state: Any, action: Action) -> Any:
    """Fold ``state`` through the processors matching ``action``."""
    result = state
    for entry in arena.matching(action.type):
        result, stop = unwrap(entry.reducer(result, action))
        if stop:
            break
    return result

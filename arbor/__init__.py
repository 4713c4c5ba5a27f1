"""
Arbor - Reactive State Trees

A single-writer reactive state container. Typed actions flow through
pre-processors and processors to produce new snapshots of a persistent,
structurally-shared tree; derived observables, scoped proxies and async
action lifecycles are built on top.
"""

# Core container
from .state import ReactiveState

# Actions and reducer results
from .actions import (
    WILDCARD,
    Action,
    ActionType,
    Continue,
    StateActions,
    Stop,
)

# Async lifecycles
from .async_processor import AsyncHandle, lifecycle_type

# Exceptions
from .errors import (
    ConflictError,
    SingleInstanceViolation,
    StateClosedError,
    StateError,
    TypeMismatchError,
)
from .global_state import get_active_state
from .notifier import PostAction

# Path algebra
from .paths import combine_paths, ensure_array, resolve_path, to_path
from .registry import Handle
from .scope import StateScope
from .select import SelectSettings

# Persistent tree helpers
from .tree import coerce, flatten, get_in, merge_in, set_in

__all__ = [
    # Container
    "ReactiveState",
    "StateScope",
    "get_active_state",
    # Actions
    "Action",
    "ActionType",
    "StateActions",
    "Continue",
    "Stop",
    "WILDCARD",
    # Registration handles
    "Handle",
    "AsyncHandle",
    "lifecycle_type",
    # Observables
    "SelectSettings",
    "PostAction",
    # Paths
    "ensure_array",
    "combine_paths",
    "resolve_path",
    "to_path",
    # Tree
    "coerce",
    "flatten",
    "get_in",
    "set_in",
    "merge_in",
    # Exceptions
    "StateError",
    "SingleInstanceViolation",
    "TypeMismatchError",
    "ConflictError",
    "StateClosedError",
]

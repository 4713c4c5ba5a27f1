"""
Arbor Actions
=============

Actions are the only way to change the state tree. An action is a typed
message with a payload::

    Action(ActionType.SET_IN, {"path": "users.alice", "value": {"age": 30}})

Built-in verbs form the closed ``ActionType`` enum. It is a ``str`` enum, so
``ActionType.SET_IN == "@@set-in"`` and user code can keep matching on wire
strings. Any other string is a user-defined action type.

Reducers return either a bare value or one of the discriminated results
``Continue(value)`` / ``Stop(value)``. ``Stop`` halts the fold it was
returned from.

``StateActions`` builds the payloads understood by the built-in processors.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, Tuple, TypeVar, Union

from .paths import PathLike
from .tree import coerce

T = TypeVar("T")

WILDCARD = "*"


class ActionType(str, Enum):
    """Built-in mutation verbs handled by the default processors."""

    SET = "@@set"
    SET_IN = "@@set-in"
    PATCH = "@@patch"
    APPLY = "@@apply"
    DELETE = "@@delete"
    LIST_PUSH = "@@list-push"
    LIST_POP = "@@list-pop"
    LIST_SHIFT = "@@list-shift"
    LIST_UNSHIFT = "@@list-unshift"
    LIST_SPLICE = "@@list-splice"
    LIST_SORT = "@@list-sort"
    LIST_FILTER = "@@list-filter"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Action:
    """A typed message describing an intended state change."""

    type: Union[ActionType, str]
    payload: Any = None

    @classmethod
    def coerce(cls, action: Union["Action", str], payload: Any = None) -> "Action":
        """Build an action from either an ``Action`` or a ``(type, payload)`` pair."""
        if isinstance(action, Action):
            return action
        return cls(action, payload)

    @property
    def path(self) -> Optional[PathLike]:
        """The payload's ``path`` entry, when the payload carries one."""
        if isinstance(self.payload, dict):
            return self.payload.get("path")
        return None

    def with_payload(self, payload: Any) -> "Action":
        return replace(self, payload=payload)

    def matches(self, for_type: str) -> bool:
        return for_type == WILDCARD or for_type == self.type


@dataclass(frozen=True)
class Continue(Generic[T]):
    """Reducer result: use ``value`` and keep folding."""

    value: T


@dataclass(frozen=True)
class Stop(Generic[T]):
    """Reducer result: use ``value`` and stop folding."""

    value: T


ReducerResult = Union[Continue, Stop]


def unwrap(result: Any) -> Tuple[Any, bool]:
    """Split a reducer result into ``(value, stop)``. Bare values continue."""
    if isinstance(result, Stop):
        return result.value, True
    if isinstance(result, Continue):
        return result.value, False
    return result, False


class StateActions:
    """Payload builders for the built-in verbs."""

    @staticmethod
    def set(value: Any) -> Action:
        return Action(ActionType.SET, {"value": coerce(value)})

    @staticmethod
    def set_in(path: PathLike, value: Any) -> Action:
        return Action(ActionType.SET_IN, {"path": path, "value": coerce(value)})

    @staticmethod
    def patch(path: PathLike, value: Any) -> Action:
        return Action(ActionType.PATCH, {"path": path, "value": coerce(value)})

    @staticmethod
    def apply(path: PathLike, operation: Callable[[Any], Any]) -> Action:
        return Action(ActionType.APPLY, {"path": path, "operation": operation})

    @staticmethod
    def delete(path: PathLike, key: Any) -> Action:
        return Action(ActionType.DELETE, {"path": path, "key": key})

    @staticmethod
    def list_push(path: PathLike, items: Iterable[Any]) -> Action:
        return Action(
            ActionType.LIST_PUSH, {"path": path, "items": [coerce(i) for i in items]}
        )

    @staticmethod
    def list_pop(path: PathLike) -> Action:
        return Action(ActionType.LIST_POP, {"path": path})

    @staticmethod
    def list_shift(path: PathLike) -> Action:
        return Action(ActionType.LIST_SHIFT, {"path": path})

    @staticmethod
    def list_unshift(path: PathLike, items: Iterable[Any]) -> Action:
        return Action(
            ActionType.LIST_UNSHIFT, {"path": path, "items": [coerce(i) for i in items]}
        )

    @staticmethod
    def list_splice(
        path: PathLike,
        index: int,
        delete_count: int = 0,
        items: Iterable[Any] = (),
    ) -> Action:
        return Action(
            ActionType.LIST_SPLICE,
            {
                "path": path,
                "index": index,
                "delete_count": delete_count,
                "items": [coerce(i) for i in items],
            },
        )

    @staticmethod
    def list_sort(
        path: PathLike,
        compare: Optional[Callable[[Any, Any], int]] = None,
        key: Optional[Callable[[Any], Any]] = None,
    ) -> Action:
        return Action(
            ActionType.LIST_SORT, {"path": path, "compare": compare, "key": key}
        )

    @staticmethod
    def list_filter(path: PathLike, predicate: Callable[[Any], bool]) -> Action:
        return Action(ActionType.LIST_FILTER, {"path": path, "predicate": predicate})

"""
Arbor Processors - Built-in Verbs
=================================

Default processors for every ``ActionType`` member. Each processor has the
signature ``(state, action) -> state`` and resolves the payload path before
touching the tree.

``BUILTIN_PROCESSORS`` maps every verb to its processor; the container
registers them in enum order at construction time.
"""

from functools import cmp_to_key
from typing import Any, Callable, Dict

from pyrsistent import pvector

from .actions import Action, ActionType
from .paths import to_path
from .tree import coerce, delete_in, get_in, get_list, merge_in, set_in

Processor = Callable[[Any, Action], Any]


def _path(action: Action):
    return to_path(action.payload.get("path"))


def process_set(state: Any, action: Action) -> Any:
    return coerce(action.payload["value"])


def process_set_in(state: Any, action: Action) -> Any:
    return set_in(state, _path(action), coerce(action.payload["value"]))


def process_patch(state: Any, action: Action) -> Any:
    return merge_in(state, _path(action), coerce(action.payload["value"]))


def process_apply(state: Any, action: Action) -> Any:
    path = _path(action)
    current = get_in(state, path)
    return set_in(state, path, coerce(action.payload["operation"](current)))


def process_delete(state: Any, action: Action) -> Any:
    return delete_in(state, _path(action), action.payload["key"])


def process_list_push(state: Any, action: Action) -> Any:
    path = _path(action)
    items = [coerce(i) for i in action.payload.get("items", ())]
    return set_in(state, path, get_list(state, path).extend(items))


def process_list_pop(state: Any, action: Action) -> Any:
    path = _path(action)
    return set_in(state, path, get_list(state, path)[:-1])


def process_list_shift(state: Any, action: Action) -> Any:
    path = _path(action)
    return set_in(state, path, get_list(state, path)[1:])


def process_list_unshift(state: Any, action: Action) -> Any:
    path = _path(action)
    items = [coerce(i) for i in action.payload.get("items", ())]
    return set_in(state, path, pvector(items).extend(get_list(state, path)))


def process_list_splice(state: Any, action: Action) -> Any:
    path = _path(action)
    current = get_list(state, path)
    size = len(current)

    index = action.payload.get("index", 0)
    if index < 0:
        index = max(size + index, 0)
    index = min(index, size)
    delete_count = max(action.payload.get("delete_count", 0), 0)
    items = [coerce(i) for i in action.payload.get("items", ())]

    spliced = current[:index].extend(items).extend(current[index + delete_count :])
    return set_in(state, path, spliced)


def default_compare(a: Any, b: Any) -> int:
    """Natural ordering; values without one (maps, lists) compare as equal."""
    try:
        return (a > b) - (a < b)
    except TypeError:
        return 0


def process_list_sort(state: Any, action: Action) -> Any:
    path = _path(action)
    compare = action.payload.get("compare")
    key = action.payload.get("key")
    if compare is None and key is None:
        compare = default_compare
    if compare is not None:
        # A comparator wins; a key function is applied to its inputs first.
        if key is not None:
            base = compare
            compare = lambda a, b: base(key(a), key(b))  # noqa: E731
        key = cmp_to_key(compare)
    return set_in(state, path, pvector(sorted(get_list(state, path), key=key)))


def process_list_filter(state: Any, action: Action) -> Any:
    path = _path(action)
    predicate = action.payload["predicate"]
    return set_in(state, path, pvector(i for i in get_list(state, path) if predicate(i)))


BUILTIN_PROCESSORS: Dict[ActionType, Processor] = {
    ActionType.SET: process_set,
    ActionType.SET_IN: process_set_in,
    ActionType.PATCH: process_patch,
    ActionType.APPLY: process_apply,
    ActionType.DELETE: process_delete,
    ActionType.LIST_PUSH: process_list_push,
    ActionType.LIST_POP: process_list_pop,
    ActionType.LIST_SHIFT: process_list_shift,
    ActionType.LIST_UNSHIFT: process_list_unshift,
    ActionType.LIST_SPLICE: process_list_splice,
    ActionType.LIST_SORT: process_list_sort,
    ActionType.LIST_FILTER: process_list_filter,
}

"""
Arbor Tree - Persistent State Tree
==================================

Copy-on-write primitives over ``pyrsistent`` collections. The state tree is
built from two variants:

- **map**: ``pyrsistent.PMap``
- **list**: ``pyrsistent.PVector``

Every update returns a new root while untouched subtrees keep their identity,
so equality checks between snapshots are cheap (``old is new`` for anything
that did not change). When an update would not change anything, the original
root object is returned.

Plain ``dict``/``list``/``tuple`` values are coerced into their persistent
counterparts on the way in (``coerce``) and can be thawed back into plain
structures on the way out (``flatten``).
"""

from typing import Any, Sequence

from pyrsistent import PMap, PVector, pmap, pvector, thaw

from .errors import TypeMismatchError

MISSING = object()

EMPTY_MAP = pmap()
EMPTY_LIST = pvector()


def is_map(value: Any) -> bool:
    return isinstance(value, PMap)


def is_list(value: Any) -> bool:
    return isinstance(value, PVector)


def coerce(value: Any) -> Any:
    """
    Freeze plain containers into persistent ones.

    ``dict`` becomes ``PMap`` and ``list``/``tuple`` become ``PVector``,
    recursively. Values that are already persistent are returned untouched so
    their identity (and any sharing with the current tree) is preserved.
    """
    if isinstance(value, (PMap, PVector)):
        return value
    if isinstance(value, dict):
        return pmap({key: coerce(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return pvector(coerce(item) for item in value)
    return value


def flatten(value: Any) -> Any:
    """Thaw persistent containers back into plain ``dict``/``list`` values."""
    if isinstance(value, (PMap, PVector)):
        return thaw(value)
    return value


def _index(segment: Any) -> int:
    try:
        return int(segment)
    except (TypeError, ValueError):
        raise TypeMismatchError(
            f"List segments must be integer indexes, got {segment!r}"
        ) from None


def _child(node: Any, segment: Any) -> Any:
    if is_map(node):
        return node.get(segment, MISSING)
    if is_list(node):
        index = _index(segment)
        if 0 <= index < len(node):
            return node[index]
        return MISSING
    return MISSING


def get_in(tree: Any, path: Sequence[Any], default: Any = None) -> Any:
    """Read the value at ``path``; ``default`` when any segment is missing."""
    node = tree
    for segment in path:
        node = _child(node, segment)
        if node is MISSING:
            return default
    return node


def set_in(tree: Any, path: Sequence[Any], value: Any) -> Any:
    """
    Write ``value`` at ``path`` and return the new root.

    Missing intermediate nodes are created as empty maps. Writing past the end
    of a list pads the gap with ``None``.
    """
    if not path:
        return value

    head, rest = path[0], path[1:]

    if tree is None or tree is MISSING:
        tree = EMPTY_MAP

    if is_map(tree):
        current = tree.get(head, MISSING)
        child = set_in(EMPTY_MAP if current is MISSING else current, rest, value)
        if child is current:
            return tree
        return tree.set(head, child)

    if is_list(tree):
        index = _index(head)
        if index < 0:
            index += len(tree)
        if index < 0:
            raise TypeMismatchError(f"List index {head!r} is out of range")
        current = tree[index] if index < len(tree) else MISSING
        child = set_in(EMPTY_MAP if current is MISSING else current, rest, value)
        if child is current:
            return tree
        if index < len(tree):
            return tree.set(index, child)
        return tree.extend([None] * (index - len(tree))).append(child)

    raise TypeMismatchError(
        f"Cannot write key {head!r} into a value of type {type(tree).__name__}"
    )


def _deep_merge(current: Any, value: Any) -> Any:
    if not (is_map(current) and is_map(value)):
        return value
    result = current
    for key, item in value.items():
        existing = current.get(key, MISSING)
        merged = item if existing is MISSING else _deep_merge(existing, item)
        if merged is not existing:
            result = result.set(key, merged)
    return result


def merge_in(tree: Any, path: Sequence[Any], value: Any) -> Any:
    """
    Deep-merge ``value`` into the value at ``path``.

    Maps merge key by key, recursively. Any other pairing (list into list,
    scalar into map, anything into an absent value) replaces the target.
    """
    current = get_in(tree, path, MISSING)
    if current is MISSING:
        return set_in(tree, path, value)
    return set_in(tree, path, _deep_merge(current, value))


def delete_in(tree: Any, path: Sequence[Any], key: Any) -> Any:
    """Remove ``key`` from the map at ``path``; absent map or key is a no-op."""
    target = get_in(tree, path, MISSING)
    if target is MISSING or target is None:
        return tree
    if not is_map(target):
        raise TypeMismatchError(
            f"Delete can only be performed on map types. Expected PMap but found "
            f"{type(target).__name__}::{target!r}"
        )
    if key not in target:
        return tree
    return set_in(tree, path, target.remove(key))


def get_list(tree: Any, path: Sequence[Any]) -> PVector:
    """
    Return the list at ``path`` for a list verb.

    Absent values are treated as an empty list. Any other variant raises
    ``TypeMismatchError``.
    """
    value = get_in(tree, path, MISSING)
    if value is MISSING or value is None:
        return EMPTY_LIST
    if not is_list(value):
        raise TypeMismatchError(
            f"List operations can only be performed in list types. Expected "
            f"PVector but found {type(value).__name__}::{value!r}"
        )
    return value

"""
Arbor Paths - Path Algebra
==========================

Paths address values inside the state tree. A path is either a dot-separated
string (``"users.alice.name"``) or a sequence of segments
(``["users", "alice", "name"]``). Before use, every path is resolved so that
relative tokens are applied:

- ``~`` re-roots the path (clears everything before it)
- ``..`` goes up one level (a no-op at the root)
- ``.`` stays at the current level

Example:
    >>> resolve_path(["a", "b", "..", "c"])
    ('a', 'c')
    >>> to_path("settings.~.users")
    ('users',)

String splitting is cached because the same handful of paths are resolved on
every state emission by the selection layer.
"""

from typing import Any, Iterable, Sequence, Tuple, Union

from cachetools import LRUCache, cached

PathLike = Union[None, str, int, Sequence[Any]]
Path = Tuple[Any, ...]

ROOT = "~"
PARENT = ".."
CURRENT = "."


@cached(cache=LRUCache(maxsize=4096))
def _split(path: str) -> Path:
    if not path:
        return ()
    return tuple(path.split("."))


def ensure_array(path: PathLike) -> Path:
    """
    Normalize a path into a tuple of segments.

    Strings are split on ``.``, ``None`` and ``""`` denote the root, a bare
    integer is a single index segment, and sequences are taken as already
    segmented.
    """
    if path is None:
        return ()
    if isinstance(path, str):
        return _split(path)
    if isinstance(path, int):
        return (path,)
    return tuple(path)


def combine_paths(a: PathLike, b: PathLike) -> Path:
    """Concatenate two path definitions without resolving them."""
    return ensure_array(a) + ensure_array(b)


def resolve_path(segments: Iterable[Any]) -> Path:
    """Apply the relative tokens in ``segments`` and return an absolute path."""
    current = []
    for segment in segments:
        if segment == ROOT:
            current.clear()
        elif segment == PARENT:
            if current:
                current.pop()
        elif segment != CURRENT:
            current.append(segment)
    return tuple(current)


def to_path(path: PathLike) -> Path:
    """Shorthand for ``resolve_path(ensure_array(path))``."""
    return resolve_path(ensure_array(path))


def is_prefix(prefix: Sequence[Any], path: Sequence[Any]) -> bool:
    """
    Segment-wise prefix test.

    Compares whole segments so that ``("users",)`` is a prefix of
    ``("users", "alice")`` but not of ``("usersettings",)``. Segments are
    compared as strings, so ``("items", 0)`` and ``("items", "0")`` match.
    """
    if len(prefix) > len(path):
        return False
    return all(str(a) == str(b) for a, b in zip(prefix, path))

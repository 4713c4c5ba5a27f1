"""
Arbor Select - Observable Selection Layer
=========================================

Derived observables over the state stream. A selection maps every state
snapshot to the value at a path and suppresses consecutive duplicates.
Because snapshots share untouched subtrees, an unrelated update produces the
very same object at the selected path and is filtered by identity before any
equality comparison runs.

Optional ``SelectSettings`` are applied in a fixed order:

1. ``debounce``: seconds of silence required before a value is emitted
2. ``pre_filter``: predicate on the raw selected value
3. ``map``: ``map(value, container)``
4. ``post_filter``: predicate on the mapped value

``flatten=True`` thaws persistent maps and lists into plain ``dict``/``list``
values on every emission. This is O(size of the selected value) each time
the state changes, so it is best kept for small or slowly-changing subtrees.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import SchedulerBase

from .paths import PathLike, to_path
from .tree import flatten, get_in


@dataclass(frozen=True)
class SelectSettings:
    debounce: Optional[float] = None
    pre_filter: Optional[Callable[[Any], bool]] = None
    map: Optional[Callable[[Any, Any], Any]] = None
    post_filter: Optional[Callable[[Any], bool]] = None


def same_value(a: Any, b: Any) -> bool:
    return a is b or a == b


def select_path(
    source: Observable,
    path: PathLike,
    settings: Optional[SelectSettings] = None,
    *,
    owner: Any = None,
    scheduler: Optional[SchedulerBase] = None,
    flatten_values: bool = False,
) -> Observable:
    """
    Build the selection pipeline for ``path`` over ``source``.

    Args:
        source: Observable of state snapshots (replays the latest one)
        path: Path to select, resolved once up front
        settings: Optional debounce/filter/map settings
        owner: Object handed to ``settings.map`` as its second argument
        scheduler: Scheduler used for debouncing
        flatten_values: Thaw persistent values before duplicate suppression

    Returns:
        Observable of the selected value
    """
    resolved = to_path(path)
    pipeline = [ops.map(lambda state: get_in(state, resolved))]
    if flatten_values:
        pipeline.append(ops.map(flatten))
    pipeline.append(ops.distinct_until_changed(comparer=same_value))

    if settings is not None:
        if settings.debounce is not None and settings.debounce > 0:
            pipeline.append(ops.debounce(settings.debounce, scheduler=scheduler))
        if settings.pre_filter is not None:
            pipeline.append(ops.filter(settings.pre_filter))
        if settings.map is not None:
            mapper = settings.map
            pipeline.append(ops.map(lambda value: mapper(value, owner)))
        if settings.post_filter is not None:
            pipeline.append(ops.filter(settings.post_filter))

    return source.pipe(*pipeline)

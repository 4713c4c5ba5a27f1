"""
Recording observers for tests.

``record(observable)`` subscribes and returns a ``Recorder`` that keeps every
value, error and completion it receives.
"""

from typing import Any, List, Optional

from reactivex import Observable


class Recorder:
    """Observer that remembers everything it is told."""

    def __init__(self):
        self.values: List[Any] = []
        self.errors: List[Exception] = []
        self.completed = False
        self.subscription = None

    def on_next(self, value: Any) -> None:
        self.values.append(value)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)

    def on_completed(self) -> None:
        self.completed = True

    @property
    def last(self) -> Optional[Any]:
        return self.values[-1] if self.values else None

    def types(self) -> List[str]:
        """Action types seen, as plain strings."""
        return [str(action.type) for action in self.values]

    def dispose(self) -> None:
        if self.subscription is not None:
            self.subscription.dispose()


def record(observable: Observable) -> Recorder:
    recorder = Recorder()
    recorder.subscription = observable.subscribe(
        on_next=recorder.on_next,
        on_error=recorder.on_error,
        on_completed=recorder.on_completed,
    )
    return recorder

"""
Arbor Notifier - Post-Action Telemetry
======================================

Every pipeline pass produces a ``PostAction`` record describing what
happened. Records are delivered on the container's scheduler, never inside
the ``dispatch`` call that produced them, so subscribers may dispatch again
without re-entering the pipeline.

Subscribers are observers only: an exception raised by one of them is logged
and dropped, and the remaining subscribers still receive the record.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import reactivex
from reactivex import Observable
from reactivex.abc import DisposableBase, ObserverBase, SchedulerBase
from reactivex.subject import Subject

from .actions import Action


@dataclass(frozen=True)
class PostAction:
    """Record of one completed pass."""

    initial_state: Any
    final_state: Any
    initial_action: Action
    executed_action: Optional[Action]


class PostActionNotifier:
    """Defers ``PostAction`` delivery by one scheduler tick."""

    def __init__(self, scheduler: SchedulerBase):
        self._scheduler = scheduler
        self._subject: Subject = Subject()
        self._completed = False

    @property
    def observable(self) -> Observable:
        """Records, with every subscriber guarded on its own."""

        def subscribe(
            observer: ObserverBase, scheduler: Optional[SchedulerBase] = None
        ) -> DisposableBase:
            def on_next(record: PostAction) -> None:
                try:
                    observer.on_next(record)
                except Exception as e:
                    logging.error(
                        f"Error in post-action subscriber for "
                        f"{record.initial_action.type!s}: {e}"
                    )

            return self._subject.subscribe(
                on_next=on_next,
                on_error=observer.on_error,
                on_completed=observer.on_completed,
            )

        return reactivex.create(subscribe)

    def notify(self, record: PostAction) -> None:
        if self._completed:
            return
        self._scheduler.schedule(self._deliver, record)

    def _deliver(self, scheduler: Any, record: PostAction) -> None:
        if self._completed:
            return
        self._subject.on_next(record)

    def complete(self) -> None:
        self._completed = True
        self._subject.on_completed()

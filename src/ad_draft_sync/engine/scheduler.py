from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..model import CommitPolicy, FieldName
from .base import TimerFactory, TimerHandle

logger = logging.getLogger(__name__)

CommitCallback = Callable[[FieldName], None]


class CommitScheduler(ABC):
    """Decides when an edited field is written back to the store."""

    def __init__(self, commit: CommitCallback) -> None:
        self._commit = commit

    @abstractmethod
    def on_edit(self, name: FieldName) -> None:
        """Called after every user edit to `name`."""

    def pending(self, name: FieldName) -> bool:  # noqa: ARG002
        return False

    def pending_fields(self) -> tuple[FieldName, ...]:
        return ()

    def cancel(self, name: FieldName) -> bool:  # noqa: ARG002
        """Drop a scheduled commit for `name` without running it."""

        return False

    def cancel_all(self) -> int:
        """Drop every scheduled commit without running it. Returns how many were dropped."""

        return 0


class ImmediateScheduler(CommitScheduler):
    """Commits synchronously on every edit."""

    def on_edit(self, name: FieldName) -> None:
        self._commit(name)


class DebouncedScheduler(CommitScheduler):
    """Coalesces rapid edits per field into one commit after a quiet period.

    Each field owns at most one timer. A new edit cancels the field's timer and
    arms a fresh one, so only the last value inside the window is committed.
    """

    def __init__(
        self,
        commit: CommitCallback,
        *,
        timers: TimerFactory,
        delay_ms: int,
    ) -> None:
        super().__init__(commit)
        if delay_ms <= 0:
            raise ValueError("delay_ms must be > 0")
        self._timers = timers
        self._delay_ms = delay_ms
        self._handles: dict[FieldName, TimerHandle] = {}

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def on_edit(self, name: FieldName) -> None:
        self.cancel(name)
        handle: TimerHandle | None = None

        def fire() -> None:
            # A stale handle means a newer edit re-armed this field.
            if self._handles.get(name) is not handle:
                return
            del self._handles[name]
            logger.debug("Debounced commit fired for %s", name)
            self._commit(name)

        handle = self._timers.call_later(self._delay_ms / 1000.0, fire)
        self._handles[name] = handle

    def pending(self, name: FieldName) -> bool:
        return name in self._handles

    def pending_fields(self) -> tuple[FieldName, ...]:
        return tuple(self._handles)

    def cancel(self, name: FieldName) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
        return len(handles)


def make_scheduler(
    policy: CommitPolicy,
    *,
    timers: TimerFactory | None,
    commit: CommitCallback,
) -> CommitScheduler:
    if policy.kind == "immediate":
        return ImmediateScheduler(commit)
    if timers is None:
        raise ValueError("A debounced commit policy needs a timer factory")
    return DebouncedScheduler(commit, timers=timers, delay_ms=policy.delay_ms)

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .base import TimerFactory, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(order=True, slots=True)
class _ScheduledCall:
    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerFactory(TimerFactory):
    """Virtual-clock timers used by tests and scripted replays.

    Nothing runs until the clock is moved with `advance()` or drained with
    `run_pending()`. Timers due at the same instant fire in scheduling order.
    Callbacks may arm new timers; those fire too if they fall inside the
    advanced window.
    """

    def __init__(self) -> None:
        self._now_ms = 0.0
        self._seq = itertools.count()
        self._queue: list[_ScheduledCall] = []

    @property
    def now_ms(self) -> float:
        return self._now_ms

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        call = _ScheduledCall(
            due_ms=self._now_ms + delay_s * 1000.0,
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._queue, call)
        return call

    def pending_count(self) -> int:
        return sum(1 for call in self._queue if not call.cancelled)

    def next_due_ms(self) -> float | None:
        self._drop_cancelled_head()
        if not self._queue:
            return None
        return self._queue[0].due_ms

    def advance(self, ms: float) -> int:
        """Move the virtual clock forward by `ms`, firing every timer that comes due.

        Returns the number of callbacks run.
        """

        if ms < 0:
            raise ValueError("ms must be >= 0")
        target = self._now_ms + ms
        fired = 0
        while True:
            self._drop_cancelled_head()
            if not self._queue or self._queue[0].due_ms > target:
                break
            call = heapq.heappop(self._queue)
            self._now_ms = max(self._now_ms, call.due_ms)
            fired += 1
            call.callback()
        self._now_ms = target
        return fired

    def run_pending(self) -> int:
        """Fire every outstanding timer, advancing the clock as far as needed."""

        fired = 0
        while (due := self.next_due_ms()) is not None:
            fired += self.advance(max(0.0, due - self._now_ms))
        logger.debug("Drained %d pending timer(s) at t=%.0fms", fired, self._now_ms)
        return fired

    def _drop_cancelled_head(self) -> None:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)

from __future__ import annotations

import asyncio
from collections.abc import Callable

from .base import TimerFactory, TimerHandle


class _LoopTimer:
    __slots__ = ("_handle",)

    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioTimerFactory(TimerFactory):
    """Timers backed by `loop.call_later` on a running asyncio event loop.

    Callbacks run on the loop thread, so they interleave with user input and
    store notifications without any locking. The loop is looked up lazily when
    a timer is first armed unless one is passed explicitly.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        return _LoopTimer(self._resolve_loop().call_later(delay_s, callback))

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol


class SyncError(Exception):
    """Base class for draft-sync errors."""


class UnknownFieldError(SyncError):
    """Raised when a field name is not part of the ad record."""


class ControllerClosedError(SyncError):
    """Raised when a torn-down fork controller receives an edit."""


class LivelockError(SyncError):
    """Raised when store notifications re-enter past the configured depth.

    This indicates an update cycle (commit -> notify -> commit ...) that never
    settles. It is a design defect, not a recoverable condition: nothing in the
    engine catches it.
    """


class TimerHandle(Protocol):
    """Cancellable reference to a scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback. After this returns the callback never runs."""

    @property
    def cancelled(self) -> bool:
        """True once `cancel()` was called."""


class TimerFactory(ABC):
    """Source of one-shot timers for debounced commits."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule `callback` to run once after `delay_s` seconds.

        Args:
            delay_s: Delay in seconds (>= 0).
            callback: Zero-argument callable run on the event thread.
        """

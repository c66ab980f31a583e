from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .engine.base import LivelockError, UnknownFieldError
from .model import AdRecord, FieldName, is_field_name

logger = logging.getLogger(__name__)

StoreListener = Callable[[AdRecord], None]
Unsubscribe = Callable[[], None]


@dataclass(slots=True)
class _Subscription:
    callback: StoreListener
    active: bool = True


class AdStore:
    """Authoritative in-process ad record.

    Every mutation notifies all current subscribers synchronously, in
    registration order, before the mutating call returns. Mutations issued from
    inside a subscriber callback are applied immediately and notify on top of
    the current call stack; each notification carries the record produced by
    its own mutation.
    """

    def __init__(
        self,
        initial: AdRecord | None = None,
        *,
        max_notify_depth: int = 64,
    ) -> None:
        if max_notify_depth < 1:
            raise ValueError("max_notify_depth must be >= 1")
        self._record = initial if initial is not None else AdRecord()
        self._subscriptions: list[_Subscription] = []
        self._notify_depth = 0
        self._max_notify_depth = max_notify_depth

    def get_all(self) -> AdRecord:
        return self._record

    def set_field(self, name: FieldName, value: str) -> None:
        if not is_field_name(name):
            raise UnknownFieldError(f"Unknown ad field: {name!r}")
        logger.debug("Updating %s to %r", name, value)
        self._record = self._record.with_field(name, value)
        self._notify(self._record)

    def set_all(self, record: AdRecord) -> None:
        logger.debug("Updating all fields: %r", record)
        self._record = record
        self._notify(record)

    def subscribe(self, callback: StoreListener) -> Unsubscribe:
        subscription = _Subscription(callback=callback)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions.remove(subscription)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _notify(self, record: AdRecord) -> None:
        if self._notify_depth >= self._max_notify_depth:
            raise LivelockError(
                f"Store notifications nested {self._notify_depth} deep; "
                "an update cycle is not settling"
            )
        self._notify_depth += 1
        try:
            # Snapshot: subscribers added mid-notification wait for the next mutation.
            for subscription in list(self._subscriptions):
                if subscription.active:
                    subscription.callback(record)
        finally:
            self._notify_depth -= 1

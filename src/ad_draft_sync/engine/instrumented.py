from __future__ import annotations

from dataclasses import dataclass, field

from ..model import AdRecord, FieldName
from ..store import AdStore, StoreListener, Unsubscribe


@dataclass(slots=True)
class StoreCounters:
    set_field_calls: int = 0
    set_all_calls: int = 0
    notifications: int = 0
    writes: list[tuple[FieldName, str]] = field(default_factory=list)


class CountingStore(AdStore):
    """Store that counts mutations and delivered notifications.

    Useful for asserting commit counts and for bounding update cycles.
    """

    def __init__(self, initial: AdRecord | None = None, *, max_notify_depth: int = 64) -> None:
        super().__init__(initial, max_notify_depth=max_notify_depth)
        self.counters = StoreCounters()

    def set_field(self, name: FieldName, value: str) -> None:
        self.counters.set_field_calls += 1
        self.counters.writes.append((name, value))
        super().set_field(name, value)

    def set_all(self, record: AdRecord) -> None:
        self.counters.set_all_calls += 1
        super().set_all(record)

    def subscribe(self, callback: StoreListener) -> Unsubscribe:
        def counted(record: AdRecord) -> None:
            self.counters.notifications += 1
            callback(record)

        return super().subscribe(counted)

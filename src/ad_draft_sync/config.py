from __future__ import annotations

from dataclasses import dataclass

from .model import DEFAULT_DEBOUNCE_MS, CommitPolicy


@dataclass(frozen=True)
class SyncConfig:
    gallery_debounce_ms: int = DEFAULT_DEBOUNCE_MS
    table_rows: int = 1
    initial_preset: str | None = None
    max_notify_depth: int = 64

    def __post_init__(self) -> None:
        if self.gallery_debounce_ms <= 0:
            raise ValueError("gallery_debounce_ms must be > 0")
        if self.table_rows < 1:
            raise ValueError("table_rows must be >= 1")
        if self.max_notify_depth < 1:
            raise ValueError("max_notify_depth must be >= 1")

    @property
    def gallery_policy(self) -> CommitPolicy:
        return CommitPolicy.debounced(self.gallery_debounce_ms)

    @property
    def table_policy(self) -> CommitPolicy:
        return CommitPolicy.immediate()

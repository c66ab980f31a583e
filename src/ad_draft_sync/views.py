from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager
from dataclasses import dataclass

from .config import SyncConfig
from .engine.base import TimerFactory
from .engine.fork import ForkController
from .engine.observer import DraftChange, DraftObserver
from .model import GALLERY_FIELDS, TABLE_FIELDS, AdRecord, CommitPolicy, FieldName, ViewMode
from .presets import preset_record
from .store import AdStore

logger = logging.getLogger(__name__)

SYNCED_TEXT = "Synced with store"
UNSAVED_TEXT = "Unsaved changes"


class AdView(ABC):
    """A presentational surface made of one or more fork controllers."""

    mode: ViewMode

    @abstractmethod
    def controllers(self) -> Iterator[ForkController]:
        """Yield every controller owned by this view."""

    @abstractmethod
    def edit(self, name: FieldName, value: str, *, row: int = 0) -> str:
        """Forward one raw user edit; returns the displayed value."""

    @property
    def commit_policy(self) -> CommitPolicy:
        return next(self.controllers()).policy

    @property
    def active(self) -> bool:
        return any(controller.active for controller in self.controllers())

    def activate(self) -> None:
        for controller in self.controllers():
            controller.activate()

    def deactivate(self) -> None:
        for controller in self.controllers():
            controller.deactivate()

    def close(self) -> None:
        for controller in self.controllers():
            controller.close()

    def add_observer(self, observer: DraftObserver) -> Callable[[], None]:
        removers = [controller.add_observer(observer) for controller in self.controllers()]

        def remove() -> None:
            for remover in removers:
                remover()

        return remove

    def has_unsaved_changes(self) -> bool:
        return any(controller.has_unsaved_changes() for controller in self.controllers())

    @property
    def sync_status(self) -> str:
        return UNSAVED_TEXT if self.has_unsaved_changes() else SYNCED_TEXT

    def drafts(self) -> dict[str, AdRecord]:
        return {controller.view_id: controller.record for controller in self.controllers()}


class GalleryView(AdView):
    """Card-style editor over the four copy fields with debounced saves."""

    mode: ViewMode = "gallery"

    def __init__(self, store: AdStore, *, timers: TimerFactory, config: SyncConfig) -> None:
        self.controller = ForkController(
            store,
            view_id="gallery",
            policy=config.gallery_policy,
            timers=timers,
            fields=GALLERY_FIELDS,
            active=False,
        )

    def controllers(self) -> Iterator[ForkController]:
        yield self.controller

    def edit(self, name: FieldName, value: str, *, row: int = 0) -> str:
        if row != 0:
            raise IndexError(f"Gallery view has a single card, got row={row}")
        return self.controller.apply_user_edit(name, value)


@dataclass(slots=True)
class TableRow:
    row_id: str
    controller: ForkController
    is_customized: bool = False


class TableView(AdView):
    """Row editor with immediate saves.

    Every row is its own controller over the shared record, so each row forks
    and resyncs independently. `is_customized` sticks once an edit to the row
    was accepted.
    """

    mode: ViewMode = "table"

    def __init__(self, store: AdStore, *, config: SyncConfig) -> None:
        self.rows: list[TableRow] = [
            TableRow(
                row_id=f"row-{index}",
                controller=ForkController(
                    store,
                    view_id=f"table:row-{index}",
                    policy=config.table_policy,
                    fields=TABLE_FIELDS,
                    active=False,
                ),
            )
            for index in range(config.table_rows)
        ]

    def controllers(self) -> Iterator[ForkController]:
        for row in self.rows:
            yield row.controller

    def row(self, index: int) -> TableRow:
        if not 0 <= index < len(self.rows):
            raise IndexError(f"Table row out of range: {index} (rows={len(self.rows)})")
        return self.rows[index]

    def edit(self, name: FieldName, value: str, *, row: int = 0) -> str:
        target = self.row(row)
        displayed = target.controller.apply_user_edit(name, value)
        target.is_customized = True
        return displayed

    def customized_rows(self) -> tuple[str, ...]:
        return tuple(row.row_id for row in self.rows if row.is_customized)


class Workspace(AbstractContextManager["Workspace"]):
    """Both views over one store, with exactly one view active at a time.

    Switching deactivates the old view without tearing it down: its pending
    debounced commits keep running and its forked values survive until the
    user switches back. `close()` tears every view down.
    """

    def __init__(
        self,
        store: AdStore,
        *,
        timers: TimerFactory,
        config: SyncConfig | None = None,
        mode: ViewMode = "gallery",
    ) -> None:
        self.store = store
        self.config = config or SyncConfig()
        if self.config.initial_preset:
            store.set_all(preset_record(self.config.initial_preset))
        self.gallery = GalleryView(store, timers=timers, config=self.config)
        self.table = TableView(store, config=self.config)
        self._views: dict[ViewMode, AdView] = {"gallery": self.gallery, "table": self.table}
        self._active_mode: ViewMode = mode
        self._views[mode].activate()

    def __exit__(self, *_exc: object) -> None:
        self.close()
        return None

    @property
    def active_mode(self) -> ViewMode:
        return self._active_mode

    @property
    def active_view(self) -> AdView:
        return self._views[self._active_mode]

    def view(self, mode: ViewMode) -> AdView:
        return self._views[mode]

    def views(self) -> tuple[AdView, ...]:
        return tuple(self._views.values())

    def switch_to(self, mode: ViewMode) -> AdView:
        if mode not in self._views:
            raise ValueError(f"Unknown view mode: {mode!r}")
        if mode == self._active_mode:
            return self.active_view
        logger.info("Switching view %s -> %s", self._active_mode, mode)
        self.active_view.deactivate()
        self._active_mode = mode
        self.active_view.activate()
        return self.active_view

    def load_preset(self, name: str) -> AdRecord:
        record = preset_record(name)
        logger.info("Loading preset %s", name)
        self.store.set_all(record)
        return record

    def edit(self, name: FieldName, value: str, *, row: int = 0) -> str:
        return self.active_view.edit(name, value, row=row)

    def add_observer(self, observer: Callable[[DraftChange], None]) -> Callable[[], None]:
        removers = [view.add_observer(observer) for view in self._views.values()]

        def remove() -> None:
            for remover in removers:
                remover()

        return remove

    def close(self) -> None:
        for view in self._views.values():
            view.close()

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractContextManager

from ..model import FIELD_NAMES, AdRecord, CommitPolicy, FieldName, FieldState
from ..normalize import normalize_field
from ..store import AdStore, Unsubscribe
from .base import ControllerClosedError, TimerFactory, UnknownFieldError
from .observer import ChangeCause, DraftChange, DraftObserver
from .scheduler import CommitScheduler, make_scheduler

logger = logging.getLogger(__name__)


class ForkController(AbstractContextManager["ForkController"]):
    """Per-view draft of the shared ad record.

    Each field is either *synced* (its displayed value mirrors the store) or
    *forked* (the user edited it and the commit has not run yet). External
    updates are adopted only by synced fields, so an edit in progress is never
    overwritten. Commits mark the field synced before writing to the store;
    the store's echo of that write is then a no-op confirmation.

    A deactivated controller stops listening to the store but keeps its forked
    values and pending commits; `activate()` reseeds every synced field from
    the current store snapshot. `close()` cancels pending commits without
    running them.
    """

    def __init__(
        self,
        store: AdStore,
        *,
        view_id: str,
        policy: CommitPolicy,
        timers: TimerFactory | None = None,
        fields: Iterable[FieldName] = FIELD_NAMES,
        active: bool = True,
    ) -> None:
        self._store = store
        self._view_id = view_id
        self._policy = policy
        self._editable: tuple[FieldName, ...] = tuple(fields)
        for name in self._editable:
            if name not in FIELD_NAMES:
                raise UnknownFieldError(f"Unknown ad field: {name!r}")
        self._record = store.get_all()
        self._states: dict[FieldName, FieldState] = {name: "synced" for name in FIELD_NAMES}
        self._scheduler: CommitScheduler = make_scheduler(
            policy, timers=timers, commit=self.on_commit_fired
        )
        self._observers: list[DraftObserver] = []
        self._unsubscribe: Unsubscribe | None = None
        self._closed = False
        if active:
            self.activate()

    def __exit__(self, *_exc: object) -> None:
        self.close()
        return None

    @property
    def view_id(self) -> str:
        return self._view_id

    @property
    def policy(self) -> CommitPolicy:
        return self._policy

    @property
    def fields(self) -> tuple[FieldName, ...]:
        return self._editable

    @property
    def record(self) -> AdRecord:
        return self._record

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def value(self, name: FieldName) -> str:
        return self._record.get(name)

    def state(self, name: FieldName) -> FieldState:
        return self._states[name]

    def is_forked(self, name: FieldName) -> bool:
        return self._states[name] == "forked_pending"

    def forked_fields(self) -> tuple[FieldName, ...]:
        return tuple(name for name in FIELD_NAMES if self.is_forked(name))

    def has_pending_commit(self, name: FieldName) -> bool:
        return self._scheduler.pending(name)

    def has_unsaved_changes(self) -> bool:
        if self.forked_fields():
            return True
        if not self.active:
            # Synced fields are reseeded on activate, so only forks count while hidden.
            return False
        return any(name in self._editable for name in self._record.diff(self._store.get_all()))

    def add_observer(self, observer: DraftObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def remove() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return remove

    # -- lifecycle ---------------------------------------------------------

    def activate(self) -> None:
        if self._closed:
            raise ControllerClosedError(f"{self._view_id}: controller is closed")
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._store.subscribe(self._on_store_change)
        self._adopt(self._store.get_all(), cause="reseed")

    def deactivate(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()

    def close(self) -> None:
        if self._closed:
            return
        dropped = self._scheduler.cancel_all()
        if dropped:
            logger.info(
                "%s: discarded %d uncommitted edit(s) on teardown", self._view_id, dropped
            )
        self.deactivate()
        self._closed = True
        self._observers.clear()

    # -- sync / fork -------------------------------------------------------

    def accept_external_update(self, name: FieldName, value: str) -> bool:
        """Adopt `value` for `name` unless the field is forked.

        Returns True when the value was adopted (even if unchanged).
        """

        if name not in FIELD_NAMES:
            raise UnknownFieldError(f"Unknown ad field: {name!r}")
        if self.is_forked(name):
            if value != self._record.get(name):
                logger.debug("%s: kept local %s, dropped external %r", self._view_id, name, value)
            return False
        self._adopt(self._record.with_field(name, value), cause="external", only=(name,))
        return True

    def apply_user_edit(self, name: FieldName, raw_value: str) -> str:
        """Take a raw user edit, fork the field and hand it to the commit scheduler.

        Returns the displayed (normalized) value.
        """

        if self._closed:
            raise ControllerClosedError(f"{self._view_id}: controller is closed")
        if name not in self._editable:
            raise UnknownFieldError(f"{self._view_id}: field {name!r} is not editable here")
        value = normalize_field(name, raw_value)
        self._states[name] = "forked_pending"
        if value != self._record.get(name):
            self._record = self._record.with_field(name, value)
            self._emit((name,), cause="edit")
        self._scheduler.on_edit(name)
        return value

    def on_commit_fired(self, name: FieldName) -> None:
        if self._closed or not self.is_forked(name):
            return
        value = self._record.get(name)
        # Synced before the write: the store echo must not look like a new edit.
        self._states[name] = "synced"
        logger.debug("%s: committing %s=%r", self._view_id, name, value)
        self._store.set_field(name, value)
        self._emit((name,), cause="commit")

    def flush(self) -> int:
        """Commit every pending field now instead of waiting for its timer."""

        names = [name for name in self._editable if self._scheduler.pending(name)]
        for name in names:
            self._scheduler.cancel(name)
            self.on_commit_fired(name)
        return len(names)

    def _on_store_change(self, record: AdRecord) -> None:
        self._adopt(record, cause="external")

    def _adopt(
        self,
        incoming: AdRecord,
        *,
        cause: ChangeCause,
        only: tuple[FieldName, ...] = FIELD_NAMES,
    ) -> None:
        changed: list[FieldName] = []
        record = self._record
        for name in only:
            if self.is_forked(name):
                continue
            value = incoming.get(name)
            if value != record.get(name):
                record = record.with_field(name, value)
                changed.append(name)
        if not changed:
            return
        self._record = record
        self._emit(tuple(changed), cause=cause)

    def _emit(self, changed: tuple[FieldName, ...], *, cause: ChangeCause) -> None:
        change = DraftChange(
            view_id=self._view_id,
            record=self._record,
            changed_fields=changed,
            cause=cause,
        )
        for observer in list(self._observers):
            observer(change)

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from .config import SyncConfig
from .engine.base import SyncError
from .engine.instrumented import CountingStore, StoreCounters
from .engine.manual import ManualTimerFactory
from .model import FIELD_NAMES, VIEW_MODES, AdRecord, FieldName, ViewMode
from .views import Workspace

logger = logging.getLogger(__name__)

_STEP_KEYS: tuple[str, ...] = ("edit", "switch", "preset", "advance_ms", "flush")


class ReplayScriptError(SyncError):
    """Raised when a replay script is malformed."""


@dataclass(frozen=True, slots=True)
class ReplayStep:
    kind: str
    field: FieldName | None = None
    value: str = ""
    row: int = 0
    mode: ViewMode | None = None
    preset: str | None = None
    advance_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class ReplayScript:
    steps: list[ReplayStep]
    initial: AdRecord | None = None


@dataclass(frozen=True, slots=True)
class ReplayResult:
    store: AdRecord
    drafts: dict[str, AdRecord]
    sync_status: dict[ViewMode, str]
    active_mode: ViewMode
    commit_policies: dict[ViewMode, str]
    customized_rows: tuple[str, ...]
    elapsed_ms: float
    steps_run: int
    counters: StoreCounters

    def as_dict(self) -> dict[str, Any]:
        return {
            "store": self.store.as_dict(),
            "drafts": {view_id: record.as_dict() for view_id, record in self.drafts.items()},
            "sync_status": dict(self.sync_status),
            "active_mode": self.active_mode,
            "commit_policies": dict(self.commit_policies),
            "customized_rows": list(self.customized_rows),
            "elapsed_ms": self.elapsed_ms,
            "steps_run": self.steps_run,
            "store_writes": {
                "set_field": self.counters.set_field_calls,
                "set_all": self.counters.set_all_calls,
                "notifications": self.counters.notifications,
            },
        }


def _parse_step(index: int, raw: object) -> ReplayStep:
    if not isinstance(raw, Mapping):
        raise ReplayScriptError(f"Step {index}: expected an object, got {type(raw).__name__}")
    kinds = [key for key in _STEP_KEYS if key in raw]
    if len(kinds) != 1:
        raise ReplayScriptError(
            f"Step {index}: expected exactly one of {', '.join(_STEP_KEYS)}, got {sorted(raw)}"
        )
    kind = kinds[0]

    if kind == "edit":
        field_name = raw.get("edit")
        if field_name not in FIELD_NAMES:
            raise ReplayScriptError(f"Step {index}: unknown field {field_name!r}")
        value = raw.get("value", "")
        if not isinstance(value, str):
            raise ReplayScriptError(f"Step {index}: edit value must be a string")
        row = raw.get("row", 0)
        if not isinstance(row, int) or isinstance(row, bool) or row < 0:
            raise ReplayScriptError(f"Step {index}: row must be a non-negative integer")
        return ReplayStep(kind=kind, field=cast(FieldName, field_name), value=value, row=row)

    if kind == "switch":
        mode = raw.get("switch")
        if mode not in VIEW_MODES:
            raise ReplayScriptError(f"Step {index}: unknown view {mode!r}")
        return ReplayStep(kind=kind, mode=cast(ViewMode, mode))

    if kind == "preset":
        preset = raw.get("preset")
        if not isinstance(preset, str) or not preset.strip():
            raise ReplayScriptError(f"Step {index}: preset must be a non-empty string")
        return ReplayStep(kind=kind, preset=preset)

    if kind == "advance_ms":
        delay = raw.get("advance_ms")
        if not isinstance(delay, (int, float)) or isinstance(delay, bool) or delay < 0:
            raise ReplayScriptError(f"Step {index}: advance_ms must be a number >= 0")
        return ReplayStep(kind=kind, advance_ms=float(delay))

    return ReplayStep(kind="flush")


def parse_script(data: object) -> list[ReplayStep]:
    """Parse a replay script: a list of steps, or an object with a `steps` list."""

    steps_obj = data.get("steps") if isinstance(data, Mapping) else data
    if not isinstance(steps_obj, Sequence) or isinstance(steps_obj, (str, bytes)):
        raise ReplayScriptError("Replay script must be a list of steps (or {'steps': [...]})")
    return [_parse_step(index, raw) for index, raw in enumerate(steps_obj)]


def parse_initial(data: object) -> AdRecord | None:
    """Return the optional `initial` store record of an object-form script."""

    if not isinstance(data, Mapping) or data.get("initial") is None:
        return None
    initial = data["initial"]
    if not isinstance(initial, Mapping):
        raise ReplayScriptError("Replay script `initial` must be an object of ad fields")
    try:
        return AdRecord.from_mapping(initial)
    except ValueError as exc:
        raise ReplayScriptError(f"Replay script `initial`: {exc}") from exc


def load_script(path: Path) -> ReplayScript:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ReplayScriptError(f"Cannot read replay script {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ReplayScriptError(f"Invalid JSON in replay script {path}: {exc}") from exc
    return ReplayScript(steps=parse_script(data), initial=parse_initial(data))


def run_replay(
    steps: Sequence[ReplayStep],
    *,
    config: SyncConfig | None = None,
    initial: AdRecord | None = None,
) -> ReplayResult:
    """Drive a workspace through `steps` on a virtual clock.

    Debounced commits fire only when the script advances time (or flushes),
    so a replay is deterministic and takes no wall-clock time.
    """

    cfg = config or SyncConfig()
    timers = ManualTimerFactory()
    store = CountingStore(initial, max_notify_depth=cfg.max_notify_depth)
    with Workspace(store, timers=timers, config=cfg) as workspace:
        for index, step in enumerate(steps):
            logger.debug("Replay step %d at t=%.0fms: %s", index, timers.now_ms, step.kind)
            if step.kind == "edit" and step.field is not None:
                try:
                    workspace.edit(step.field, step.value, row=step.row)
                except (IndexError, SyncError) as exc:
                    raise ReplayScriptError(f"Step {index}: {exc}") from exc
            elif step.kind == "switch" and step.mode is not None:
                workspace.switch_to(step.mode)
            elif step.kind == "preset" and step.preset is not None:
                try:
                    workspace.load_preset(step.preset)
                except SyncError as exc:
                    raise ReplayScriptError(f"Step {index}: {exc}") from exc
            elif step.kind == "advance_ms":
                timers.advance(step.advance_ms)
            elif step.kind == "flush":
                timers.run_pending()

        drafts: dict[str, AdRecord] = {}
        for view in workspace.views():
            drafts.update(view.drafts())
        return ReplayResult(
            store=store.get_all(),
            drafts=drafts,
            sync_status={view.mode: view.sync_status for view in workspace.views()},
            active_mode=workspace.active_mode,
            commit_policies={view.mode: view.commit_policy.label for view in workspace.views()},
            customized_rows=workspace.table.customized_rows(),
            elapsed_ms=timers.now_ms,
            steps_run=len(steps),
            counters=store.counters,
        )

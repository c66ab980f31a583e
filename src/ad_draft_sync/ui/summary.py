from __future__ import annotations

from collections.abc import Mapping

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..model import FIELD_LABELS, FIELD_NAMES, AdRecord
from ..presets import PRESET_LABELS
from ..replay import ReplayResult
from ..views import SYNCED_TEXT

_PREVIEW_CHARS = 50


def _preview(value: str) -> str:
    text = value.replace("\n", " ")
    if len(text) > _PREVIEW_CHARS:
        return f"{text[:_PREVIEW_CHARS]}..."
    return text


def _status_text(status: str) -> Text:
    if status == SYNCED_TEXT:
        return Text(f"✅ {status}", style="green")
    return Text(f"⚠️ {status}", style="bold yellow")


def build_record_table(
    store: AdRecord,
    drafts: Mapping[str, AdRecord] | None = None,
    *,
    title: str = "Global Store State",
) -> Table:
    """Field-by-field table of the store, with one column per view draft.

    Draft cells that differ from the store are highlighted.
    """

    drafts = drafts or {}
    table = Table(title=title, show_lines=False)
    table.add_column("Field", style="bold")
    table.add_column("Store")
    for view_id in drafts:
        table.add_column(view_id)
    for name in FIELD_NAMES:
        stored = store.get(name)
        cells: list[str | Text] = [FIELD_LABELS[name], _preview(stored)]
        for record in drafts.values():
            value = record.get(name)
            style = "yellow" if value != stored else ""
            cells.append(Text(_preview(value), style=style))
        table.add_row(*cells)
    return table


def render_replay_summary(console: Console, result: ReplayResult) -> None:
    console.print(build_record_table(result.store, result.drafts))

    status = Table(title="Views", show_header=True)
    status.add_column("View", style="bold")
    status.add_column("Status")
    status.add_column("Commits")
    status.add_column("Customized rows")
    for mode, text in result.sync_status.items():
        label = f"{mode} (active)" if mode == result.active_mode else mode
        customized = ", ".join(result.customized_rows) if mode == "table" else ""
        status.add_row(
            label,
            _status_text(text),
            result.commit_policies.get(mode, ""),
            customized or "-",
        )
    console.print(status)

    console.print(
        Text(
            f"Steps: {result.steps_run} | Virtual time: {result.elapsed_ms:.0f}ms | "
            f"set_field: {result.counters.set_field_calls} | "
            f"set_all: {result.counters.set_all_calls} | "
            f"notifications: {result.counters.notifications}",
            style="dim",
        )
    )


def render_presets(console: Console) -> None:
    table = Table(title="Presets")
    table.add_column("Name", style="bold")
    table.add_column("Label")
    for name, label in PRESET_LABELS.items():
        table.add_row(name, label)
    console.print(table)

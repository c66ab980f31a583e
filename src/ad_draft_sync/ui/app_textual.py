from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from ..config import SyncConfig
from ..model import (
    FIELD_LABELS,
    FIELD_NAMES,
    GALLERY_FIELDS,
    LAUNCH_AS_VALUES,
    FieldName,
    ViewMode,
)
from ..presets import PRESET_LABELS

if TYPE_CHECKING:
    from textual.app import App

_ID_SEP = "--"

# Fields forwarded on submit or blur instead of per keystroke (normalized on edit).
BATCHED_FIELDS: frozenset[FieldName] = frozenset({"link"})


def input_id(view_id: str, name: FieldName) -> str:
    """Widget id for a field input; view ids like `table:row-0` become `table-row-0`."""

    return f"{view_id.replace(':', '-')}{_ID_SEP}{name}"


def parse_input_id(widget_id: str | None) -> tuple[str, FieldName] | None:
    if not widget_id or _ID_SEP not in widget_id:
        return None
    view_part, name = widget_id.rsplit(_ID_SEP, 1)
    if name not in FIELD_NAMES:
        return None
    view_id = view_part.replace("table-row-", "table:row-", 1)
    return (view_id, cast(FieldName, name))


def row_index(view_id: str) -> int:
    if view_id.startswith("table:row-"):
        return int(view_id.removeprefix("table:row-"))
    return 0


def build_workspace_app(config: SyncConfig, *, mode: ViewMode = "gallery") -> App[None]:
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, Vertical, VerticalScroll
    from textual.css.query import NoMatches
    from textual.widgets import Footer, Header, Input, Label, Select, Static, Tab, Tabs

    from ..engine.asyncio_timers import AsyncioTimerFactory
    from ..engine.observer import DraftChange
    from ..store import AdStore
    from ..views import AdView, TableView, Workspace
    from .summary import build_record_table

    class _WorkspaceApp(App[None]):
        BINDINGS = [
            Binding("ctrl+g", "view_gallery", "Gallery"),
            Binding("ctrl+t", "view_table", "Table"),
            Binding("ctrl+s", "save_now", "Save Now"),
            Binding("ctrl+q", "quit", "Quit"),
        ]

        CSS = """
        #gallery-pane, #table-pane {
            border: round #729fcf;
            height: auto;
        }
        .table-row {
            height: auto;
        }
        .table-row Input, .table-row Select {
            width: 1fr;
        }
        #store-pane {
            border: round #ad7fa8;
            height: auto;
        }
        #status {
            height: 1;
            padding: 0 1;
            color: #fce94f;
            background: #555753;
        }
        """

        def __init__(self) -> None:
            super().__init__()
            self._store = AdStore(max_notify_depth=config.max_notify_depth)
            self._workspace: Workspace | None = None
            self._disposers: list[Any] = []

        @property
        def workspace(self) -> Workspace | None:
            return self._workspace

        def compose(self) -> ComposeResult:
            yield Header(show_clock=False)
            yield Select(
                [(label, name) for name, label in PRESET_LABELS.items()],
                prompt="Load global state preset...",
                id="preset",
            )
            yield Tabs(
                Tab("Gallery", id="tab-gallery"),
                Tab("Table", id="tab-table"),
                id="view-tabs",
            )
            with VerticalScroll():
                with Vertical(id="gallery-pane"):
                    for name in GALLERY_FIELDS:
                        yield Label(FIELD_LABELS[name])
                        yield Input(id=input_id("gallery", name), placeholder=FIELD_LABELS[name])
                    yield Static("", id="gallery-status")
                with Vertical(id="table-pane"):
                    for index in range(config.table_rows):
                        view_id = f"table:row-{index}"
                        with Horizontal(classes="table-row"):
                            for name in FIELD_NAMES:
                                if name == "launch_as":
                                    yield Select(
                                        [(value.title(), value) for value in LAUNCH_AS_VALUES],
                                        allow_blank=False,
                                        id=input_id(view_id, name),
                                    )
                                    continue
                                yield Input(
                                    id=input_id(view_id, name),
                                    placeholder=FIELD_LABELS[name],
                                )
                    yield Static("", id="table-status")
                yield Static("", id="store-pane")
            yield Static("", id="status")
            yield Footer()

        def on_mount(self) -> None:
            workspace = Workspace(
                self._store,
                timers=AsyncioTimerFactory(),
                config=config,
                mode=mode,
            )
            self._workspace = workspace
            self._disposers.append(workspace.add_observer(self._on_draft_change))
            self._disposers.append(self._store.subscribe(lambda _record: self._render_store()))
            for view in workspace.views():
                self._render_inputs(view)
            self.query_one("#view-tabs", Tabs).active = f"tab-{mode}"
            self._show_mode(mode)
            self._render_store()

        def on_unmount(self) -> None:
            for dispose in self._disposers:
                dispose()
            self._disposers.clear()
            if self._workspace is not None:
                self._workspace.close()

        def _set_status(self, text: str) -> None:
            self.query_one("#status", Static).update(text)

        def _set_input(self, view_id: str, name: FieldName, value: str) -> None:
            try:
                widget = self.query_one(f"#{input_id(view_id, name)}")
            except NoMatches:
                return
            # Programmatic updates must not come back as user edits.
            if isinstance(widget, Select):
                if value not in LAUNCH_AS_VALUES or widget.value == value:
                    return
                with widget.prevent(Select.Changed):
                    widget.value = value
                return
            if not isinstance(widget, Input) or widget.value == value:
                return
            with widget.prevent(Input.Changed):
                widget.value = value
            widget.cursor_position = len(value)

        def _render_inputs(self, view: AdView) -> None:
            # Drops typed text that never reached the engine (unsubmitted links).
            for view_id, record in view.drafts().items():
                for name in FIELD_NAMES:
                    self._set_input(view_id, name, record.get(name))

        def _view_status(self, view: AdView) -> str:
            if isinstance(view, TableView) and view.customized_rows():
                return f"{view.sync_status} | customized: {', '.join(view.customized_rows())}"
            return view.sync_status

        def _render_store(self) -> None:
            if self._workspace is None:
                return
            workspace = self._workspace
            self.query_one("#store-pane", Static).update(
                build_record_table(workspace.store.get_all(), workspace.active_view.drafts())
            )
            for view in workspace.views():
                self.query_one(f"#{view.mode}-status", Static).update(self._view_status(view))

        def _on_draft_change(self, change: DraftChange) -> None:
            for name in change.changed_fields:
                self._set_input(change.view_id, name, change.record.get(name))
            self._render_store()

        def _show_mode(self, target: ViewMode) -> None:
            self.query_one("#gallery-pane").display = target == "gallery"
            self.query_one("#table-pane").display = target == "table"
            if self._workspace is not None:
                policy = self._workspace.view(target).commit_policy.label
                self._set_status(f"View: {target} ({policy})")

        def _forward_edit(self, widget_id: str | None, value: str) -> None:
            parsed = parse_input_id(widget_id)
            if parsed is None or self._workspace is None:
                return
            view_id, name = parsed
            target: ViewMode = "gallery" if view_id == "gallery" else "table"
            if target != self._workspace.active_mode:
                return
            draft = self._workspace.view(target).drafts().get(view_id)
            if draft is not None and draft.get(name) == value:
                return
            self._workspace.edit(name, value, row=row_index(view_id))
            self._render_store()

        def on_input_changed(self, event: Input.Changed) -> None:
            parsed = parse_input_id(event.input.id)
            if parsed is None or parsed[1] in BATCHED_FIELDS:
                return
            self._forward_edit(event.input.id, event.value)

        def on_input_submitted(self, event: Input.Submitted) -> None:
            parsed = parse_input_id(event.input.id)
            if parsed is None or parsed[1] not in BATCHED_FIELDS:
                return
            self._forward_edit(event.input.id, event.value)

        def on_input_blurred(self, event: Input.Blurred) -> None:
            parsed = parse_input_id(event.input.id)
            if parsed is None or parsed[1] not in BATCHED_FIELDS:
                return
            self._forward_edit(event.input.id, event.value)

        def on_select_changed(self, event: Select.Changed) -> None:
            if self._workspace is None or not isinstance(event.value, str):
                return
            if event.select.id != "preset":
                self._forward_edit(event.select.id, event.value)
                return
            self._workspace.load_preset(event.value)
            self._set_status(f"Loaded preset: {PRESET_LABELS[event.value]}")

        def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
            if self._workspace is None or event.tab is None or event.tab.id is None:
                return
            target: ViewMode = "table" if event.tab.id == "tab-table" else "gallery"
            view = self._workspace.switch_to(target)
            self._render_inputs(view)
            self._show_mode(target)
            self._render_store()

        def action_view_gallery(self) -> None:
            self.query_one("#view-tabs", Tabs).active = "tab-gallery"

        def action_view_table(self) -> None:
            self.query_one("#view-tabs", Tabs).active = "tab-table"

        def action_save_now(self) -> None:
            if self._workspace is None:
                return
            committed = sum(
                controller.flush() for controller in self._workspace.active_view.controllers()
            )
            self._set_status(f"Saved {committed} pending field(s)")

    return _WorkspaceApp()


def run_workspace_app(config: SyncConfig, *, mode: ViewMode = "gallery") -> None:
    build_workspace_app(config, mode=mode).run()

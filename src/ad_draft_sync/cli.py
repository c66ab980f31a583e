from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import cast

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import SyncConfig
from .model import VIEW_MODES, ViewMode
from .normalize import normalize_link
from .presets import PRESETS, PresetNotFoundError, preset_record
from .replay import ReplayScriptError, load_script, run_replay
from .ui.app_textual import run_workspace_app
from .ui.summary import render_presets, render_replay_summary

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _can_launch_interactive_ui(console: Console) -> bool:
    return (
        console.is_terminal
        and sys.stdin.isatty()
        and sys.stdout.isatty()
        and sys.platform != "win32"
    )


def _build_config(*, debounce_ms: int, table_rows: int, preset: str | None) -> SyncConfig:
    if preset is not None:
        try:
            preset_record(preset)
        except PresetNotFoundError as exc:
            raise typer.BadParameter(str(exc), param_hint="--preset") from exc
        preset = preset.strip().lower()
    try:
        return SyncConfig(
            gallery_debounce_ms=debounce_ms,
            table_rows=table_rows,
            initial_preset=preset,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Print version and exit.",
        is_eager=True,
    ),
    verbose: bool = typer.Option(  # noqa: B008
        False,
        "--verbose",
        "-v",
        help="Log store writes, commits and dropped external updates to stderr.",
    ),
) -> None:
    if version:
        typer.echo(f"ad-draft-sync {__version__}")
        raise typer.Exit(0)
    _configure_logging(verbose=verbose)


@app.command()
def tui(
    view: str = typer.Option(  # noqa: B008
        "gallery",
        "--view",
        help="Initial view: gallery or table.",
    ),
    debounce_ms: int = typer.Option(  # noqa: B008
        500,
        "--debounce-ms",
        envvar="ADSYNC_DEBOUNCE_MS",
        help="Quiet period before the gallery view saves an edit.",
    ),
    table_rows: int = typer.Option(  # noqa: B008
        1,
        "--table-rows",
        envvar="ADSYNC_TABLE_ROWS",
        help="Number of independently editable rows in the table view.",
    ),
    preset: str | None = typer.Option(  # noqa: B008
        None,
        "--preset",
        envvar="ADSYNC_PRESET",
        help="Preset loaded into the store at start (ad1, ad2, ad3, clear, speechify).",
    ),
) -> None:
    """Edit the shared ad record in the fullscreen Gallery/Table UI."""

    view_value = view.strip().lower()
    if view_value not in VIEW_MODES:
        typer.echo("Invalid --view value. Expected one of: gallery, table.", err=True)
        raise typer.Exit(2)
    config = _build_config(debounce_ms=debounce_ms, table_rows=table_rows, preset=preset)

    console = Console(stderr=True)
    if not _can_launch_interactive_ui(console):
        render_replay_summary(console, run_replay([], config=config))
        typer.echo("The editor UI requires a TTY terminal.", err=True)
        raise typer.Exit(0)

    run_workspace_app(config, mode=cast(ViewMode, view_value))


@app.command()
def replay(
    file: Path = typer.Option(  # noqa: B008
        ...,
        "--file",
        help="JSON replay script (list of edit/switch/preset/advance_ms/flush steps).",
    ),
    debounce_ms: int = typer.Option(  # noqa: B008
        500,
        "--debounce-ms",
        envvar="ADSYNC_DEBOUNCE_MS",
        help="Quiet period before the gallery view saves an edit.",
    ),
    table_rows: int = typer.Option(  # noqa: B008
        1,
        "--table-rows",
        envvar="ADSYNC_TABLE_ROWS",
        help="Number of independently editable rows in the table view.",
    ),
    preset: str | None = typer.Option(  # noqa: B008
        None,
        "--preset",
        envvar="ADSYNC_PRESET",
        help="Preset loaded into the store before the first step.",
    ),
    full: bool = typer.Option(  # noqa: B008
        False,
        "--full",
        help="Print drafts and counters as well as the final store record.",
    ),
) -> None:
    """Replay a scripted editing session on a virtual clock."""

    config = _build_config(debounce_ms=debounce_ms, table_rows=table_rows, preset=preset)
    if not file.exists():
        typer.echo(f"Replay script not found: {file}", err=True)
        raise typer.Exit(2)
    try:
        script = load_script(file)
        result = run_replay(script.steps, config=config, initial=script.initial)
    except ReplayScriptError as exc:
        typer.echo(f"Invalid replay script: {exc}", err=True)
        raise typer.Exit(2) from exc

    # Summary to stderr; stdout carries only JSON for scripting.
    render_replay_summary(Console(stderr=True), result)
    payload = result.as_dict() if full else result.store.as_dict()
    typer.echo(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))


@app.command("normalize-link")
def normalize_link_command(
    value: str = typer.Argument(..., help="Raw link URL as typed by a user."),  # noqa: B008
) -> None:
    """Print the canonical form of a link URL."""

    typer.echo(normalize_link(value))


@app.command()
def presets(
    as_json: bool = typer.Option(  # noqa: B008
        False,
        "--json",
        help="Print preset records as JSON instead of a table.",
    ),
) -> None:
    """List the presets the store can be loaded with."""

    if as_json:
        payload = {name: record.as_dict() for name, record in PRESETS.items()}
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    render_presets(Console())

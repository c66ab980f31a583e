import json
import re
from pathlib import Path

from typer.testing import CliRunner

from ad_draft_sync import __version__
from ad_draft_sync.cli import app


def _plain(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;?]*[A-Za-z]", "", text)


def test_version_prints_version() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_normalize_link_command_prints_canonical_url() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["normalize-link", "example.com"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "https://example.com/"


def test_presets_json_lists_every_preset() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["presets", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert set(payload) == {"ad1", "ad2", "ad3", "clear", "speechify"}
    assert payload["ad1"]["headline"] == "Summer Sale - 50% Off"


def test_replay_prints_final_store_json(tmp_path: Path) -> None:
    script = tmp_path / "session.json"
    script.write_text(
        json.dumps(
            [
                {"preset": "ad1"},
                {"edit": "link", "value": "shop.example"},
                {"advance_ms": 500},
            ]
        ),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(script)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["headline"] == "Summer Sale - 50% Off"
    assert payload["link"] == "https://shop.example/"


def test_replay_full_output_includes_write_counters(tmp_path: Path) -> None:
    script = tmp_path / "session.json"
    script.write_text(json.dumps([{"edit": "headline", "value": "x"}]), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(script), "--full"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["store"]["headline"] == ""
    assert payload["drafts"]["gallery"]["headline"] == "x"
    assert payload["store_writes"]["set_field"] == 0


def test_replay_honours_debounce_env_var(tmp_path: Path) -> None:
    script = tmp_path / "session.json"
    script.write_text(
        json.dumps([{"edit": "headline", "value": "x"}, {"advance_ms": 100}]),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["replay", "--file", str(script)],
        env={"ADSYNC_DEBOUNCE_MS": "100"},
    )
    assert result.exit_code == 0
    assert json.loads(result.stdout)["headline"] == "x"


def test_replay_missing_file_exits_2(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(tmp_path / "missing.json")])
    assert result.exit_code == 2
    assert "Replay script not found" in result.stderr


def test_replay_invalid_script_exits_2(tmp_path: Path) -> None:
    script = tmp_path / "bad.json"
    script.write_text(json.dumps([{"switch": "kanban"}]), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(script)])
    assert result.exit_code == 2
    assert "Invalid replay script" in result.stderr


def test_unknown_preset_is_a_bad_parameter(tmp_path: Path) -> None:
    script = tmp_path / "session.json"
    script.write_text("[]", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(script), "--preset", "ad9"])
    assert result.exit_code == 2
    assert "Unknown preset" in _plain(result.output)


def test_tui_without_tty_prints_summary_and_exits_cleanly() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["tui", "--preset", "ad2"])
    assert result.exit_code == 0
    assert "requires a TTY" in result.stderr


def test_tui_rejects_unknown_view() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["tui", "--view", "kanban"])
    assert result.exit_code == 2
    assert "Invalid --view value" in result.stderr


def test_replay_seeds_store_from_initial_record(tmp_path: Path) -> None:
    script = tmp_path / "seeded.json"
    script.write_text(
        json.dumps({"initial": {"headline": "Seeded"}, "steps": [{"switch": "table"}]}),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(app, ["replay", "--file", str(script), "--full"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["store"]["headline"] == "Seeded"
    assert payload["drafts"]["table:row-0"]["headline"] == "Seeded"
    assert payload["sync_status"]["gallery"] == "Synced with store"
    assert payload["customized_rows"] == []

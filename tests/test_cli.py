import shutil
import sys
from pathlib import Path

import pytest

from polyrc import __version__
from polyrc.__main__ import cli, main

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def cursor_project(tmp_path: Path, write_file) -> Path:
    root = tmp_path / "project"
    write_file(
        root / ".cursor" / "rules" / "style.mdc",
        "---\nalwaysApply: true\n---\n\nUse four spaces.\n",
    )
    return root


def test_version(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_formats_lists_every_dialect(cli_runner) -> None:
    result = cli_runner.invoke(cli, ["formats"])
    assert result.exit_code == 0
    for name in ("antigravity", "claude", "copilot", "cursor", "gemini", "windsurf"):
        assert name in result.output


def test_convert_writes_target_layout(tmp_path: Path, cli_runner, cursor_project: Path) -> None:
    out = tmp_path / "out"
    result = cli_runner.invoke(
        cli,
        ["convert", "--from", "cursor", "--to", "gemini", "--input", str(cursor_project), "--output", str(out)],
    )

    assert result.exit_code == 0, result.output
    assert "Use four spaces." in (out / "GEMINI.md").read_text(encoding="utf-8")
    assert "written" in result.output


def test_convert_dry_run_writes_nothing(tmp_path: Path, cli_runner, cursor_project: Path) -> None:
    out = tmp_path / "out"
    result = cli_runner.invoke(
        cli,
        [
            "convert",
            "--from",
            "cursor",
            "--to",
            "claude",
            "--input",
            str(cursor_project),
            "--output",
            str(out),
            "--dry-run",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "dry run" in result.output
    assert not out.exists()


def test_convert_accepts_aliases(tmp_path: Path, cli_runner, cursor_project: Path) -> None:
    result = cli_runner.invoke(
        cli,
        [
            "convert",
            "--from",
            "cursor",
            "--to",
            "claude-code",
            "--input",
            str(cursor_project),
            "--output",
            str(tmp_path / "out"),
        ],
    )
    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "CLAUDE.md").is_file()


def test_convert_reports_unrepresentable_fields(tmp_path: Path, cli_runner, write_file) -> None:
    source = tmp_path / "src"
    write_file(
        source / ".cursor" / "rules" / "py.mdc",
        "---\nglobs: \"*.py\"\n---\n\nType hints everywhere.\n",
    )
    result = cli_runner.invoke(
        cli,
        ["convert", "--from", "cursor", "--to", "antigravity", "--input", str(source), "--output", str(tmp_path / "o")],
    )

    assert result.exit_code == 0, result.output
    assert "not representable" in result.output


def test_unknown_format_is_a_usage_error(tmp_path: Path, cli_runner) -> None:
    result = cli_runner.invoke(cli, ["convert", "--from", "vim", "--to", "claude"])
    assert result.exit_code == 2
    assert "Unknown format" in result.output


def test_unreadable_source_fails(tmp_path: Path, cli_runner) -> None:
    result = cli_runner.invoke(
        cli, ["convert", "--from", "claude", "--to", "cursor", "--input", str(tmp_path / "missing")]
    )
    assert result.exit_code == 1
    assert "Unreadable source" in result.output


def test_main_maps_errors_to_exit_code_two(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(
        sys,
        "argv",
        ["polyrc", "convert", "--from", "claude", "--to", "cursor", "--input", str(tmp_path / "missing")],
    )
    assert main() == 2


def test_invalid_config_is_reported(tmp_path: Path, cli_runner, write_file, cursor_project: Path) -> None:
    write_file(tmp_path / ".config" / "polyrc" / "config.json", '{"backups": "yes"}')
    result = cli_runner.invoke(
        cli, ["convert", "--from", "cursor", "--to", "claude", "--input", str(cursor_project)]
    )
    assert result.exit_code == 1
    assert "Invalid config" in result.output


def test_store_commands_need_init(tmp_path: Path, cli_runner) -> None:
    result = cli_runner.invoke(cli, ["projects", "list"])
    assert result.exit_code == 1
    assert "polyrc init" in result.output


def test_discover_lists_user_locations(tmp_path: Path, cli_runner, write_file) -> None:
    write_file(tmp_path / ".claude" / "CLAUDE.md", "Prefer short answers.\n")
    result = cli_runner.invoke(cli, ["discover"])
    assert result.exit_code == 0
    assert "claude" in result.output
    assert "gemini" in result.output


@needs_git
def test_store_round_trip(tmp_path: Path, cli_runner, write_file) -> None:
    store = tmp_path / "rules-store"
    project = tmp_path / "webapp"
    write_file(project / "CLAUDE.md", "Run the linters.\n")

    init = cli_runner.invoke(cli, ["init", "--store", str(store)])
    assert init.exit_code == 0, init.output
    assert (store / "polyrc.json").is_file()
    assert (tmp_path / ".config" / "polyrc" / "config.json").is_file()

    orphan = cli_runner.invoke(cli, ["push", "--from", "claude", "--input", str(project)])
    assert orphan.exit_code == 1
    assert "--project" in orphan.output

    pushed = cli_runner.invoke(
        cli, ["push", "--from", "claude", "--input", str(project), "--project", "webapp"]
    )
    assert pushed.exit_code == 0, pushed.output
    assert "created=1" in pushed.output

    listed = cli_runner.invoke(cli, ["projects", "list"])
    assert listed.exit_code == 0
    assert "webapp" in listed.output
    assert "_user" in listed.output

    out = tmp_path / "out"
    pulled = cli_runner.invoke(
        cli, ["pull", "--to", "windsurf", "--output", str(out), "--project", "webapp"]
    )
    assert pulled.exit_code == 0, pulled.output
    assert (out / ".windsurf" / "rules" / "claude.md").is_file()

    renamed = cli_runner.invoke(cli, ["projects", "rename", "webapp", "frontend"])
    assert renamed.exit_code == 0, renamed.output
    assert "frontend" in renamed.output

    synced = cli_runner.invoke(cli, ["sync"])
    assert synced.exit_code == 0, synced.output
    assert "No remote configured" in synced.output


@needs_git
def test_push_with_unreadable_input_exits_one(tmp_path: Path, cli_runner, write_file) -> None:
    write_file(tmp_path / "webapp" / "CLAUDE.md", "Run the linters.\n")
    cli_runner.invoke(cli, ["init", "--store", str(tmp_path / "store")])

    result = cli_runner.invoke(
        cli,
        [
            "push",
            "--from",
            "claude",
            "--input",
            str(tmp_path / "webapp"),
            "--input",
            str(tmp_path / "missing"),
            "--project",
            "webapp",
        ],
    )

    assert result.exit_code == 1
    assert "Unreadable source" in result.output

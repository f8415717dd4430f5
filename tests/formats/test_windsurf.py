"""Tests for the Windsurf adapter."""

import logging
from pathlib import Path

import pytest

from polyrc.errors import MalformedMetadataError
from polyrc.formats import get_adapter
from polyrc.ir import Activation, Rule, RuleSet, Scope
from polyrc.models import Format


@pytest.fixture
def adapter():
    return get_adapter(Format.WINDSURF)


@pytest.mark.parametrize(
    ("trigger", "activation"),
    [
        ("always_on", Activation.ALWAYS),
        ("manual", Activation.ON_DEMAND),
        ("model_decision", Activation.AI_DECIDES),
    ],
)
def test_trigger_maps_to_activation(
    tmp_path: Path, write_file, adapter, trigger: str, activation: Activation
) -> None:
    write_file(
        tmp_path / ".windsurf" / "rules" / "r.md",
        f"---\ntrigger: {trigger}\ndescription: when needed\n---\n\nBody\n",
    )
    [rule] = adapter.read(tmp_path)
    assert rule.activation == activation
    assert rule.scope == Scope.PROJECT
    assert rule.name == "r"


def test_glob_trigger_reads_comma_globs(tmp_path: Path, write_file, adapter) -> None:
    write_file(
        tmp_path / ".windsurf" / "rules" / "py.md",
        "---\ntrigger: glob\nglobs: \"*.py, tests/**\"\n---\n\nUse pytest.\n",
    )
    [rule] = adapter.read(tmp_path)
    assert rule.globs == ["*.py", "tests/**"]
    assert rule.activation == Activation.GLOB


def test_missing_trigger_means_always(tmp_path: Path, write_file, adapter) -> None:
    write_file(tmp_path / ".windsurf" / "rules" / "plain.md", "No frontmatter here.\n")
    [rule] = adapter.read(tmp_path)
    assert rule.activation == Activation.ALWAYS
    assert rule.content == "No frontmatter here."


def test_unknown_trigger_is_malformed(tmp_path: Path, write_file, adapter) -> None:
    write_file(tmp_path / ".windsurf" / "rules" / "r.md", "---\ntrigger: sometimes\n---\nx\n")
    with pytest.raises(MalformedMetadataError):
        adapter.read(tmp_path)


def test_global_rules_file_is_user_scope(tmp_path: Path, write_file, adapter) -> None:
    write_file(tmp_path / "global_rules.md", "Answer briefly.\n")
    [rule] = adapter.read(tmp_path)
    assert rule.scope == Scope.USER
    assert rule.name == "global-rules"


def test_write_splits_user_and_project_rules(tmp_path: Path, adapter) -> None:
    rules = RuleSet(
        rules=[
            Rule(content="Be brief.", name="brief", scope=Scope.USER),
            Rule(
                content="Use pytest.",
                name="py",
                activation=Activation.GLOB,
                globs=["*.py", "tests/**"],
            ),
        ]
    )
    adapter.write(rules, tmp_path)
    assert "## brief" in (tmp_path / "global_rules.md").read_text(encoding="utf-8")
    project_text = (tmp_path / ".windsurf" / "rules" / "py.md").read_text(encoding="utf-8")
    assert "trigger: glob" in project_text
    assert "*.py,tests/**" in project_text
    assert adapter.read(tmp_path).rules == [
        rule.with_changes(source_format="windsurf") for rule in rules
    ]


def test_size_limits_are_warnings_only(tmp_path: Path, adapter, caplog) -> None:
    big = Rule(content="x" * 7000, name="big")
    with caplog.at_level(logging.WARNING, logger="polyrc.formats.windsurf"):
        result = adapter.write(RuleSet(rules=[big]), tmp_path)
    assert result.applied == 1
    assert "per-file limit" in caplog.text


def test_path_scope_is_not_representable(adapter) -> None:
    rule = Rule(content="x", name="a", scope=Scope.PATH, activation=Activation.GLOB, globs=["*"])
    assert adapter.unrepresented_fields(rule) == ["scope"]

"""Tests for the Antigravity adapter."""

from pathlib import Path

import pytest

from polyrc.formats import get_adapter
from polyrc.ir import Activation, Rule, RuleSet, Scope
from polyrc.models import Format


@pytest.fixture
def adapter():
    return get_adapter(Format.ANTIGRAVITY)


def test_reads_project_legacy_and_user_dirs(tmp_path: Path, write_file, adapter) -> None:
    write_file(tmp_path / ".agent" / "rules" / "style.md", "Use black.\n")
    write_file(tmp_path / ".agents" / "rules" / "old.md", "Legacy.\n")
    write_file(tmp_path / "rules" / "me.md", "Call me Sam.\n")
    rules = adapter.read(tmp_path)
    assert [(rule.name, rule.scope) for rule in rules] == [
        ("style", Scope.PROJECT),
        ("old", Scope.PROJECT),
        ("me", Scope.USER),
    ]
    assert {rule.activation for rule in rules} == {Activation.ALWAYS}


def test_plain_markdown_is_not_parsed(tmp_path: Path, write_file, adapter) -> None:
    write_file(tmp_path / ".agent" / "rules" / "x.md", "---\nnot: metadata\n---\nBody\n")
    [rule] = adapter.read(tmp_path)
    assert rule.content == "---\nnot: metadata\n---\nBody"


def test_write_places_user_rules_in_rules_dir(tmp_path: Path, adapter) -> None:
    rules = RuleSet(
        rules=[Rule(content="A", name="a"), Rule(content="B", name="b", scope=Scope.USER)]
    )
    adapter.write(rules, tmp_path)
    assert (tmp_path / ".agent" / "rules" / "a.md").read_text(encoding="utf-8") == "A\n"
    assert (tmp_path / "rules" / "b.md").read_text(encoding="utf-8") == "B\n"


def test_stem_collisions_get_suffixes(tmp_path: Path, adapter) -> None:
    rules = RuleSet(rules=[Rule(content="1", name="dup"), Rule(content="2", name="dup")])
    files = adapter.render(rules, tmp_path)
    assert [item.path.name for item in files] == ["dup.md", "dup-2.md"]


def test_unsupported_fields_are_reported(adapter) -> None:
    rule = Rule(
        content="x",
        name="Fancy Name",
        activation=Activation.AI_DECIDES,
        description="when relevant",
    )
    assert adapter.unrepresented_fields(rule) == ["activation", "description", "name"]

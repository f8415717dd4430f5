"""Google Antigravity: plain markdown files, one rule per file."""

from __future__ import annotations

from pathlib import Path

from polyrc.formats.base import (
    IFormatAdapter,
    RenderedFile,
    assign_stems,
    checked_rule,
    list_files,
    name_from_file,
    read_source_text,
    stem_keeps_name,
)
from polyrc.ir.models import Activation, Rule, RuleSet, Scope, normalize_content
from polyrc.models import Format

PROJECT_RULES_DIR = Path(".agent") / "rules"
LEGACY_PROJECT_RULES_DIR = Path(".agents") / "rules"
USER_RULES_DIR = Path("rules")
SUFFIX = ".md"


class AntigravityAdapter(IFormatAdapter):
    FORMAT = Format.ANTIGRAVITY

    def locations(self, root: Path) -> list[Path]:
        return [
            root / PROJECT_RULES_DIR,
            root / LEGACY_PROJECT_RULES_DIR,
            root / USER_RULES_DIR,
        ]

    def read_rules(self, root: Path) -> list[Rule]:
        rules: list[Rule] = []
        for directory, scope in (
            (root / PROJECT_RULES_DIR, Scope.PROJECT),
            (root / LEGACY_PROJECT_RULES_DIR, Scope.PROJECT),
            (root / USER_RULES_DIR, Scope.USER),
        ):
            for path in list_files(directory, SUFFIX):
                content = normalize_content(read_source_text(path))
                rules.append(
                    checked_rule(
                        path,
                        Rule(
                            content=content,
                            scope=scope,
                            activation=Activation.ALWAYS,
                            name=name_from_file(path, SUFFIX, content),
                        ),
                    )
                )
        return rules

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        user_rules = [rule for rule in rule_set if rule.scope == Scope.USER]
        project_rules = [rule for rule in rule_set if rule.scope != Scope.USER]

        files: list[RenderedFile] = []
        for directory, rules in (
            (root / PROJECT_RULES_DIR, project_rules),
            (root / USER_RULES_DIR, user_rules),
        ):
            for rule, stem in zip(rules, assign_stems(rules)):
                files.append(
                    RenderedFile(
                        directory / f"{stem}{SUFFIX}",
                        normalize_content(rule.content) + "\n",
                    )
                )
        return files

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        missing = super().unrepresented_fields(rule)
        if not stem_keeps_name(rule):
            missing.append("name")
        return missing

"""GitHub Copilot: ``.github/copilot-instructions.md`` plus path-scoped instruction files."""

from __future__ import annotations

from pathlib import Path

from polyrc.constants import COPILOT_INSTRUCTIONS_SUFFIX, COPILOT_MAIN_FILENAME
from polyrc.errors import MalformedMetadataError
from polyrc.formats.base import (
    IFormatAdapter,
    RenderedFile,
    assign_stems,
    checked_rule,
    list_files,
    name_from_file,
    read_source_text,
)
from polyrc.formats.frontmatter import (
    coerce_globs,
    join_globs,
    optional_text,
    read_frontmatter,
    render_frontmatter,
)
from polyrc.formats.sections import render_sections, rule_from_section, split_sections
from polyrc.ir.models import Activation, Rule, RuleSet, Scope, normalize_content
from polyrc.models import Format

GITHUB_DIR = Path(".github")
INSTRUCTIONS_DIR = GITHUB_DIR / "instructions"
MAIN_RULE_NAME = "copilot-instructions"


class CopilotAdapter(IFormatAdapter):
    FORMAT = Format.COPILOT

    def locations(self, root: Path) -> list[Path]:
        return [root / GITHUB_DIR / COPILOT_MAIN_FILENAME, root / INSTRUCTIONS_DIR]

    def read_rules(self, root: Path) -> list[Rule]:
        rules: list[Rule] = []
        main_file = root / GITHUB_DIR / COPILOT_MAIN_FILENAME
        if main_file.is_file():
            try:
                rules.extend(
                    checked_rule(
                        main_file,
                        rule_from_section(section, MAIN_RULE_NAME, Scope.PROJECT),
                    )
                    for section in split_sections(read_source_text(main_file))
                )
            except ValueError as exc:
                raise MalformedMetadataError(main_file, str(exc)) from exc

        for path in list_files(root / INSTRUCTIONS_DIR, COPILOT_INSTRUCTIONS_SUFFIX):
            rules.append(self._parse_instructions(path))
        return rules

    def _parse_instructions(self, path: Path) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        try:
            globs = coerce_globs(raw.get("applyTo"))
        except ValueError as exc:
            raise MalformedMetadataError(path, str(exc)) from exc

        if "applyTo" in raw and not globs:
            raise MalformedMetadataError(path, "applyTo is empty")

        content = normalize_content(body)
        return checked_rule(
            path,
            Rule(
                content=content,
                scope=Scope.PATH if globs else Scope.PROJECT,
                activation=Activation.GLOB if globs else Activation.ALWAYS,
                globs=globs,
                name=optional_text(raw, "name")
                or name_from_file(path, COPILOT_INSTRUCTIONS_SUFFIX, content),
                description=optional_text(raw, "description"),
            ),
        )

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        path_rules = [rule for rule in rule_set if rule.globs]
        main_rules = [rule for rule in rule_set if not rule.globs]

        files: list[RenderedFile] = []
        if main_rules:
            files.append(
                RenderedFile(
                    root / GITHUB_DIR / COPILOT_MAIN_FILENAME, render_sections(main_rules)
                )
            )

        directory = root / INSTRUCTIONS_DIR
        for rule, stem in zip(path_rules, assign_stems(path_rules)):
            fm: dict = {}
            if rule.name:
                fm["name"] = rule.name
            if rule.description:
                fm["description"] = rule.description
            fm["applyTo"] = join_globs(rule.globs)
            files.append(
                RenderedFile(
                    directory / f"{stem}{COPILOT_INSTRUCTIONS_SUFFIX}",
                    render_frontmatter(fm, normalize_content(rule.content)),
                )
            )
        return files

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        missing = super().unrepresented_fields(rule)
        if rule.globs:
            if rule.scope != Scope.PATH:
                missing.append("scope")
            if rule.activation != Activation.GLOB:
                missing.append("activation")
        return missing

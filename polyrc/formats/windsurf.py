"""Windsurf: ``.windsurf/rules/*.md`` per project, ``global_rules.md`` for the user."""

from __future__ import annotations

import logging
from pathlib import Path

from polyrc.constants import (
    WINDSURF_FILE_CHAR_LIMIT,
    WINDSURF_GLOBAL_FILENAME,
    WINDSURF_TOTAL_CHAR_LIMIT,
)
from polyrc.errors import MalformedMetadataError
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

logger = logging.getLogger(__name__)

RULES_DIR = Path(".windsurf") / "rules"
SUFFIX = ".md"
GLOBAL_RULE_NAME = "global-rules"

TRIGGER_TO_ACTIVATION: dict[str, Activation] = {
    "always_on": Activation.ALWAYS,
    "glob": Activation.GLOB,
    "manual": Activation.ON_DEMAND,
    "model_decision": Activation.AI_DECIDES,
}
ACTIVATION_TO_TRIGGER: dict[Activation, str] = {
    value: key for key, value in TRIGGER_TO_ACTIVATION.items()
}


class WindsurfAdapter(IFormatAdapter):
    FORMAT = Format.WINDSURF

    def locations(self, root: Path) -> list[Path]:
        return [root / WINDSURF_GLOBAL_FILENAME, root / RULES_DIR]

    def read_rules(self, root: Path) -> list[Rule]:
        rules: list[Rule] = []
        global_file = root / WINDSURF_GLOBAL_FILENAME
        if global_file.is_file():
            try:
                sections = split_sections(read_source_text(global_file))
                rules.extend(
                    checked_rule(
                        global_file,
                        rule_from_section(section, GLOBAL_RULE_NAME, Scope.USER),
                    )
                    for section in sections
                )
            except ValueError as exc:
                raise MalformedMetadataError(global_file, str(exc)) from exc

        for path in list_files(root / RULES_DIR, SUFFIX):
            rules.append(self._parse(path))
        return rules

    def _parse(self, path: Path) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        trigger = str(raw.get("trigger", "always_on")).strip().lower()
        if trigger not in TRIGGER_TO_ACTIVATION:
            raise MalformedMetadataError(path, f"unknown trigger '{trigger}'")
        try:
            globs = coerce_globs(raw.get("globs"))
        except ValueError as exc:
            raise MalformedMetadataError(path, str(exc)) from exc

        content = normalize_content(body)
        return checked_rule(
            path,
            Rule(
                content=content,
                scope=Scope.PROJECT,
                activation=TRIGGER_TO_ACTIVATION[trigger],
                globs=globs,
                name=name_from_file(path, SUFFIX, content),
                description=optional_text(raw, "description"),
            ),
        )

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        user_rules = [rule for rule in rule_set if rule.scope == Scope.USER]
        project_rules = [rule for rule in rule_set if rule.scope != Scope.USER]

        files: list[RenderedFile] = []
        if user_rules:
            files.append(
                RenderedFile(root / WINDSURF_GLOBAL_FILENAME, render_sections(user_rules))
            )

        directory = root / RULES_DIR
        for rule, stem in zip(project_rules, assign_stems(project_rules)):
            fm: dict = {"trigger": ACTIVATION_TO_TRIGGER[rule.activation]}
            if rule.description:
                fm["description"] = rule.description
            if rule.globs:
                fm["globs"] = join_globs(rule.globs)
            files.append(
                RenderedFile(
                    directory / f"{stem}{SUFFIX}",
                    render_frontmatter(fm, normalize_content(rule.content)),
                )
            )

        _warn_on_limits(files)
        return files

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        missing = super().unrepresented_fields(rule)
        if rule.scope != Scope.USER and not stem_keeps_name(rule):
            missing.append("name")
        return missing


def _warn_on_limits(files: list[RenderedFile]) -> None:
    total = 0
    for item in files:
        size = len(item.text)
        total += size
        if size > WINDSURF_FILE_CHAR_LIMIT:
            logger.warning(
                "%s is %d chars, over the Windsurf per-file limit of %d",
                item.path.name,
                size,
                WINDSURF_FILE_CHAR_LIMIT,
            )
    if total > WINDSURF_TOTAL_CHAR_LIMIT:
        logger.warning(
            "Windsurf rules total %d chars, over the limit of %d",
            total,
            WINDSURF_TOTAL_CHAR_LIMIT,
        )

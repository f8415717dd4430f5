"""Cursor: ``.cursor/rules/*.mdc`` with camelCase YAML frontmatter."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

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
    optional_text,
    read_frontmatter,
    render_frontmatter,
)
from polyrc.ir.models import Activation, Rule, RuleSet, Scope, normalize_content
from polyrc.models import Format

RULES_DIR = Path(".cursor") / "rules"
SUFFIX = ".mdc"


def activation_from_frontmatter(
    always_apply: bool, globs: list[str], description: Optional[str]
) -> Activation:
    if always_apply:
        return Activation.ALWAYS
    if globs:
        return Activation.GLOB
    if description:
        return Activation.AI_DECIDES
    return Activation.ON_DEMAND


class CursorAdapter(IFormatAdapter):
    FORMAT = Format.CURSOR

    def locations(self, root: Path) -> list[Path]:
        return [root / RULES_DIR]

    def read_rules(self, root: Path) -> list[Rule]:
        return [self._parse(path) for path in list_files(root / RULES_DIR, SUFFIX)]

    def _parse(self, path: Path) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        try:
            globs = coerce_globs(raw.get("globs"))
        except ValueError as exc:
            raise MalformedMetadataError(path, str(exc)) from exc

        description = optional_text(raw, "description")
        content = normalize_content(body)
        always_apply = raw.get("alwaysApply", raw.get("always_apply", False)) is True
        return checked_rule(
            path,
            Rule(
                content=content,
                scope=Scope.PROJECT,
                activation=activation_from_frontmatter(always_apply, globs, description),
                globs=globs,
                name=name_from_file(path, SUFFIX, content),
                description=description,
            ),
        )

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        directory = root / RULES_DIR
        files: list[RenderedFile] = []
        for rule, stem in zip(rule_set, assign_stems(rule_set)):
            fm: dict = {}
            if rule.description:
                fm["description"] = rule.description
            if rule.globs:
                fm["globs"] = list(rule.globs)
            fm["alwaysApply"] = rule.activation == Activation.ALWAYS
            files.append(
                RenderedFile(
                    directory / f"{stem}{SUFFIX}",
                    render_frontmatter(fm, normalize_content(rule.content)),
                )
            )
        return files

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        missing = super().unrepresented_fields(rule)
        derived = activation_from_frontmatter(
            rule.activation == Activation.ALWAYS, rule.globs, rule.description
        )
        if derived != rule.activation and "activation" not in missing:
            missing.append("activation")
        if not stem_keeps_name(rule):
            missing.append("name")
        return missing

"""Gemini CLI: ``GEMINI.md`` sections and ``.gemini/settings.json``."""

from __future__ import annotations

from pathlib import Path

from polyrc.constants import GEMINI_FILENAME, SETTINGS_FILENAME
from polyrc.errors import MalformedMetadataError
from polyrc.formats.base import IFormatAdapter, RenderedFile, checked_rule, read_source_text
from polyrc.formats.payloads import (
    read_settings_rule,
    render_settings_file,
    settings_payload,
)
from polyrc.formats.sections import render_sections, rule_from_section, split_sections
from polyrc.ir.models import Rule, RuleSet, Scope
from polyrc.models import Format

USER_DIRNAME = ".gemini"
MAIN_RULE_NAME = "gemini"


def is_user_layout(root: Path) -> bool:
    return root.name == USER_DIRNAME


def settings_path(root: Path) -> Path:
    if is_user_layout(root):
        return root / SETTINGS_FILENAME
    return root / USER_DIRNAME / SETTINGS_FILENAME


class GeminiAdapter(IFormatAdapter):
    FORMAT = Format.GEMINI

    def locations(self, root: Path) -> list[Path]:
        return [root / GEMINI_FILENAME, settings_path(root)]

    def read_rules(self, root: Path) -> list[Rule]:
        scope = Scope.USER if is_user_layout(root) else Scope.PROJECT
        rules: list[Rule] = []

        main_file = root / GEMINI_FILENAME
        if main_file.is_file():
            try:
                rules.extend(
                    checked_rule(main_file, rule_from_section(section, MAIN_RULE_NAME, scope))
                    for section in split_sections(read_source_text(main_file))
                )
            except ValueError as exc:
                raise MalformedMetadataError(main_file, str(exc)) from exc

        settings_file = settings_path(root)
        if settings_file.is_file():
            rules.append(read_settings_rule(settings_file, scope))
        return rules

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        scope = Scope.USER if is_user_layout(root) else Scope.PROJECT
        settings: dict | None = None
        section_rules: list[Rule] = []
        for rule in rule_set:
            payload = settings_payload(rule)
            if (
                payload is not None
                and settings is None
                and rule.scope == scope
                and not rule.globs
            ):
                settings = payload
            else:
                section_rules.append(rule)

        files: list[RenderedFile] = []
        if section_rules:
            files.append(RenderedFile(root / GEMINI_FILENAME, render_sections(section_rules)))
        if settings is not None:
            files.append(RenderedFile(settings_path(root), render_settings_file(settings)))
        return files

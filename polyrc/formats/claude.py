"""Claude Code: ``CLAUDE.md`` plus the ``.claude/`` directory.

A root directory that is itself named ``.claude`` is the user-level layout
(``~/.claude``): the same files without the ``.claude/`` prefix, scope ``user``.
"""

from __future__ import annotations

from pathlib import Path

from polyrc.constants import CLAUDE_FILENAME, SETTINGS_FILENAME, SKILL_FILENAME
from polyrc.errors import MalformedMetadataError
from polyrc.formats.base import (
    IFormatAdapter,
    RenderedFile,
    checked_rule,
    file_stem,
    list_files,
    list_subdirs_with,
    read_source_text,
)
from polyrc.formats.frontmatter import (
    coerce_globs,
    optional_text,
    read_frontmatter,
    render_frontmatter,
)
from polyrc.formats.payloads import (
    read_settings_rule,
    render_settings_file,
    settings_payload,
)
from polyrc.formats.sections import render_sections, rule_from_section, split_sections
from polyrc.ir.models import Activation, Rule, RuleSet, Scope, normalize_content
from polyrc.models import Format

USER_DIRNAME = ".claude"
MAIN_RULE_NAME = "claude"
SUFFIX = ".md"


def is_user_layout(root: Path) -> bool:
    return root.name == USER_DIRNAME


def layout_scope(root: Path) -> Scope:
    return Scope.USER if is_user_layout(root) else Scope.PROJECT


def config_dir(root: Path) -> Path:
    return root if is_user_layout(root) else root / USER_DIRNAME


class ClaudeAdapter(IFormatAdapter):
    FORMAT = Format.CLAUDE

    def locations(self, root: Path) -> list[Path]:
        base = config_dir(root)
        return [
            root / CLAUDE_FILENAME,
            base / "rules",
            base / "commands",
            base / "skills",
            base / "agents",
            base / SETTINGS_FILENAME,
        ]

    def read_rules(self, root: Path) -> list[Rule]:
        base = config_dir(root)
        scope = layout_scope(root)
        rules: list[Rule] = []

        main_file = root / CLAUDE_FILENAME
        if main_file.is_file():
            try:
                rules.extend(
                    checked_rule(main_file, rule_from_section(section, MAIN_RULE_NAME, scope))
                    for section in split_sections(read_source_text(main_file))
                )
            except ValueError as exc:
                raise MalformedMetadataError(main_file, str(exc)) from exc

        for path in list_files(base / "rules", SUFFIX):
            rules.append(self._parse_rule_file(path, scope))
        for path in list_files(base / "commands", SUFFIX):
            rules.append(self._parse_command(path, scope))
        for directory in list_subdirs_with(base / "skills", SKILL_FILENAME):
            rules.append(self._parse_skill(directory / SKILL_FILENAME, scope))
        for path in list_files(base / "agents", SUFFIX):
            rules.append(self._parse_agent(path, scope))

        settings_file = base / SETTINGS_FILENAME
        if settings_file.is_file():
            rules.append(read_settings_rule(settings_file, scope))
        return rules

    def _parse_rule_file(self, path: Path, scope: Scope) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        try:
            globs = coerce_globs(raw.get("paths"))
        except ValueError as exc:
            raise MalformedMetadataError(path, str(exc)) from exc
        return checked_rule(
            path,
            Rule(
                content=normalize_content(body),
                scope=scope,
                activation=Activation.GLOB if globs else Activation.ALWAYS,
                globs=globs,
                name=file_stem(path, SUFFIX),
                description=optional_text(raw, "description"),
            ),
        )

    def _parse_command(self, path: Path, scope: Scope) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        return checked_rule(
            path,
            Rule(
                content=normalize_content(body),
                scope=scope,
                activation=Activation.ON_DEMAND,
                name=file_stem(path, SUFFIX),
                description=optional_text(raw, "description"),
            ),
        )

    def _parse_skill(self, path: Path, scope: Scope) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        return checked_rule(
            path,
            Rule(
                content=normalize_content(body),
                scope=scope,
                activation=Activation.AI_DECIDES,
                name=optional_text(raw, "name") or path.parent.name,
                description=optional_text(raw, "description"),
            ),
        )

    def _parse_agent(self, path: Path, scope: Scope) -> Rule:
        raw, body = read_frontmatter(path, read_source_text(path))
        return checked_rule(
            path,
            Rule(
                content=normalize_content(body),
                scope=scope,
                activation=Activation.AI_DECIDES,
                name=optional_text(raw, "name") or file_stem(path, SUFFIX),
                description=optional_text(raw, "description"),
            ),
        )

    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        base = config_dir(root)
        scope = layout_scope(root)

        settings: dict | None = None
        section_rules: list[Rule] = []
        commands: list[RenderedFile] = []
        skills: list[RenderedFile] = []
        used_commands: set[str] = set()
        used_skills: set[str] = set()

        for rule in rule_set:
            payload = settings_payload(rule)
            if payload is not None and settings is None and _plain(rule, scope):
                settings = payload
                continue

            stem = rule.filename_stem()
            if (
                rule.activation == Activation.ON_DEMAND
                and rule.name == stem
                and stem not in used_commands
                and _plain(rule, scope)
            ):
                used_commands.add(stem)
                fm = {"description": rule.description} if rule.description else {}
                commands.append(
                    RenderedFile(
                        base / "commands" / f"{stem}{SUFFIX}",
                        render_frontmatter(fm, normalize_content(rule.content)),
                    )
                )
                continue

            if (
                rule.activation == Activation.AI_DECIDES
                and rule.name
                and stem not in used_skills
                and _plain(rule, scope)
            ):
                used_skills.add(stem)
                fm = {"name": rule.name, "description": rule.description}
                skills.append(
                    RenderedFile(
                        base / "skills" / stem / SKILL_FILENAME,
                        render_frontmatter(fm, normalize_content(rule.content)),
                    )
                )
                continue

            section_rules.append(rule)

        files: list[RenderedFile] = []
        if section_rules:
            files.append(RenderedFile(root / CLAUDE_FILENAME, render_sections(section_rules)))
        files.extend(commands)
        files.extend(skills)
        if settings is not None:
            files.append(RenderedFile(base / SETTINGS_FILENAME, render_settings_file(settings)))
        return files


def _plain(rule: Rule, scope: Scope) -> bool:
    # files outside CLAUDE.md only carry what their directory implies
    return rule.scope == scope and not rule.globs

"""Single-file layouts: one section per rule.

Each section starts with an HTML comment carrying the rule's metadata as JSON,
then a ``## <name>`` heading, then the content::

    <!-- polyrc:rule {"activation": "glob", "globs": ["*.ts"], ...} -->
    ## typescript

    Use strict mode.

A file without markers is read as a single rule.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from polyrc.constants import SECTION_MARKER_PREFIX
from polyrc.ir.models import Activation, Rule, Scope, normalize_content

_MARKER_RE = re.compile(
    r"^<!--\s*" + re.escape(SECTION_MARKER_PREFIX) + r"\s+(\{.*\})\s*-->[ \t]*$",
    re.MULTILINE,
)


@dataclass(frozen=True)
class Section:
    metadata: Optional[dict[str, Any]]
    content: str


def section_metadata(rule: Rule) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "scope": rule.scope.value,
        "activation": rule.activation.value,
    }
    if rule.name:
        meta["name"] = rule.name
    if rule.description:
        meta["description"] = rule.description
    if rule.globs:
        meta["globs"] = list(rule.globs)
    return meta


def render_sections(rules: Iterable[Rule]) -> str:
    blocks: list[str] = []
    for rule in rules:
        marker = "<!-- {0} {1} -->".format(
            SECTION_MARKER_PREFIX,
            json.dumps(section_metadata(rule), sort_keys=True, ensure_ascii=False),
        )
        # the marker keeps the exact name
        heading = "## " + " ".join((rule.name or "Rule").split())
        body = normalize_content(rule.content)
        block = f"{marker}\n{heading}\n"
        if body:
            block += f"\n{body}\n"
        blocks.append(block)
    return "\n".join(blocks)


def _strip_heading(body: str) -> str:
    body = body.lstrip("\n")
    first, sep, rest = body.partition("\n")
    if not first.startswith("## "):
        return body
    return rest[1:] if rest.startswith("\n") else rest


def split_sections(text: str) -> list[Section]:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    matches = list(_MARKER_RE.finditer(text))
    if not matches:
        content = normalize_content(text)
        return [Section(metadata=None, content=content)] if content.strip() else []

    sections: list[Section] = []
    preamble = normalize_content(text[: matches[0].start()])
    if preamble.strip():
        sections.append(Section(metadata=None, content=preamble))

    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        meta = json.loads(match.group(1))
        if not isinstance(meta, dict):
            raise ValueError("section marker must hold a JSON object")
        body = _strip_heading(text[match.end() : end])
        sections.append(Section(metadata=meta, content=normalize_content(body)))
    return sections


def rule_from_section(
    section: Section, default_name: str, default_scope: Scope
) -> Rule:
    meta = section.metadata
    if meta is None:
        return Rule(
            content=section.content,
            scope=default_scope,
            activation=Activation.ALWAYS,
            name=default_name,
        )

    globs = meta.get("globs") or []
    if not isinstance(globs, list):
        raise ValueError("section globs must be a list")
    return Rule(
        content=section.content,
        scope=Scope(meta.get("scope", default_scope.value)),
        activation=Activation(meta.get("activation", Activation.ALWAYS.value)),
        globs=[str(glob) for glob in globs],
        name=meta.get("name") or None,
        description=meta.get("description") or None,
    )

"""Structured settings carried inside rule content as a fenced JSON block."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from polyrc.constants import SETTINGS_FENCE_INFO
from polyrc.errors import MalformedMetadataError
from polyrc.formats.base import checked_rule, read_source_text
from polyrc.ir.models import Activation, Rule, Scope

SETTINGS_RULE_NAME = "settings"

_FENCE_RE = re.compile(
    r"\A```" + re.escape(SETTINGS_FENCE_INFO) + r"[ \t]*\n(.*)\n```\Z", re.DOTALL
)


def embed_settings(payload: dict[str, Any]) -> str:
    body = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
    return f"```{SETTINGS_FENCE_INFO}\n{body}\n```"


def extract_settings(content: str) -> dict[str, Any] | None:
    match = _FENCE_RE.match(content.strip())
    if not match:
        return None
    payload = json.loads(match.group(1))
    if not isinstance(payload, dict):
        raise ValueError("settings payload must be a JSON object")
    return payload


def render_settings_file(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def parse_settings_file(text: str) -> dict[str, Any]:
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("settings file must hold a JSON object")
    return payload


def settings_payload(rule: Rule) -> dict[str, Any] | None:
    """The payload of a rule that should become a settings file, if any.

    A settings file carries no metadata, so only an always-on rule without a
    description or globs qualifies.
    """
    if rule.name != SETTINGS_RULE_NAME:
        return None
    if rule.activation != Activation.ALWAYS or rule.description or rule.globs:
        return None
    try:
        return extract_settings(rule.content)
    except ValueError:
        return None


def read_settings_rule(path: Path, scope: Scope) -> Rule:
    try:
        payload = parse_settings_file(read_source_text(path))
    except ValueError as exc:
        raise MalformedMetadataError(path, f"invalid settings JSON: {exc}") from exc
    return checked_rule(
        path,
        Rule(
            content=embed_settings(payload),
            scope=scope,
            activation=Activation.ALWAYS,
            name=SETTINGS_RULE_NAME,
        ),
    )

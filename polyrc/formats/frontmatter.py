"""Parse and render YAML frontmatter."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import yaml

from polyrc.errors import MalformedMetadataError

_FRONTMATTER_RE = re.compile(r"^---[ \t]*\n(.*?)\n---[ \t]*(?:\n|$)", re.DOTALL)
_BARE_STAR_RE = re.compile(r"^(\s*[\w-]+:[ \t]*)(\*[^\n]*?)[ \t]*$", re.MULTILINE)


def _load_yaml(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        # Cursor writes globs such as `globs: *.ts` unquoted, which YAML reads as an alias
        quoted = _BARE_STAR_RE.sub(lambda m: m.group(1) + json.dumps(m.group(2)), raw)
        if quoted == raw:
            raise
        return yaml.safe_load(quoted)


def split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text

    raw = _load_yaml(match.group(1))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("frontmatter must be a mapping")
    return raw, text[match.end() :]


def read_frontmatter(path: Path, text: str) -> tuple[dict[str, Any], str]:
    try:
        raw, body = split_frontmatter(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise MalformedMetadataError(path, str(exc).splitlines()[0]) from exc
    if raw is not None and body.startswith("\n"):
        body = body[1:]
    return raw or {}, body


def render_frontmatter(fm: dict[str, Any], body: str) -> str:
    parts: list[str] = []
    if fm:
        parts.append("---")
        parts.append(
            yaml.dump(
                fm, default_flow_style=False, sort_keys=False, allow_unicode=True
            ).rstrip()
        )
        parts.append("---")
        parts.append("")

    parts.append(body)
    return "\n".join(parts).rstrip() + "\n"


def split_globs(text: str) -> list[str]:
    """Split on commas outside of brace groups such as ``*.{ts,tsx}``."""
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "{":
            depth += 1
        elif char == "}" and depth:
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    parts.append(current)
    return [part.strip() for part in parts if part.strip()]


def join_globs(globs: list[str]) -> str | list[str]:
    if any("," in glob for glob in globs):
        return list(globs)
    return ",".join(globs)


def coerce_globs(value: Any) -> list[str]:
    """Globs may be a list or one comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return split_globs(value)
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError(f"globs must be a string or list, got {type(value).__name__}")


def optional_text(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None

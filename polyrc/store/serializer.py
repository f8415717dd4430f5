"""Canonical YAML form of a stored rule.

Keys are written in a fixed order, empty optional fields are omitted and
multi-line content uses literal block style, so writing an unchanged rule
twice yields the same bytes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from polyrc.constants import SCOPE_VALUES, STORE_VERSION
from polyrc.errors import InvalidRuleError, MalformedRecordError
from polyrc.ir.models import Activation, Rule, Scope
from polyrc.ir.validation import validate
from polyrc.utils import format_schema_error, format_timestamp, parse_timestamp

RECORD_KEYS: tuple[str, ...] = (
    "id",
    "project",
    "scope",
    "activation",
    "name",
    "description",
    "globs",
    "content",
    "source_format",
    "created_at",
    "updated_at",
    "store_version",
)

RECORD_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "required": [
        "id",
        "project",
        "scope",
        "activation",
        "content",
        "created_at",
        "updated_at",
        "store_version",
    ],
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "project": {"type": "string", "minLength": 1},
        "scope": {"enum": list(SCOPE_VALUES)},
        "activation": {"enum": [item.value for item in Activation]},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "globs": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "content": {"type": "string"},
        "source_format": {"type": "string"},
        "created_at": {"type": "string", "minLength": 1},
        "updated_at": {"type": "string", "minLength": 1},
        "store_version": {"type": "string", "minLength": 1},
    },
}

_VALIDATOR = Draft202012Validator(RECORD_SCHEMA)


class _RecordDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    style = "|" if "\n" in data else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_RecordDumper.add_representer(str, _represent_str)


def rule_to_record(rule: Rule) -> dict[str, Any]:
    values: dict[str, Any] = {
        "id": rule.id,
        "project": rule.project,
        "scope": rule.scope.value,
        "activation": rule.activation.value,
        "name": rule.name,
        "description": rule.description,
        "globs": list(rule.globs) or None,
        "content": rule.content,
        "source_format": rule.source_format,
        "created_at": format_timestamp(rule.created_at) if rule.created_at else None,
        "updated_at": format_timestamp(rule.updated_at) if rule.updated_at else None,
        "store_version": rule.store_version or STORE_VERSION,
    }
    return {key: values[key] for key in RECORD_KEYS if values[key] is not None}


def dump_rule(rule: Rule) -> str:
    return yaml.dump(
        rule_to_record(rule),
        Dumper=_RecordDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=1_000_000,
    )


def _plain_timestamps(record: dict[str, Any]) -> dict[str, Any]:
    # unquoted timestamps in hand-edited records load as datetime objects
    normalized = dict(record)
    for key in ("created_at", "updated_at"):
        value = normalized.get(key)
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            normalized[key] = format_timestamp(value)
    return normalized


def record_to_rule(record: Any, path: Path | str) -> Rule:
    if not isinstance(record, dict):
        raise MalformedRecordError(path, "record must be a mapping")
    record = _plain_timestamps(record)

    error = next(iter(_VALIDATOR.iter_errors(record)), None)
    if error is not None:
        raise MalformedRecordError(path, format_schema_error(error))

    try:
        rule = Rule(
            content=record["content"],
            scope=Scope(record["scope"]),
            activation=Activation(record["activation"]),
            globs=list(record.get("globs") or []),
            name=record.get("name"),
            description=record.get("description"),
            id=record["id"],
            project=record["project"],
            source_format=record.get("source_format"),
            created_at=parse_timestamp(record["created_at"]),
            updated_at=parse_timestamp(record["updated_at"]),
            store_version=record["store_version"],
        )
        validate(rule)
    except (ValueError, InvalidRuleError) as exc:
        raise MalformedRecordError(path, str(exc)) from exc
    return rule


def load_rule(text: str, path: Path | str) -> Rule:
    try:
        record = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise MalformedRecordError(path, str(exc).splitlines()[0]) from exc
    return record_to_rule(record, path)

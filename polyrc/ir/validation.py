"""Rule invariants. Violations are reported, never repaired."""

from __future__ import annotations

from datetime import datetime

from polyrc.errors import InvalidRuleError
from polyrc.ir.models import Activation, Rule, Scope


def rule_problems(rule: Rule) -> list[str]:
    problems: list[str] = []

    if not isinstance(rule.content, str):
        problems.append("content must be text")
    if not isinstance(rule.scope, Scope):
        problems.append(f"unknown scope: {rule.scope!r}")
    if not isinstance(rule.activation, Activation):
        problems.append(f"unknown activation: {rule.activation!r}")

    if any(not isinstance(glob, str) or not glob.strip() for glob in rule.globs):
        problems.append("globs must be non-empty strings")
    if rule.scope == Scope.PATH and not rule.globs:
        problems.append("scope 'path' requires at least one glob")
    if rule.activation == Activation.GLOB and not rule.globs:
        problems.append("activation 'glob' requires at least one glob")
    if rule.activation == Activation.AI_DECIDES and not (
        rule.description and rule.description.strip()
    ):
        problems.append("activation 'ai_decides' requires a description")

    if rule.id is not None and not str(rule.id).strip():
        problems.append("id must not be blank")

    for label, value in (("created_at", rule.created_at), ("updated_at", rule.updated_at)):
        if value is not None and (
            not isinstance(value, datetime) or value.tzinfo is None
        ):
            problems.append(f"{label} must be a timezone-aware timestamp")
    if (
        isinstance(rule.created_at, datetime)
        and isinstance(rule.updated_at, datetime)
        and rule.created_at.tzinfo is not None
        and rule.updated_at.tzinfo is not None
        and rule.updated_at < rule.created_at
    ):
        problems.append("updated_at is earlier than created_at")

    return problems


def validate(rule: Rule) -> None:
    problems = rule_problems(rule)
    if problems:
        raise InvalidRuleError("; ".join(problems), rule_name=rule.name)


def is_valid(rule: Rule) -> bool:
    return not rule_problems(rule)

from polyrc.ir.models import (
    USER_PROJECT,
    Activation,
    Rule,
    RuleSet,
    Scope,
    normalize_content,
)
from polyrc.ir.validation import is_valid, rule_problems, validate

__all__ = [
    "USER_PROJECT",
    "Activation",
    "Rule",
    "RuleSet",
    "Scope",
    "is_valid",
    "normalize_content",
    "rule_problems",
    "validate",
]

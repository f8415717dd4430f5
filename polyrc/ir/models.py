"""Canonical rule records shared by every dialect."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Optional

from polyrc.constants import USER_PROJECT
from polyrc.utils import content_hash

_STEM_KEEP_RE = re.compile(r"[^\w-]", re.UNICODE)


class Scope(str, Enum):
    USER = "user"
    PROJECT = "project"
    PATH = "path"


class Activation(str, Enum):
    ALWAYS = "always"
    GLOB = "glob"
    ON_DEMAND = "on_demand"
    AI_DECIDES = "ai_decides"


def normalize_content(text: str) -> str:
    """Unify newlines and drop trailing whitespace; nothing else is touched."""
    return text.replace("\r\n", "\n").replace("\r", "\n").rstrip()


@dataclass(frozen=True)
class Rule:
    content: str
    scope: Scope = Scope.PROJECT
    activation: Activation = Activation.ALWAYS
    globs: list[str] = field(default_factory=list)
    name: Optional[str] = None
    description: Optional[str] = None
    id: Optional[str] = None
    project: Optional[str] = None
    source_format: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    store_version: Optional[str] = None

    def semantic_key(self) -> tuple:
        """Fields that make two versions of a record differ in meaning."""
        return (
            self.project,
            self.scope.value,
            self.activation.value,
            tuple(self.globs),
            self.name,
            self.description,
            self.content,
        )

    def same_semantics(self, other: "Rule") -> bool:
        return self.semantic_key() == other.semantic_key()

    def content_hash(self) -> str:
        return content_hash(self.content)

    def filename_stem(self) -> str:
        if self.name:
            return sanitize_filename(self.name)
        return f"rule_{self.content_hash()[:8]}"

    def with_changes(self, **changes) -> "Rule":
        return replace(self, **changes)


def sanitize_filename(name: str) -> str:
    spaced = name.strip().replace(" ", "-")
    return _STEM_KEEP_RE.sub("_", spaced).lower() or "rule"


@dataclass
class RuleSet:
    """Ordered rules; order only affects adapter output layout."""

    rules: list[Rule] = field(default_factory=list)
    project: Optional[str] = None
    scope: Optional[Scope] = None

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __bool__(self) -> bool:
        return bool(self.rules)

    def __getitem__(self, index: int) -> Rule:
        return self.rules[index]

    def filter(self, scope: Optional[Scope] = None) -> "RuleSet":
        if scope is None:
            return RuleSet(rules=list(self.rules), project=self.project, scope=self.scope)
        return RuleSet(
            rules=[rule for rule in self.rules if rule.scope == scope],
            project=self.project,
            scope=scope,
        )

    def extend(self, rules: Iterable[Rule]) -> None:
        self.rules.extend(rules)

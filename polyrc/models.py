from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from polyrc.errors import UnknownFormatError
from polyrc.ir.models import Rule

if TYPE_CHECKING:
    from polyrc.store.merge import MergeWarning


class Format(str, Enum):
    CURSOR = "cursor"
    WINDSURF = "windsurf"
    COPILOT = "copilot"
    CLAUDE = "claude"
    GEMINI = "gemini"
    ANTIGRAVITY = "antigravity"

    @classmethod
    def parse(cls, value: str) -> "Format":
        normalized = value.strip().lower()
        resolved = FORMAT_ALIASES.get(normalized, normalized)
        try:
            return cls(resolved)
        except ValueError:
            raise UnknownFormatError(value) from None


FORMAT_ALIASES: dict[str, str] = {
    "github-copilot": Format.COPILOT.value,
    "ghcopilot": Format.COPILOT.value,
    "claude-code": Format.CLAUDE.value,
    "gemini-cli": Format.GEMINI.value,
    "google-antigravity": Format.ANTIGRAVITY.value,
}

FORMAT_LABELS: dict[Format, str] = {
    Format.CURSOR: "Cursor (.cursor/rules/*.mdc, YAML frontmatter)",
    Format.WINDSURF: "Windsurf (.windsurf/rules/*.md, global_rules.md)",
    Format.COPILOT: "GitHub Copilot (.github/copilot-instructions.md + .github/instructions/)",
    Format.CLAUDE: "Claude Code (CLAUDE.md + .claude/{rules,commands,skills,agents})",
    Format.GEMINI: "Gemini CLI (GEMINI.md + .gemini/settings.json)",
    Format.ANTIGRAVITY: "Google Antigravity (.agent/rules/*.md)",
}


class ActionKind(str, Enum):
    WRITE_TEXT = "write_text"


class ActionStatus(str, Enum):
    NOOP = "noop"
    CREATE = "create"
    UPDATE = "update"


@dataclass
class Action:
    kind: ActionKind
    path: Path
    status: ActionStatus
    detail: str
    payload: Optional[Any] = None


@dataclass
class WritePlan:
    actions: list[Action]

    def changes(self) -> list[Action]:
        return [action for action in self.actions if action.status != ActionStatus.NOOP]


@dataclass(frozen=True)
class WriteResult:
    written: list[Path]
    unchanged: list[Path]

    @property
    def applied(self) -> int:
        return len(self.written)


@dataclass(frozen=True)
class RuleNote:
    """A field a one-shot write to some dialect cannot carry."""

    rule: str
    fields: list[str]

    def __str__(self) -> str:
        return f"{self.rule}: not representable ({', '.join(self.fields)})"


@dataclass
class ConversionReport:
    source: str
    target: str
    rules: list[Rule]
    plan: WritePlan
    dry_run: bool = False
    result: Optional[WriteResult] = None
    notes: list[RuleNote] = field(default_factory=list)

    def status_counts(self) -> Counter:
        return Counter(action.status.value for action in self.plan.actions)


class PushOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    PRUNED = "pruned"


@dataclass(frozen=True)
class PushEntry:
    rule: Rule
    outcome: PushOutcome


@dataclass
class PushReport:
    format: str
    project: Optional[str]
    entries: list[PushEntry] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    commit: Optional[str] = None
    dry_run: bool = False

    def count(self, outcome: PushOutcome) -> int:
        return sum(1 for entry in self.entries if entry.outcome == outcome)


class SyncStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    PUSHED = "pushed"
    FAST_FORWARD = "fast_forward"
    MERGED = "merged"
    LOCAL_ONLY = "local_only"


@dataclass(frozen=True)
class ProjectRow:
    name: str
    rules: int

    def as_dict(self) -> dict[str, str]:
        return {"name": self.name, "rules": str(self.rules)}


@dataclass
class SyncReport:
    status: SyncStatus
    warnings: list["MergeWarning"] = field(default_factory=list)
    revision: Optional[str] = None
    ahead: int = 0
    behind: int = 0

from pathlib import Path
from typing import Optional, Sequence


class PolyrcError(Exception):
    """Base user-facing application error."""


class InvalidRuleError(PolyrcError):
    def __init__(self, reason: str, rule_name: Optional[str] = None) -> None:
        self.reason = reason
        self.rule_name = rule_name
        label = f"Invalid rule '{rule_name}'" if rule_name else "Invalid rule"
        super().__init__(f"{label}: {reason}")


class UnknownFormatError(PolyrcError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Unknown format: '{name}'. Use `polyrc formats` to see valid formats."
        )


class PolyrcFileError(PolyrcError):
    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class AdapterReadError(PolyrcFileError):
    """Read failure inside a single format adapter."""


class UnreadableSourceError(AdapterReadError):
    def __init__(self, path: Path, detail: str = "no rule files found") -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Unreadable source ({detail})")


class MalformedMetadataError(AdapterReadError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Malformed metadata ({detail})")


class WriteError(PolyrcFileError):
    def __init__(
        self, path: Path, reason: str, written: Sequence[Path] = ()
    ) -> None:
        self.reason = reason
        self.written = list(written)
        super().__init__(path=path, message=f"Cannot write ({reason})")


class StoreError(PolyrcError):
    """Store-level failure."""


class StoreNotInitializedError(StoreError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Store not initialized (run `polyrc init`): {path}")


class ProjectNotFoundError(StoreError):
    def __init__(self, project: str) -> None:
        self.project = project
        super().__init__(f"Project not found: {project}")


class ProjectExistsError(StoreError):
    def __init__(self, project: str) -> None:
        self.project = project
        super().__init__(f"Project already exists: {project}")


class ProjectRequiredError(StoreError):
    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"{count} non-user rule(s) need a project; pass --project"
        )


class MalformedRecordError(StoreError):
    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Malformed store record ({detail}): {path}")


class InvalidConfigError(PolyrcFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config ({detail})")


class VersionControlError(PolyrcError):
    """Failure reported by the version-control collaborator."""


class VcsLockedError(VersionControlError):
    """Working-copy lock is held by another process; retrying may succeed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"Store is locked by another process, retry in a moment ({detail})"
        )


class InvalidProjectNameError(StoreError):
    def __init__(self, project: str, detail: str) -> None:
        self.project = project
        self.detail = detail
        super().__init__(f"Invalid project name '{project}': {detail}")

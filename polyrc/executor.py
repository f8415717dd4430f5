from pathlib import Path
from typing import Iterable, Optional, Protocol

from polyrc.errors import WriteError
from polyrc.models import Action, ActionKind, ActionStatus, WritePlan, WriteResult
from polyrc.utils import backup_file, read_text_if_exists


def plan_text_writes(files: Iterable[tuple[Path, str]]) -> WritePlan:
    actions: list[Action] = []
    for path, text in files:
        try:
            current = read_text_if_exists(path)
        except (OSError, UnicodeDecodeError):
            current = ""
        if current == text:
            status, detail = ActionStatus.NOOP, "already in sync"
        elif current is None:
            status, detail = ActionStatus.CREATE, "create file"
        else:
            status, detail = ActionStatus.UPDATE, "content differs"
        actions.append(Action(ActionKind.WRITE_TEXT, path, status, detail, payload=text))
    return WritePlan(actions=actions)


class ActionHandler(Protocol):
    def handle(self, action: Action) -> bool: ...


class WriteTextHandler:
    def __init__(self, backups: bool = True) -> None:
        self.backups = backups

    def handle(self, action: Action) -> bool:
        if action.status == ActionStatus.NOOP:
            return False
        if not isinstance(action.payload, str):
            raise ValueError(f"Missing text payload for write action: {action.path}")

        if self.backups and action.path.is_file():
            backup_file(action.path)
        action.path.parent.mkdir(parents=True, exist_ok=True)
        action.path.write_text(action.payload, encoding="utf-8")
        return True


class WriteExecutor:
    """Apply a write plan file by file; earlier files stay written on failure."""

    def __init__(self, backups: bool = True, handlers: Optional[dict] = None) -> None:
        self.handlers: dict[ActionKind, ActionHandler] = handlers or {
            ActionKind.WRITE_TEXT: WriteTextHandler(backups=backups),
        }

    def execute(self, plan: WritePlan) -> WriteResult:
        written: list[Path] = []
        unchanged: list[Path] = []

        for action in plan.actions:
            handler = self.handlers.get(action.kind)
            if handler is None:
                raise WriteError(
                    action.path, f"unknown action kind: {action.kind.value}", written
                )
            try:
                changed = handler.handle(action)
            except (OSError, ValueError) as exc:
                raise WriteError(action.path, str(exc), written) from exc
            if changed:
                written.append(action.path)
            else:
                unchanged.append(action.path)

        return WriteResult(written=written, unchanged=unchanged)

from enum import Enum

from polyrc.models import ActionStatus, PushOutcome, SyncStatus


class UIStyle(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    CYAN = "cyan"
    MAGENTA = "magenta"
    DIM = "dim"
    WHITE = "white"


ACTION_STATUS_STYLE = {
    ActionStatus.CREATE: UIStyle.GREEN.value,
    ActionStatus.UPDATE: UIStyle.CYAN.value,
    ActionStatus.NOOP: UIStyle.DIM.value,
}

PUSH_OUTCOME_STYLE = {
    PushOutcome.CREATED: UIStyle.GREEN.value,
    PushOutcome.UPDATED: UIStyle.CYAN.value,
    PushOutcome.UNCHANGED: UIStyle.DIM.value,
    PushOutcome.PRUNED: UIStyle.MAGENTA.value,
}

SYNC_STATUS_STYLE = {
    SyncStatus.UP_TO_DATE: UIStyle.DIM.value,
    SyncStatus.PUSHED: UIStyle.GREEN.value,
    SyncStatus.FAST_FORWARD: UIStyle.CYAN.value,
    SyncStatus.MERGED: UIStyle.MAGENTA.value,
    SyncStatus.LOCAL_ONLY: UIStyle.YELLOW.value,
}

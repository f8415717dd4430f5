from polyrc.store.merge import MergeResult, MergeWarning, merge_snapshots
from polyrc.store.repository import RuleStore, init_store

__all__ = [
    "MergeResult",
    "MergeWarning",
    "RuleStore",
    "init_store",
    "merge_snapshots",
]

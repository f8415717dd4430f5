from polyrc.vcs.base import Divergence, IVersionControl, with_lock_retries

__all__ = ["Divergence", "IVersionControl", "with_lock_retries"]

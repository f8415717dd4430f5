"""Narrow version-control contract the store and sync depend on."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, TypeVar

from polyrc.constants import DEFAULT_LOCK_RETRIES, LOCK_RETRY_DELAY_SECONDS
from polyrc.errors import VcsLockedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Divergence:
    base: Optional[str]
    local: Optional[str]
    remote: Optional[str]
    ahead: int
    behind: int

    @property
    def diverged(self) -> bool:
        return self.ahead > 0 and self.behind > 0


class IVersionControl(ABC):
    @abstractmethod
    def ensure_repository(self) -> None:
        """Create the working copy, cloning the remote when one is configured."""

    @abstractmethod
    def stage(self, paths: Iterable[str]) -> None:
        """Stage additions, edits and deletions of store-relative paths."""

    @abstractmethod
    def commit(self, message: str) -> Optional[str]:
        """Commit staged changes; ``None`` when nothing is staged."""

    @abstractmethod
    def head(self) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def fetch(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def divergence(self) -> Divergence:
        raise NotImplementedError

    @abstractmethod
    def read_tree(self, revision: str, prefix: str) -> dict[str, str]:
        """Text of every file under ``prefix`` at ``revision``, keyed by path."""

    @abstractmethod
    def fast_forward(self, revision: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def commit_merge(self, message: str, other_revision: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def push(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def has_remote(self) -> bool:
        raise NotImplementedError


def with_lock_retries(
    action: Callable[[], T],
    retries: int = DEFAULT_LOCK_RETRIES,
    delay: float = LOCK_RETRY_DELAY_SECONDS,
) -> T:
    attempt = 0
    while True:
        try:
            return action()
        except VcsLockedError as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning(
                "store locked (%s), retrying %d/%d", exc.detail, attempt, retries
            )
            time.sleep(delay)

"""GitPython-backed version control for the store working copy."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from git import Repo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from polyrc.constants import DEFAULT_BRANCH, DEFAULT_REMOTE_NAME
from polyrc.errors import VcsLockedError, VersionControlError
from polyrc.vcs.base import Divergence, IVersionControl

logger = logging.getLogger(__name__)


@contextmanager
def _git_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except GitCommandError as exc:
        detail = str(exc)
        if "index.lock" in detail or "Unable to create" in detail:
            raise VcsLockedError(detail.strip().splitlines()[-1]) from exc
        raise VersionControlError(f"git {operation} failed: {detail.strip()}") from exc
    except OSError as exc:
        if "lock" in str(exc).lower():
            raise VcsLockedError(str(exc)) from exc
        raise VersionControlError(f"git {operation} failed: {exc}") from exc


class GitVersionControl(IVersionControl):
    def __init__(
        self,
        root: Path,
        remote_url: Optional[str] = None,
        remote_name: str = DEFAULT_REMOTE_NAME,
        branch: str = DEFAULT_BRANCH,
    ) -> None:
        self._root = root
        self._remote_url = remote_url
        self._remote_name = remote_name
        self._branch = branch
        self._repo: Optional[Repo] = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self._root)
            except (InvalidGitRepositoryError, NoSuchPathError) as exc:
                raise VersionControlError(f"not a git repository: {self._root}") from exc
        return self._repo

    @property
    def remote_ref(self) -> str:
        return f"refs/remotes/{self._remote_name}/{self._branch}"

    def ensure_repository(self) -> None:
        if (self._root / ".git").exists():
            repo = self.repo
            if self._remote_url and self._remote_name not in [r.name for r in repo.remotes]:
                repo.create_remote(self._remote_name, self._remote_url)
            return

        self._root.mkdir(parents=True, exist_ok=True)
        with _git_errors("init"):
            self._repo = Repo.init(self._root, initial_branch=self._branch)
            logger.info("initialized git repository at %s", self._root)
            if not self._remote_url:
                return
            self._repo.create_remote(self._remote_name, self._remote_url)
            self.fetch()
            remote = self._remote_head()
            if remote is not None:
                self._repo.git.reset("--hard", remote)
                logger.info("checked out %s from %s", self._branch, self._remote_url)

    def stage(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        if not paths:
            return
        with _git_errors("add"):
            self.repo.git.add("-A", "--", *paths)

    def commit(self, message: str) -> Optional[str]:
        repo = self.repo
        with _git_errors("commit"):
            if repo.head.is_valid():
                if not repo.index.diff("HEAD"):
                    return None
            elif not repo.index.entries:
                return None
            commit = repo.index.commit(message)
        logger.debug("committed %s: %s", commit.hexsha[:8], message)
        return commit.hexsha

    def head(self) -> Optional[str]:
        repo = self.repo
        if not repo.head.is_valid():
            return None
        return repo.head.commit.hexsha

    def has_remote(self) -> bool:
        return self._remote_name in [remote.name for remote in self.repo.remotes]

    def fetch(self) -> None:
        if not self.has_remote():
            return
        with _git_errors("fetch"):
            self.repo.git.fetch(self._remote_name)

    def _remote_head(self) -> Optional[str]:
        try:
            return self.repo.commit(self.remote_ref).hexsha
        except (BadName, BadObject, ValueError):
            return None

    def _count(self, revision_range: str) -> int:
        with _git_errors("rev-list"):
            return int(self.repo.git.rev_list("--count", revision_range))

    def divergence(self) -> Divergence:
        local = self.head()
        remote = self._remote_head()
        if local is None or remote is None:
            return Divergence(
                base=None,
                local=local,
                remote=remote,
                ahead=self._count(local) if local else 0,
                behind=self._count(remote) if remote else 0,
            )

        with _git_errors("merge-base"):
            bases = self.repo.merge_base(local, remote)
        return Divergence(
            base=bases[0].hexsha if bases else None,
            local=local,
            remote=remote,
            ahead=self._count(f"{remote}..{local}"),
            behind=self._count(f"{local}..{remote}"),
        )

    def read_tree(self, revision: str, prefix: str) -> dict[str, str]:
        tree = self.repo.commit(revision).tree
        prefix = prefix.strip("/")
        try:
            subtree = tree / prefix if prefix else tree
        except KeyError:
            return {}

        files: dict[str, str] = {}
        for item in subtree.traverse():
            if item.type == "blob":
                files[item.path] = item.data_stream.read().decode("utf-8")
        return files

    def fast_forward(self, revision: str) -> None:
        with _git_errors("merge"):
            if self.head() is None:
                self.repo.git.reset("--hard", revision)
            else:
                self.repo.git.merge("--ff-only", revision)

    def commit_merge(self, message: str, other_revision: str) -> str:
        repo = self.repo
        with _git_errors("commit"):
            commit = repo.index.commit(
                message,
                parent_commits=(repo.head.commit, repo.commit(other_revision)),
            )
        logger.debug("merge commit %s", commit.hexsha[:8])
        return commit.hexsha

    def push(self) -> None:
        with _git_errors("push"):
            self.repo.git.push(self._remote_name, f"HEAD:refs/heads/{self._branch}")

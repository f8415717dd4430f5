import hashlib
import json
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from click.testing import CliRunner
import pytest


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()

from polyrc.errors import VcsLockedError, VersionControlError  # noqa: E402
from polyrc.store import RuleStore, init_store  # noqa: E402
from polyrc.vcs.base import Divergence, IVersionControl  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / ".config"))
    monkeypatch.setattr(Path, "home", lambda: tmp_path)


@pytest.fixture
def write_file():
    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_json():
    def _write(path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")

    return _write


@pytest.fixture
def cli_runner(tmp_path: Path) -> CliRunner:
    class HomeCliRunner(CliRunner):
        def invoke(self, cli: Any, args: Any = None, **kwargs: Any):  # type: ignore[override]
            env = dict(kwargs.pop("env", {}) or {})
            env.setdefault("HOME", str(tmp_path))
            env.setdefault("XDG_CONFIG_HOME", str(tmp_path / ".config"))
            kwargs["env"] = env
            return super().invoke(cli, args=args, **kwargs)

    return HomeCliRunner()


class TickingClock:
    """Each call is one second after the previous one."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass(frozen=True)
class FakeCommit:
    parents: tuple[str, ...]
    tree: dict[str, str]
    message: str


class FakeRemote:
    def __init__(self) -> None:
        self.commits: dict[str, FakeCommit] = {}
        self.head: Optional[str] = None


class FakeVersionControl(IVersionControl):
    """In-memory history over a real working directory."""

    def __init__(self, root: Path, remote: Optional[FakeRemote] = None) -> None:
        self.root = root
        self.remote = remote
        self.commits: dict[str, FakeCommit] = remote.commits if remote else {}
        self.local_head: Optional[str] = None
        self.remote_ref: Optional[str] = None
        self.staged: list[str] = []
        self.lock_failures = 0
        self.pushes = 0

    def _working_tree(self) -> dict[str, str]:
        return {
            path.relative_to(self.root).as_posix(): path.read_text(encoding="utf-8")
            for path in sorted(self.root.rglob("*"))
            if path.is_file()
        }

    def _checkout(self, revision: str) -> None:
        tree = self.commits[revision].tree
        for path in list(self.root.rglob("*")):
            if path.is_file() and path.relative_to(self.root).as_posix() not in tree:
                path.unlink()
        for relative, text in tree.items():
            target = self.root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")

    def _new_commit(self, parents: tuple[str, ...], message: str) -> str:
        tree = self._working_tree()
        payload = json.dumps([parents, tree, message, len(self.commits)], sort_keys=True)
        revision = hashlib.sha1(payload.encode("utf-8")).hexdigest()
        self.commits[revision] = FakeCommit(parents=parents, tree=tree, message=message)
        self.local_head = revision
        self.staged.clear()
        return revision

    def ancestors(self, revision: Optional[str]) -> set[str]:
        seen: set[str] = set()
        pending = [revision] if revision else []
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.commits[current].parents)
        return seen

    def ensure_repository(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        if self.local_head is None and self.remote is not None and self.remote.head:
            self.local_head = self.remote_ref = self.remote.head
            self._checkout(self.remote.head)

    def stage(self, paths: Iterable[str]) -> None:
        self.staged.extend(paths)

    def commit(self, message: str) -> Optional[str]:
        if self.lock_failures > 0:
            self.lock_failures -= 1
            raise VcsLockedError("index.lock exists")
        tree = self._working_tree()
        if self.local_head is not None and self.commits[self.local_head].tree == tree:
            return None
        if self.local_head is None and not tree:
            return None
        parents = (self.local_head,) if self.local_head else ()
        return self._new_commit(parents, message)

    def head(self) -> Optional[str]:
        return self.local_head

    def fetch(self) -> None:
        assert self.remote is not None
        self.remote_ref = self.remote.head

    def divergence(self) -> Divergence:
        local_set = self.ancestors(self.local_head)
        remote_set = self.ancestors(self.remote_ref)
        common = local_set & remote_set
        bases = [
            candidate
            for candidate in common
            if not any(
                candidate != other and candidate in self.ancestors(other) for other in common
            )
        ]
        return Divergence(
            base=sorted(bases)[0] if bases else None,
            local=self.local_head,
            remote=self.remote_ref,
            ahead=len(local_set - remote_set),
            behind=len(remote_set - local_set),
        )

    def read_tree(self, revision: str, prefix: str) -> dict[str, str]:
        prefix = prefix.strip("/") + "/"
        return {
            path: text
            for path, text in self.commits[revision].tree.items()
            if path.startswith(prefix)
        }

    def fast_forward(self, revision: str) -> None:
        assert self.local_head is None or self.local_head in self.ancestors(revision)
        self.local_head = revision
        self._checkout(revision)

    def commit_merge(self, message: str, other_revision: str) -> str:
        assert self.local_head is not None
        return self._new_commit((self.local_head, other_revision), message)

    def push(self) -> None:
        assert self.remote is not None and self.local_head is not None
        if self.remote.head and self.remote.head not in self.ancestors(self.local_head):
            raise VersionControlError("push rejected: non-fast-forward")
        self.remote.head = self.remote_ref = self.local_head
        self.pushes += 1

    def has_remote(self) -> bool:
        return self.remote is not None


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def make_store(tmp_path: Path, clock: TickingClock) -> Callable[..., RuleStore]:
    def _make(
        name: str = "machine",
        remote: Optional[FakeRemote] = None,
        store_clock: Optional[Callable[[], datetime]] = None,
    ) -> RuleStore:
        root = tmp_path / name / "store"
        vcs = FakeVersionControl(root, remote=remote)
        store = RuleStore(root, vcs, retry_delay=0, clock=store_clock or clock)
        init_store(root, vcs)
        return store

    return _make


@pytest.fixture
def store(make_store) -> RuleStore:
    return make_store()


@pytest.fixture
def fake_vcs() -> Callable[..., FakeVersionControl]:
    return FakeVersionControl

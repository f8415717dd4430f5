"""Project-partitioned rule store kept under version control.

Layout::

    <store>/polyrc.json
    <store>/rules/<project>/<id>.yml

User-global rules live under the reserved ``_user`` project.
"""

from __future__ import annotations

import logging
import re
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

from polyrc.constants import (
    DEFAULT_LOCK_RETRIES,
    LOCK_RETRY_DELAY_SECONDS,
    STORE_RECORD_SUFFIX,
    STORE_RULES_DIRNAME,
    STORE_VERSION,
    USER_PROJECT,
)
from polyrc.errors import (
    InvalidProjectNameError,
    ProjectExistsError,
    ProjectNotFoundError,
    ProjectRequiredError,
)
from polyrc.ir.models import Rule, RuleSet, Scope
from polyrc.ir.validation import validate
from polyrc.models import ProjectRow, PushOutcome
from polyrc.store.manifest import StoreManifest, load_manifest, manifest_path, save_manifest
from polyrc.store.serializer import dump_rule, load_rule
from polyrc.utils import utc_now
from polyrc.vcs.base import IVersionControl, with_lock_retries

logger = logging.getLogger(__name__)

_PROJECT_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]*$")
T = TypeVar("T")
_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://polyrc.invalid/rules")


def check_project_name(project: str, allow_reserved: bool = True) -> str:
    if not _PROJECT_NAME_RE.match(project):
        raise InvalidProjectNameError(
            project, "use letters, digits, '.', '_' or '-' and no path separators"
        )
    if project == USER_PROJECT and not allow_reserved:
        raise InvalidProjectNameError(project, "reserved for user-global rules")
    return project


def stable_rule_id(rule: Rule, project: str, ordinal: int = 1) -> str:
    """Same artifact, same id: keyed on project, scope and name (or content).

    ``ordinal`` tells apart artifacts sharing that key within one push, in read
    order.
    """
    key = rule.name if rule.name else f"sha1:{rule.content_hash()}"
    if ordinal > 1:
        key = f"{key}#{ordinal}"
    return str(uuid.uuid5(_ID_NAMESPACE, f"{project}/{rule.scope.value}/{key}"))


def project_for(rule: Rule, project: Optional[str]) -> Optional[str]:
    if rule.scope == Scope.USER:
        return USER_PROJECT
    return rule.project or project


class RuleStore:
    def __init__(
        self,
        root: Path,
        vcs: IVersionControl,
        lock_retries: int = DEFAULT_LOCK_RETRIES,
        retry_delay: float = LOCK_RETRY_DELAY_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._root = root
        self._vcs = vcs
        self._lock_retries = lock_retries
        self._retry_delay = retry_delay
        self._clock = clock

    @property
    def root(self) -> Path:
        return self._root

    @property
    def vcs(self) -> IVersionControl:
        return self._vcs

    @property
    def rules_dir(self) -> Path:
        return self._root / STORE_RULES_DIRNAME

    def manifest(self) -> StoreManifest:
        return load_manifest(self._root)

    def is_initialized(self) -> bool:
        return manifest_path(self._root).is_file()

    def retrying(self, action: Callable[[], T]) -> T:
        return with_lock_retries(action, self._lock_retries, self._retry_delay)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def record_path(self, project: str, rule_id: str) -> Path:
        return self.rules_dir / project / f"{rule_id}{STORE_RECORD_SUFFIX}"

    def _record_files(self) -> list[Path]:
        if not self.rules_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.rules_dir.glob(f"*/*{STORE_RECORD_SUFFIX}")
            if path.is_file()
        )

    def _load_records(self) -> list[tuple[Path, Rule]]:
        self.manifest()
        return [
            (path, load_rule(path.read_text(encoding="utf-8"), self._relative(path)))
            for path in self._record_files()
        ]

    def current(self) -> dict[str, Rule]:
        return {rule.id: rule for _, rule in self._load_records() if rule.id}

    def get(self, rule_id: str) -> Optional[Rule]:
        return self.current().get(rule_id)

    def get_all(
        self,
        project: Optional[str] = None,
        scope: Optional[Scope] = None,
        source_format: Optional[str] = None,
    ) -> RuleSet:
        rules = [
            rule
            for _, rule in self._load_records()
            if (project is None or rule.project == project)
            and (scope is None or rule.scope == scope)
            and (source_format is None or rule.source_format == source_format)
        ]
        return RuleSet(rules=rules, project=project, scope=scope)

    def _find_existing(
        self,
        rule: Rule,
        project: str,
        records: list[tuple[Path, Rule]],
        claimed: frozenset[str] | set[str] = frozenset(),
    ) -> Optional[tuple[Path, Rule]]:
        if rule.id:
            for path, stored in records:
                if stored.id == rule.id:
                    return path, stored
            return None

        candidates: list[tuple[Path, Rule]] = []
        for path, stored in records:
            if stored.project != project or stored.scope != rule.scope:
                continue
            if stored.id in claimed:
                continue
            if rule.name and stored.name == rule.name:
                candidates.append((path, stored))
            elif not rule.name and not stored.name and stored.content == rule.content:
                candidates.append((path, stored))

        # same activation first: a command and a rule may share a name
        for path, stored in candidates:
            if stored.activation == rule.activation:
                return path, stored
        return candidates[0] if candidates else None

    def _fresh_id(
        self, rule: Rule, project: str, taken: Iterable[Optional[str]]
    ) -> str:
        used = set(taken)
        ordinal = 1
        while True:
            rule_id = stable_rule_id(rule, project, ordinal)
            if rule_id not in used:
                return rule_id
            ordinal += 1

    def put(
        self,
        rule: Rule,
        project: Optional[str] = None,
        dry_run: bool = False,
        claimed: frozenset[str] | set[str] = frozenset(),
    ) -> tuple[Rule, PushOutcome]:
        """Upsert ``rule``.

        ``claimed`` holds ids already stored earlier in the same batch; they are
        never matched again, so two artifacts that share a name in one read stay
        separate records.
        """
        target_project = project_for(rule, project)
        if target_project is None:
            raise ProjectRequiredError(1)
        check_project_name(target_project)
        validate(rule)

        records = self._load_records()
        found = self._find_existing(rule, target_project, records, claimed)
        now = self._clock()

        if found is None:
            taken = [stored.id for _, stored in records] + list(claimed)
            created = rule.with_changes(
                id=rule.id or self._fresh_id(rule, target_project, taken),
                project=target_project,
                created_at=now,
                updated_at=now,
                store_version=STORE_VERSION,
            )
            if not dry_run:
                self._write(created)
            return created, PushOutcome.CREATED

        old_path, existing = found
        candidate = rule.with_changes(
            id=existing.id,
            project=target_project,
            created_at=existing.created_at,
            updated_at=existing.updated_at,
            store_version=STORE_VERSION,
        )
        if candidate.same_semantics(existing):
            return existing, PushOutcome.UNCHANGED

        assert existing.created_at is not None
        updated = candidate.with_changes(updated_at=max(now, existing.created_at))
        if not dry_run:
            new_path = self._write(updated)
            if old_path != new_path:
                old_path.unlink()
                self._vcs.stage([self._relative(old_path)])
        return updated, PushOutcome.UPDATED

    def _write(self, rule: Rule) -> Path:
        assert rule.project is not None and rule.id is not None
        path = self.record_path(rule.project, rule.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_rule(rule), encoding="utf-8")
        self.retrying(lambda: self._vcs.stage([self._relative(path)]))
        logger.debug("stored %s (%s)", rule.id, rule.name or "unnamed")
        return path

    def remove(self, rule_id: str) -> bool:
        for path, stored in self._load_records():
            if stored.id != rule_id:
                continue
            path.unlink()
            self._prune_empty_dir(path.parent)
            self.retrying(lambda: self._vcs.stage([self._relative(path)]))
            return True
        return False

    def _prune_empty_dir(self, directory: Path) -> None:
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()

    def commit(self, message: str) -> Optional[str]:
        revision = self.retrying(lambda: self._vcs.commit(message))
        if revision:
            logger.info("store commit %s: %s", str(revision)[:8], message)
        return revision

    def list_projects(self) -> list[ProjectRow]:
        counts: dict[str, int] = {USER_PROJECT: 0}
        for _, rule in self._load_records():
            assert rule.project is not None
            counts[rule.project] = counts.get(rule.project, 0) + 1
        return [ProjectRow(name=name, rules=counts[name]) for name in sorted(counts)]

    def rename_project(self, old: str, new: str) -> int:
        check_project_name(old, allow_reserved=False)
        check_project_name(new, allow_reserved=False)
        records = self._load_records()
        moving = [(path, rule) for path, rule in records if rule.project == old]
        if not moving:
            raise ProjectNotFoundError(old)
        if any(rule.project == new for _, rule in records):
            raise ProjectExistsError(new)

        now = self._clock()
        for path, rule in moving:
            assert rule.created_at is not None
            self._write(
                rule.with_changes(project=new, updated_at=max(now, rule.created_at))
            )
            path.unlink()
        old_dir = self.rules_dir / old
        self._prune_empty_dir(old_dir)
        self.retrying(lambda: self._vcs.stage([self._relative(old_dir)]))
        return len(moving)

    def snapshot(self, revision: Optional[str]) -> dict[str, Rule]:
        """Records as of ``revision``; an unknown base is an empty snapshot."""
        if revision is None:
            return {}
        files = self._vcs.read_tree(revision, STORE_RULES_DIRNAME)
        rules: dict[str, Rule] = {}
        for path in sorted(files):
            if not path.endswith(STORE_RECORD_SUFFIX):
                continue
            rule = load_rule(files[path], f"{revision[:8]}:{path}")
            assert rule.id is not None
            rules[rule.id] = rule
        return rules

    def replace_all(self, rules: Iterable[Rule]) -> None:
        """Make the working copy hold exactly ``rules``, written verbatim."""
        keep: set[Path] = set()
        for rule in rules:
            keep.add(self._write(rule))
        for path in self._record_files():
            if path not in keep:
                path.unlink()
                self._prune_empty_dir(path.parent)
        self.retrying(lambda: self._vcs.stage([STORE_RULES_DIRNAME]))


def init_store(
    root: Path, vcs: IVersionControl, remote_url: Optional[str] = None
) -> tuple[StoreManifest, bool]:
    """Create (or clone) the store; returns the manifest and whether it was new."""
    vcs.ensure_repository()
    if manifest_path(root).is_file():
        return load_manifest(root), False

    manifest = StoreManifest.new(remote_url=remote_url)
    path = save_manifest(root, manifest)
    (root / STORE_RULES_DIRNAME).mkdir(parents=True, exist_ok=True)
    vcs.stage([path.relative_to(root).as_posix()])
    vcs.commit("polyrc: initialize store")
    logger.info("initialized store at %s", root)
    return manifest, True

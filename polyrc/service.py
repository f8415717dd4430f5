"""User-facing operations composed from adapters and the store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from polyrc.config import AppConfig
from polyrc.errors import (
    AdapterReadError,
    ProjectNotFoundError,
    ProjectRequiredError,
    StoreError,
)
from polyrc.executor import WriteExecutor
from polyrc.formats import IFormatAdapter, get_adapter
from polyrc.ir.models import Rule, RuleSet, Scope
from polyrc.models import (
    ConversionReport,
    Format,
    ProjectRow,
    PushEntry,
    PushOutcome,
    PushReport,
    RuleNote,
    SyncReport,
    SyncStatus,
)
from polyrc.store import RuleStore, init_store, merge_snapshots
from polyrc.store.manifest import StoreManifest
from polyrc.store.repository import check_project_name, project_for
from polyrc.vcs.base import IVersionControl
from polyrc.vcs.git import GitVersionControl

logger = logging.getLogger(__name__)


def rule_label(rule: Rule) -> str:
    return rule.name or f"rule_{rule.content_hash()[:8]}"


class ConversionService:
    def __init__(self, store: Optional[RuleStore] = None, backups: bool = True) -> None:
        self._store = store
        self._backups = backups

    @classmethod
    def from_config(
        cls, config: AppConfig, vcs: Optional[IVersionControl] = None
    ) -> "ConversionService":
        if vcs is None:
            vcs = GitVersionControl(
                config.store_path,
                remote_url=config.remote_url,
                remote_name=config.remote_name,
                branch=config.branch,
            )
        store = RuleStore(config.store_path, vcs, lock_retries=config.lock_retries)
        return cls(store=store, backups=config.backups)

    @property
    def store(self) -> RuleStore:
        if self._store is None:
            raise StoreError("No store configured")
        return self._store

    def _write_report(
        self,
        adapter: IFormatAdapter,
        rule_set: RuleSet,
        output_root: Path,
        source: str,
        dry_run: bool,
    ) -> ConversionReport:
        plan = adapter.plan(rule_set, output_root)
        notes = []
        for rule in rule_set:
            fields = adapter.unrepresented_fields(rule)
            if fields:
                notes.append(RuleNote(rule=rule_label(rule), fields=fields))

        report = ConversionReport(
            source=source,
            target=adapter.format.value,
            rules=list(rule_set),
            plan=plan,
            dry_run=dry_run,
            notes=notes,
        )
        if not dry_run:
            report.result = WriteExecutor(backups=self._backups).execute(plan)
        return report

    def convert(
        self,
        source: Format | str,
        target: Format | str,
        input_root: Path,
        output_root: Path,
        scope: Optional[Scope] = None,
        dry_run: bool = False,
    ) -> ConversionReport:
        reader = get_adapter(source)
        writer = get_adapter(target)
        rule_set = reader.read(input_root, scope)
        logger.debug(
            "converting %d rule(s) %s -> %s", len(rule_set), reader.format.value, writer.format.value
        )
        return self._write_report(writer, rule_set, output_root, reader.format.value, dry_run)

    def push(
        self,
        fmt: Format | str,
        input_roots: Iterable[Path],
        project: Optional[str] = None,
        scope: Optional[Scope] = None,
        dry_run: bool = False,
        prune: bool = False,
    ) -> PushReport:
        adapter = get_adapter(fmt)
        if project is not None:
            check_project_name(project, allow_reserved=False)
        report = PushReport(format=adapter.format.value, project=project, dry_run=dry_run)

        rules: list[Rule] = []
        for root in input_roots:
            try:
                rules.extend(adapter.read(root, scope))
            except AdapterReadError as exc:
                logger.warning("skipping %s: %s", root, exc)
                report.errors.append(exc)

        orphans = [rule for rule in rules if project_for(rule, project) is None]
        if orphans:
            raise ProjectRequiredError(len(orphans))

        seen: set[str] = set()
        for rule in rules:
            stored, outcome = self.store.put(
                rule, project=project, dry_run=dry_run, claimed=seen
            )
            assert stored.id is not None
            seen.add(stored.id)
            report.entries.append(PushEntry(rule=stored, outcome=outcome))

        if prune:
            self._prune(report, rules, project, scope, seen, dry_run)

        changed = any(entry.outcome != PushOutcome.UNCHANGED for entry in report.entries)
        if changed and not dry_run:
            report.commit = self.store.commit(
                f"polyrc: push {len(rules)} {adapter.format.value} rule(s)"
                + (f" to {project}" if project else "")
            )
        return report

    def _prune(
        self,
        report: PushReport,
        rules: list[Rule],
        project: Optional[str],
        scope: Optional[Scope],
        seen: set[str],
        dry_run: bool,
    ) -> None:
        if report.errors:
            logger.warning("not pruning: some sources could not be read")
            return

        projects = {project_for(rule, project) for rule in rules}
        if project is not None and scope != Scope.USER:
            projects.add(project)

        stale = [
            rule
            for rule in self.store.get_all(scope=scope, source_format=report.format)
            if rule.project in projects and rule.id not in seen
        ]
        for rule in stale:
            assert rule.id is not None
            if not dry_run:
                self.store.remove(rule.id)
            report.entries.append(PushEntry(rule=rule, outcome=PushOutcome.PRUNED))

    def pull(
        self,
        fmt: Format | str,
        output_root: Path,
        project: Optional[str] = None,
        scope: Optional[Scope] = None,
        dry_run: bool = False,
    ) -> ConversionReport:
        adapter = get_adapter(fmt)
        rule_set = self.store.get_all(project=project, scope=scope)
        if project is not None and not rule_set:
            known = {row.name for row in self.store.list_projects() if row.rules}
            if project not in known:
                raise ProjectNotFoundError(project)
        return self._write_report(adapter, rule_set, output_root, "store", dry_run)

    def init(self, remote_url: Optional[str] = None) -> tuple[StoreManifest, bool]:
        return init_store(self.store.root, self.store.vcs, remote_url=remote_url)

    def sync(self) -> SyncReport:
        store = self.store
        vcs = store.vcs
        store.manifest()
        store.commit("polyrc: record local changes")

        if not vcs.has_remote():
            return SyncReport(status=SyncStatus.LOCAL_ONLY, revision=vcs.head())

        store.retrying(vcs.fetch)
        divergence = vcs.divergence()
        report = SyncReport(
            status=SyncStatus.UP_TO_DATE,
            revision=divergence.local,
            ahead=divergence.ahead,
            behind=divergence.behind,
        )

        if divergence.remote is None or (divergence.ahead and not divergence.behind):
            store.retrying(vcs.push)
            report.status = SyncStatus.PUSHED
        elif divergence.behind and not divergence.ahead:
            store.retrying(lambda: vcs.fast_forward(divergence.remote))
            report.status = SyncStatus.FAST_FORWARD
            report.revision = divergence.remote
        elif divergence.diverged:
            result = merge_snapshots(
                store.snapshot(divergence.base),
                store.snapshot(divergence.local),
                store.snapshot(divergence.remote),
            )
            store.replace_all(result.rules.values())
            report.revision = store.retrying(
                lambda: vcs.commit_merge(
                    f"polyrc: merge {len(result.rules)} rule(s), "
                    f"{len(result.warnings)} conflict(s)",
                    divergence.remote,
                )
            )
            store.retrying(vcs.push)
            report.status = SyncStatus.MERGED
            report.warnings = result.warnings
            for warning in result.warnings:
                logger.warning("merge conflict: %s", warning)
        return report

    def list_projects(self) -> list[ProjectRow]:
        return self.store.list_projects()

    def rename_project(self, old: str, new: str) -> int:
        moved = self.store.rename_project(old, new)
        self.store.commit(f"polyrc: rename project {old} -> {new}")
        return moved

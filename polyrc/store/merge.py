"""Three-way reconciliation of two store snapshots against their common base.

Records are matched by id. A side that did not change relative to the base
yields to the side that did. When both changed, the later ``updated_at`` wins
and a :class:`MergeWarning` records what was superseded; the superseded
version stays in history.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

from polyrc.ir.models import Rule
from polyrc.store.serializer import dump_rule
from polyrc.utils import format_timestamp

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class MergeWarning:
    rule_id: str
    local_updated_at: Optional[datetime]
    remote_updated_at: Optional[datetime]
    kept: str
    discarded_hash: str
    reason: str

    def __str__(self) -> str:
        def stamp(value: Optional[datetime]) -> str:
            return format_timestamp(value) if value else "deleted"

        return (
            f"{self.rule_id}: {self.reason}; kept {self.kept} "
            f"(local {stamp(self.local_updated_at)}, remote {stamp(self.remote_updated_at)}), "
            f"discarded {self.discarded_hash[:12]}"
        )


@dataclass
class MergeResult:
    rules: dict[str, Rule] = field(default_factory=dict)
    warnings: list[MergeWarning] = field(default_factory=list)


def _unchanged(before: Optional[Rule], after: Optional[Rule]) -> bool:
    if before is None or after is None:
        return before is after
    return before.same_semantics(after)


def _precedence(rule: Rule) -> tuple:
    return (rule.updated_at or _EPOCH, rule.id or "", rule.content_hash(), dump_rule(rule))


def _later(first: Rule, second: Rule) -> Rule:
    return first if _precedence(first) >= _precedence(second) else second


def merge_record(
    rule_id: str,
    base: Optional[Rule],
    local: Optional[Rule],
    remote: Optional[Rule],
) -> tuple[Optional[Rule], Optional[MergeWarning]]:
    if local is None and remote is None:
        return None, None
    if local is not None and remote is not None and local.same_semantics(remote):
        return _later(local, remote), None

    if _unchanged(base, remote):
        return local, None
    if _unchanged(base, local):
        return remote, None

    if local is None or remote is None:
        survivor = remote if local is None else local
        assert base is not None and survivor is not None
        side = "remote" if local is None else "local"
        return survivor, MergeWarning(
            rule_id=rule_id,
            local_updated_at=local.updated_at if local else None,
            remote_updated_at=remote.updated_at if remote else None,
            kept=side,
            discarded_hash=base.content_hash(),
            reason=f"deleted on one side, modified on the {side} side",
        )

    winner = _later(local, remote)
    loser = remote if winner is local else local
    return winner, MergeWarning(
        rule_id=rule_id,
        local_updated_at=local.updated_at,
        remote_updated_at=remote.updated_at,
        kept="local" if winner is local else "remote",
        discarded_hash=loser.content_hash(),
        reason="changed on both sides" if base else "added on both sides",
    )


def merge_snapshots(
    base: Mapping[str, Rule],
    local: Mapping[str, Rule],
    remote: Mapping[str, Rule],
) -> MergeResult:
    result = MergeResult()
    for rule_id in sorted(set(base) | set(local) | set(remote)):
        merged, warning = merge_record(
            rule_id, base.get(rule_id), local.get(rule_id), remote.get(rule_id)
        )
        if merged is not None:
            result.rules[rule_id] = merged
        if warning is not None:
            result.warnings.append(warning)
    return result

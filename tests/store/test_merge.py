from datetime import datetime, timedelta, timezone

from polyrc.ir import Rule
from polyrc.store import merge_snapshots
from polyrc.store.merge import merge_record

T0 = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)


def _rule(rule_id: str, content: str, minutes: int = 0, **changes) -> Rule:
    return Rule(
        content=content,
        name=rule_id,
        id=rule_id,
        project="webapp",
        created_at=T0,
        updated_at=T0 + timedelta(minutes=minutes),
        store_version="1",
        **changes,
    )


def test_one_sided_changes_merge_without_warnings() -> None:
    base = {"a": _rule("a", "A"), "b": _rule("b", "B"), "c": _rule("c", "C")}
    local = {"a": _rule("a", "A local", 5), "b": base["b"], "c": base["c"]}
    remote = {"a": base["a"], "b": _rule("b", "B remote", 3), "d": _rule("d", "D", 1)}

    result = merge_snapshots(base, local, remote)

    assert result.warnings == []
    assert result.rules == {"a": local["a"], "b": remote["b"], "d": remote["d"]}


def test_merge_is_symmetric_without_conflicts() -> None:
    base = {"a": _rule("a", "A")}
    local = {"a": _rule("a", "A local", 5), "x": _rule("x", "X", 2)}
    remote = {"a": base["a"], "y": _rule("y", "Y", 4)}

    assert merge_snapshots(base, local, remote).rules == merge_snapshots(base, remote, local).rules


def test_concurrent_edits_keep_the_later_version() -> None:
    base = {"a": _rule("a", "A")}
    local = {"a": _rule("a", "A local", 10)}
    remote = {"a": _rule("a", "A remote", 20)}

    result = merge_snapshots(base, local, remote)

    assert result.rules["a"] == remote["a"]
    [warning] = result.warnings
    assert warning.rule_id == "a"
    assert warning.kept == "remote"
    assert warning.discarded_hash == local["a"].content_hash()
    assert warning.local_updated_at == local["a"].updated_at
    assert "changed on both sides" in str(warning)


def test_conflict_resolution_does_not_depend_on_side() -> None:
    base = {"a": _rule("a", "A")}
    left = {"a": _rule("a", "Left", 7)}
    right = {"a": _rule("a", "Right", 7)}

    forward = merge_snapshots(base, left, right)
    backward = merge_snapshots(base, right, left)

    assert forward.rules == backward.rules
    assert len(forward.warnings) == len(backward.warnings) == 1


def test_identical_edits_on_both_sides_do_not_conflict() -> None:
    base = {"a": _rule("a", "A")}
    local = {"a": _rule("a", "Same", 4)}
    remote = {"a": _rule("a", "Same", 9)}

    result = merge_snapshots(base, local, remote)

    assert result.warnings == []
    assert result.rules["a"] == remote["a"]


def test_added_on_both_sides_with_different_content() -> None:
    local = {"n": _rule("n", "Local", 2)}
    remote = {"n": _rule("n", "Remote", 1)}

    merged, warning = merge_record("n", None, local["n"], remote["n"])

    assert merged == local["n"]
    assert warning is not None
    assert warning.reason == "added on both sides"


def test_delete_against_unchanged_deletes() -> None:
    base = {"a": _rule("a", "A")}

    result = merge_snapshots(base, {}, dict(base))

    assert result.rules == {}
    assert result.warnings == []


def test_delete_against_modify_keeps_the_modification() -> None:
    base = {"a": _rule("a", "A")}
    remote = {"a": _rule("a", "A edited", 3)}

    result = merge_snapshots(base, {}, remote)

    assert result.rules == {"a": remote["a"]}
    [warning] = result.warnings
    assert warning.kept == "remote"
    assert warning.local_updated_at is None
    assert "deleted" in str(warning)


def test_deleted_on_both_sides() -> None:
    base = {"a": _rule("a", "A")}
    assert merge_snapshots(base, {}, {}).rules == {}


def test_timestamp_only_differences_are_not_changes() -> None:
    base = {"a": _rule("a", "A")}
    local = {"a": _rule("a", "A", 30)}
    remote = {"a": _rule("a", "A remote", 1)}

    result = merge_snapshots(base, local, remote)

    assert result.rules["a"] == remote["a"]
    assert result.warnings == []

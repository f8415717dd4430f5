"""Two stores sharing one remote, as on two machines."""

import pytest

from polyrc.errors import VersionControlError
from polyrc.ir import Rule
from polyrc.models import SyncStatus
from polyrc.service import ConversionService


@pytest.fixture
def machines(make_store, fake_remote):
    first = ConversionService(store=make_store("laptop", remote=fake_remote))
    assert first.sync().status == SyncStatus.PUSHED
    second = ConversionService(store=make_store("desktop", remote=fake_remote))
    return first, second


def _put(service: ConversionService, content: str, name: str = "style") -> Rule:
    stored, _ = service.store.put(Rule(content=content, name=name), project="webapp")
    service.store.commit(f"edit {name}")
    return stored


def _contents(service: ConversionService) -> dict:
    return {rule.name: rule.content for rule in service.store.get_all()}


def test_store_without_remote_stays_local(store) -> None:
    service = ConversionService(store=store)
    store.put(Rule(content="x", name="x"), project="webapp")

    report = service.sync()

    assert report.status == SyncStatus.LOCAL_ONLY
    assert report.revision == store.vcs.head()
    assert store.commit("nothing left") is None


def test_second_machine_starts_from_the_remote(machines) -> None:
    first, second = machines
    assert second.store.vcs.head() == first.store.vcs.head()
    assert second.store.manifest() == first.store.manifest()


def test_up_to_date(machines) -> None:
    first, _ = machines
    assert first.sync().status == SyncStatus.UP_TO_DATE


def test_push_then_fast_forward(machines) -> None:
    first, second = machines
    _put(first, "Use tabs.")

    assert first.sync().status == SyncStatus.PUSHED
    report = second.sync()

    assert report.status == SyncStatus.FAST_FORWARD
    assert report.behind == 1
    assert _contents(second) == {"style": "Use tabs."}


def test_identical_rules_from_both_machines_merge_cleanly(machines) -> None:
    first, second = machines
    _put(first, "Use tabs.")
    _put(second, "Use tabs.")

    first.sync()
    report = second.sync()

    assert report.status == SyncStatus.MERGED
    assert report.warnings == []
    assert len(second.store.get_all()) == 1
    assert first.sync().status == SyncStatus.FAST_FORWARD
    assert first.store.current() == second.store.current()


def test_different_rules_from_both_machines_are_all_kept(machines) -> None:
    first, second = machines
    _put(first, "Use tabs.", name="style")
    _put(second, "Write tests.", name="testing")

    first.sync()
    report = second.sync()

    assert report.status == SyncStatus.MERGED
    assert report.warnings == []
    assert _contents(second) == {"style": "Use tabs.", "testing": "Write tests."}


def test_concurrent_edit_keeps_the_later_one_and_warns(machines) -> None:
    first, second = machines
    original = _put(first, "Use tabs.")
    first.sync()
    second.sync()

    older = _put(second, "Use two spaces.")
    newer = _put(first, "Use four spaces.")
    assert newer.updated_at > older.updated_at

    first.sync()
    report = second.sync()

    assert report.status == SyncStatus.MERGED
    [warning] = report.warnings
    assert warning.rule_id == original.id
    assert warning.kept == "remote"
    assert warning.discarded_hash == older.content_hash()
    assert _contents(second) == {"style": "Use four spaces."}

    first.sync()
    assert _contents(first) == {"style": "Use four spaces."}


def test_superseded_version_stays_in_history(machines) -> None:
    first, second = machines
    _put(first, "Use tabs.")
    first.sync()
    second.sync()
    _put(second, "Use two spaces.")
    _put(first, "Use four spaces.")
    first.sync()

    second.sync()

    vcs = second.store.vcs
    history = [
        text
        for revision in vcs.ancestors(vcs.head())
        for text in vcs.read_tree(revision, "rules").values()
    ]
    assert any("Use two spaces." in text for text in history)


def test_delete_against_edit_keeps_the_edit(machines) -> None:
    first, second = machines
    stored = _put(first, "Use tabs.")
    first.sync()
    second.sync()

    first.store.remove(stored.id)
    first.store.commit("drop style")
    _put(second, "Use tabs, always.")

    first.sync()
    report = second.sync()

    assert [warning.kept for warning in report.warnings] == ["local"]
    assert _contents(second) == {"style": "Use tabs, always."}


def test_sync_retries_a_locked_store(machines) -> None:
    first, _ = machines
    first.store.put(Rule(content="x", name="x"), project="webapp")
    first.store.vcs.lock_failures = 1

    assert first.sync().status == SyncStatus.PUSHED


def test_push_rejection_surfaces(machines) -> None:
    first, second = machines
    _put(second, "Use tabs.")
    second.sync()
    _put(first, "Write tests.", name="testing")
    # the remote moved without this machine fetching
    first.store.vcs.fetch = lambda: None

    with pytest.raises(VersionControlError):
        first.sync()

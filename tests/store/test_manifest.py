import json
from pathlib import Path

import pytest

from polyrc.errors import MalformedRecordError, StoreNotInitializedError
from polyrc.store.manifest import StoreManifest, load_manifest, save_manifest


def test_manifest_round_trips_with_remote(tmp_path: Path) -> None:
    manifest = StoreManifest.new(remote_url="git@example.com:me/rules.git")
    path = save_manifest(tmp_path, manifest)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["store_version"] == "1"
    assert payload["remote"] == {"url": "git@example.com:me/rules.git"}
    assert load_manifest(tmp_path) == manifest


def test_manifest_without_remote_omits_it(tmp_path: Path) -> None:
    path = save_manifest(tmp_path, StoreManifest.new())
    assert "remote" not in json.loads(path.read_text(encoding="utf-8"))
    assert load_manifest(tmp_path).remote_url is None


def test_missing_manifest_means_not_initialized(tmp_path: Path) -> None:
    with pytest.raises(StoreNotInitializedError):
        load_manifest(tmp_path)


@pytest.mark.parametrize("text", ["{bad", "[]", '{"store_version": "1"}'])
def test_broken_manifest_is_malformed(tmp_path: Path, write_file, text: str) -> None:
    write_file(tmp_path / "polyrc.json", text)
    with pytest.raises(MalformedRecordError):
        load_manifest(tmp_path)

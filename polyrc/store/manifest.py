from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from polyrc.constants import STORE_MANIFEST_FILENAME, STORE_VERSION
from polyrc.errors import MalformedRecordError, StoreNotInitializedError
from polyrc.utils import format_timestamp, parse_timestamp, read_json_safe, utc_now, write_json


@dataclass(frozen=True)
class StoreManifest:
    store_version: str
    created_at: datetime
    remote_url: Optional[str] = None

    @classmethod
    def new(cls, remote_url: Optional[str] = None) -> "StoreManifest":
        return cls(store_version=STORE_VERSION, created_at=utc_now(), remote_url=remote_url)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "store_version": self.store_version,
            "created_at": format_timestamp(self.created_at),
        }
        if self.remote_url:
            payload["remote"] = {"url": self.remote_url}
        return payload

    @classmethod
    def from_payload(cls, payload: Any, path: Path) -> "StoreManifest":
        if not isinstance(payload, dict):
            raise MalformedRecordError(path, "manifest must be a JSON object")
        remote = payload.get("remote") or {}
        try:
            return cls(
                store_version=str(payload["store_version"]),
                created_at=parse_timestamp(str(payload["created_at"])),
                remote_url=remote.get("url") if isinstance(remote, dict) else None,
            )
        except (KeyError, ValueError) as exc:
            raise MalformedRecordError(path, f"manifest field {exc}") from exc


def manifest_path(store_root: Path) -> Path:
    return store_root / STORE_MANIFEST_FILENAME


def load_manifest(store_root: Path) -> StoreManifest:
    path = manifest_path(store_root)
    payload, error = read_json_safe(path)
    if error:
        raise MalformedRecordError(path, error)
    if payload is None:
        raise StoreNotInitializedError(store_root)
    return StoreManifest.from_payload(payload, path)


def save_manifest(store_root: Path, manifest: StoreManifest) -> Path:
    path = manifest_path(store_root)
    write_json(path, manifest.to_payload())
    return path

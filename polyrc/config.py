from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator

from polyrc.constants import (
    APP_NAME,
    CONFIG_FILENAME,
    DEFAULT_BRANCH,
    DEFAULT_LOCK_RETRIES,
    DEFAULT_REMOTE_NAME,
    STORE_DIRNAME,
)
from polyrc.errors import InvalidConfigError
from polyrc.utils import format_schema_error, read_json_safe, write_json

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "store_path": {"type": "string", "minLength": 1},
        "remote_url": {"type": ["string", "null"]},
        "remote_name": {"type": "string", "minLength": 1},
        "branch": {"type": "string", "minLength": 1},
        "backups": {"type": "boolean"},
        "lock_retries": {"type": "integer", "minimum": 0},
    },
}


@dataclass(frozen=True)
class AppConfig:
    store_path: Path
    remote_url: Optional[str] = None
    remote_name: str = DEFAULT_REMOTE_NAME
    branch: str = DEFAULT_BRANCH
    backups: bool = True
    lock_retries: int = DEFAULT_LOCK_RETRIES

    def with_changes(self, **changes: Any) -> "AppConfig":
        return replace(self, **changes)

    def to_payload(self) -> dict[str, Any]:
        return {
            "store_path": str(self.store_path),
            "remote_url": self.remote_url,
            "remote_name": self.remote_name,
            "branch": self.branch,
            "backups": self.backups,
            "lock_retries": self.lock_retries,
        }


class ConfigRepository:
    def __init__(self, root: Path | None = None) -> None:
        self._root = root or (Path.home() / ".config" / APP_NAME)
        self._validator = Draft202012Validator(CONFIG_SCHEMA)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    def default_config(self) -> AppConfig:
        return AppConfig(store_path=self.root / STORE_DIRNAME)

    def load(self) -> AppConfig:
        payload, error = read_json_safe(self.config_path)
        if error is not None:
            raise InvalidConfigError(self.config_path, error)
        defaults = self.default_config()
        if payload is None:
            return defaults
        if not isinstance(payload, dict):
            raise InvalidConfigError(self.config_path, "must be a JSON object")

        schema_error = next(iter(self._validator.iter_errors(payload)), None)
        if schema_error is not None:
            raise InvalidConfigError(self.config_path, format_schema_error(schema_error))

        store_path = payload.get("store_path")
        return AppConfig(
            store_path=Path(store_path).expanduser() if store_path else defaults.store_path,
            remote_url=payload.get("remote_url"),
            remote_name=payload.get("remote_name", defaults.remote_name),
            branch=payload.get("branch", defaults.branch),
            backups=payload.get("backups", defaults.backups),
            lock_retries=payload.get("lock_retries", defaults.lock_retries),
        )

    def save(self, config: AppConfig) -> None:
        write_json(self.config_path, config.to_payload())

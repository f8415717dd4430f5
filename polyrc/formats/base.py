"""Contract every dialect adapter satisfies.

Adapters only ever exchange :class:`~polyrc.ir.models.Rule` objects. Reading
scans a fixed layout under ``root``; writing first renders the target files
(:meth:`IFormatAdapter.render`) so that a dry run can report exactly what a
real write would change.
"""

from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Iterable, Optional, cast

from polyrc.errors import (
    InvalidRuleError,
    MalformedMetadataError,
    UnknownFormatError,
    UnreadableSourceError,
)
from polyrc.executor import WriteExecutor, plan_text_writes
from polyrc.formats.capabilities import DialectCapabilities, capabilities_for
from polyrc.ir.models import Rule, RuleSet, Scope
from polyrc.ir.validation import validate
from polyrc.models import FORMAT_LABELS, Format, WritePlan, WriteResult
from polyrc.utils import content_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedFile:
    path: Path
    text: str


class FormatAdapterRegistryMeta(ABCMeta):
    _registry: dict[Format, type["IFormatAdapter"]] = {}

    def __new__(
        mcls,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ):
        cls = super().__new__(mcls, name, bases, namespace, **kwargs)
        fmt = getattr(cls, "FORMAT", None)
        is_abstract = bool(getattr(cls, "__abstractmethods__", False))
        if fmt is not None and not is_abstract:
            mcls._registry[fmt] = cast(type["IFormatAdapter"], cls)
        return cls


class IFormatAdapter(metaclass=FormatAdapterRegistryMeta):
    FORMAT: ClassVar[Optional[Format]] = None

    @property
    def format(self) -> Format:
        assert self.FORMAT is not None
        return self.FORMAT

    @property
    def capabilities(self) -> DialectCapabilities:
        return capabilities_for(self.format)

    @property
    def label(self) -> str:
        return FORMAT_LABELS[self.format]

    @abstractmethod
    def locations(self, root: Path) -> list[Path]:
        """Every file or directory this dialect reads under ``root``."""

    @abstractmethod
    def read_rules(self, root: Path) -> list[Rule]:
        raise NotImplementedError

    @abstractmethod
    def render(self, rule_set: RuleSet, root: Path) -> list[RenderedFile]:
        raise NotImplementedError

    def read(self, root: Path, scope_filter: Optional[Scope] = None) -> RuleSet:
        if not root.is_dir():
            raise UnreadableSourceError(root, "not a directory")
        if not any(location.exists() for location in self.locations(root)):
            raise UnreadableSourceError(root, f"no {self.format.value} rule files found")

        rules = [
            rule.with_changes(source_format=self.format.value)
            for rule in self.read_rules(root)
        ]
        logger.debug("read %d %s rule(s) from %s", len(rules), self.format.value, root)
        return RuleSet(rules=rules).filter(scope_filter)

    def plan(self, rule_set: RuleSet, root: Path) -> WritePlan:
        rendered = self.render(rule_set, root)
        return plan_text_writes((item.path, item.text) for item in rendered)

    def write(self, rule_set: RuleSet, root: Path, backups: bool = True) -> WriteResult:
        plan = self.plan(rule_set, root)
        result = WriteExecutor(backups=backups).execute(plan)
        logger.debug(
            "wrote %d file(s) as %s under %s", result.applied, self.format.value, root
        )
        return result

    def unrepresented_fields(self, rule: Rule) -> list[str]:
        return self.capabilities.unrepresented_fields(rule)


def checked_rule(path: Path, rule: Rule) -> Rule:
    try:
        validate(rule)
    except InvalidRuleError as exc:
        raise MalformedMetadataError(path, exc.reason) from exc
    return rule


def read_source_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UnreadableSourceError(path, str(exc)) from exc


def list_files(directory: Path, suffix: str) -> list[Path]:
    if not directory.is_dir():
        return []
    return [
        child
        for child in sorted(directory.iterdir())
        if child.is_file() and child.name.endswith(suffix) and not child.name.startswith(".")
    ]


def list_subdirs_with(directory: Path, filename: str) -> list[Path]:
    if not directory.is_dir():
        return []
    return [
        child
        for child in sorted(directory.iterdir())
        if child.is_dir() and not child.name.startswith(".") and (child / filename).is_file()
    ]


def file_stem(path: Path, suffix: str) -> str:
    name = path.name
    return name[: -len(suffix)] if name.endswith(suffix) else path.stem


def assign_stems(rules: Iterable[Rule]) -> list[str]:
    """Filename stems in rule order; repeated stems get -2, -3, ... suffixes."""
    seen: dict[str, int] = {}
    stems: list[str] = []
    for rule in rules:
        stem = rule.filename_stem()
        count = seen.get(stem, 0) + 1
        seen[stem] = count
        stems.append(stem if count == 1 else f"{stem}-{count}")
    return stems


def list_registered_formats() -> list[Format]:
    _load_adapter_modules()
    return sorted(FormatAdapterRegistryMeta._registry.keys(), key=lambda item: item.value)


def get_adapter(fmt: Format | str) -> IFormatAdapter:
    _load_adapter_modules()
    resolved = fmt if isinstance(fmt, Format) else Format.parse(fmt)
    adapter_class = FormatAdapterRegistryMeta._registry.get(resolved)
    if adapter_class is None:
        raise UnknownFormatError(resolved.value)
    return adapter_class()


def _load_adapter_modules() -> None:
    from polyrc.formats.loader import load_adapter_modules

    load_adapter_modules()


def stem_keeps_name(rule: Rule) -> bool:
    """File-per-rule dialects recover ``name`` from the filename."""
    return rule.name is None or rule.filename_stem() == rule.name


def name_from_file(path: Path, suffix: str, content: str) -> Optional[str]:
    """Filename stem as the rule name; generated ``rule_<hash>`` stems mean unnamed."""
    stem = file_stem(path, suffix)
    if stem == f"rule_{content_hash(content)[:8]}":
        return None
    return stem

"""Locate user-level rule configuration for each dialect on this machine."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from polyrc.errors import AdapterReadError
from polyrc.formats import get_adapter
from polyrc.models import Format
from polyrc.utils import compact_home_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredLocation:
    format: Format
    root: Optional[Path]
    rules: Optional[int] = None
    note: str = ""

    @property
    def found(self) -> bool:
        return self.rules is not None

    def as_dict(self) -> dict[str, str]:
        return {
            "format": self.format.value,
            "root": compact_home_path(self.root) if self.root else "-",
            "rules": str(self.rules) if self.rules is not None else "-",
            "note": self.note,
        }


def _cursor_settings_path(home: Path) -> Path:
    if sys.platform == "darwin":
        base = home / "Library" / "Application Support"
    elif sys.platform.startswith("win"):
        base = home / "AppData" / "Roaming"
    else:
        base = home / ".config"
    return base / "Cursor" / "User" / "settings.json"


def user_roots(home: Path) -> dict[Format, Path]:
    """Roots that the adapters read as user-level layouts."""
    return {
        Format.CLAUDE: home / ".claude",
        Format.GEMINI: home / ".gemini",
        Format.ANTIGRAVITY: home / ".gemini" / "antigravity",
        Format.WINDSURF: home / ".codeium" / "windsurf" / "memories",
    }


def discover(home: Optional[Path] = None) -> list[DiscoveredLocation]:
    home = home or Path.home()
    found: list[DiscoveredLocation] = []

    for fmt, root in user_roots(home).items():
        if not root.is_dir():
            found.append(DiscoveredLocation(fmt, root, note="not found"))
            continue
        try:
            count = len(get_adapter(fmt).read(root))
        except AdapterReadError as exc:
            logger.debug("discover %s: %s", fmt.value, exc)
            found.append(DiscoveredLocation(fmt, root, note=exc.message.lower()))
            continue
        found.append(
            DiscoveredLocation(
                fmt, root, rules=count, note=f"polyrc push --from {fmt.value} --input {compact_home_path(root)}"
            )
        )

    cursor_settings = _cursor_settings_path(home)
    found.append(
        DiscoveredLocation(
            Format.CURSOR,
            cursor_settings if cursor_settings.exists() else None,
            note="user rules are kept in Cursor Settings, not in rule files",
        )
    )
    found.append(
        DiscoveredLocation(
            Format.COPILOT,
            None,
            note="personal instructions are set on github.com under Settings > Copilot",
        )
    )
    return sorted(found, key=lambda item: item.format.value)

from typing import Iterable, Optional

from rich.panel import Panel

from polyrc.tui.enums import UIStyle
from polyrc.utils import compact_home_paths_in_text


class UISection:
    @staticmethod
    def wrap(title: str, body, style: str = UIStyle.BLUE.value, subtitle: Optional[str] = None) -> Panel:
        return Panel(body, title=title, subtitle=subtitle, border_style=style, padding=(0, 1))

    @staticmethod
    def note(title: str, body: str, style: str) -> Panel:
        return Panel(body, title=title, border_style=style, padding=(0, 1))

    @staticmethod
    def bullets(title: str, items: Iterable[object], style: str) -> Panel:
        lines = [f"- {compact_home_paths_in_text(str(item))}" for item in items]
        return UISection.note(title, "\n".join(lines), style=style)

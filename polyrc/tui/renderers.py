from pathlib import Path

from rich.console import Console

from polyrc.discover import DiscoveredLocation
from polyrc.models import (
    ConversionReport,
    Format,
    ProjectRow,
    PushReport,
    SyncReport,
    SyncStatus,
)
from polyrc.tui.enums import UIStyle
from polyrc.tui.sections import UISection
from polyrc.tui.tables import ConversionTable, FormatTable, PushTable, StoreTable
from polyrc.utils import compact_home_path


class ConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_conversion(self, report: ConversionReport, mode: str) -> None:
        self.console.print(
            UISection.wrap(
                "overview",
                ConversionTable.summary_block(report, mode=mode),
                style=UIStyle.BLUE.value,
            )
        )

        if report.plan.actions:
            self.console.print(
                UISection.wrap(
                    "files",
                    ConversionTable.actions_table(report.plan.actions),
                    style=UIStyle.CYAN.value,
                )
            )
        else:
            self.console.print(
                UISection.note("files", "No rules to write.", style=UIStyle.DIM.value)
            )

        if report.notes:
            self.console.print(
                UISection.bullets("not representable", report.notes, style=UIStyle.YELLOW.value)
            )

        if report.dry_run:
            pending = len(report.plan.changes())
            self.console.print(
                UISection.note(
                    "dry run",
                    f"{pending} file(s) would change. Re-run without --dry-run to write them.",
                    style=UIStyle.DIM.value,
                )
            )
        elif report.result is not None:
            self.console.print(
                UISection.note(
                    "written",
                    f"{report.result.applied} file(s) written, "
                    f"{len(report.result.unchanged)} already in sync.",
                    style=UIStyle.GREEN.value,
                )
            )

    def render_push(self, report: PushReport) -> None:
        self.console.print(
            UISection.wrap("push", PushTable.summary_block(report), style=UIStyle.BLUE.value)
        )
        if report.entries:
            self.console.print(
                UISection.wrap(
                    "rules",
                    PushTable.entries_table(report.entries),
                    style=UIStyle.CYAN.value,
                )
            )
        if report.errors:
            self.console.print(
                UISection.bullets("errors", report.errors, style=UIStyle.RED.value)
            )

    def render_sync(self, report: SyncReport) -> None:
        self.console.print(
            UISection.wrap("sync", StoreTable.sync_block(report), style=UIStyle.BLUE.value)
        )
        if report.warnings:
            self.console.print(
                UISection.wrap(
                    "merge warnings",
                    StoreTable.warnings_table(report),
                    style=UIStyle.YELLOW.value,
                    subtitle="superseded versions remain in the store history",
                )
            )
        if report.status == SyncStatus.LOCAL_ONLY:
            self.console.print(
                UISection.note(
                    "next",
                    "No remote configured.\n- polyrc init --remote <url>",
                    style=UIStyle.DIM.value,
                )
            )

    def render_projects(self, items: list[ProjectRow]) -> None:
        self.console.print(
            UISection.wrap(
                "projects", StoreTable.projects_table(items), style=UIStyle.BLUE.value
            )
        )

    def render_project_renamed(self, old: str, new: str, moved: int) -> None:
        self.console.print(
            UISection.note(
                "project",
                f"Renamed [bold]{old}[/bold] to [bold]{new}[/bold] ({moved} rule(s))",
                style=UIStyle.GREEN.value,
            )
        )

    def render_formats(self, labels: dict[Format, str]) -> None:
        self.console.print(
            UISection.wrap("formats", FormatTable.formats_table(labels), style=UIStyle.BLUE.value)
        )

    def render_discovery(self, items: list[DiscoveredLocation]) -> None:
        self.console.print(
            UISection.wrap(
                "user configuration",
                FormatTable.discovery_table(items),
                style=UIStyle.BLUE.value,
            )
        )

    def render_store_ready(self, path: Path, created: bool, remote_url: str | None) -> None:
        verb = "Initialized" if created else "Store already initialized"
        lines = [f"{verb}: {compact_home_path(path)}"]
        if remote_url:
            lines.append(f"remote: {remote_url}")
        self.console.print(
            UISection.note(
                "store",
                "\n".join(lines),
                style=UIStyle.GREEN.value if created else UIStyle.DIM.value,
            )
        )

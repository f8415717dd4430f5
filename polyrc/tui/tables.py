from collections import Counter

from rich.table import Column, Table

from polyrc.discover import DiscoveredLocation
from polyrc.models import (
    Action,
    ConversionReport,
    Format,
    ProjectRow,
    PushEntry,
    PushOutcome,
    PushReport,
    SyncReport,
)
from polyrc.service import rule_label
from polyrc.tui.enums import (
    ACTION_STATUS_STYLE,
    PUSH_OUTCOME_STYLE,
    SYNC_STATUS_STYLE,
    UIStyle,
)
from polyrc.utils import compact_home_path, format_timestamp


def _styled(value: str, style: str) -> str:
    return f"[{style}]{value}[/{style}]"


class ConversionTable:
    @staticmethod
    def summary_block(report: ConversionReport, mode: str):
        counts = report.status_counts()
        chips = [f"{key}={value}" for key, value in sorted(counts.items()) if value > 0]
        if not chips:
            chips = ["none"]

        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Mode", mode)
        table.add_row("From", report.source)
        table.add_row("To", report.target)
        table.add_row("Rules", str(len(report.rules)))
        table.add_row("Files", "  ".join(chips))
        return table

    @staticmethod
    def actions_table(actions: list[Action]) -> Table:
        table = Table(
            Column(header="Status", width=10),
            Column(header="Target", overflow="ellipsis"),
            Column(header="Reason", overflow="ellipsis", max_width=24),
            expand=True,
            header_style="bold",
        )
        for action in actions:
            style = ACTION_STATUS_STYLE.get(action.status, UIStyle.WHITE.value)
            table.add_row(
                _styled(action.status.value, style),
                compact_home_path(action.path),
                action.detail,
            )
        return table


class PushTable:
    @staticmethod
    def summary_block(report: PushReport):
        counts = Counter(entry.outcome.value for entry in report.entries)
        chips = [f"{item.value}={counts[item.value]}" for item in PushOutcome if counts[item.value]]

        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Mode", "push:dry-run" if report.dry_run else "push")
        table.add_row("From", report.format)
        table.add_row("Project", report.project or "-")
        table.add_row("Rules", "  ".join(chips) or "none")
        table.add_row("Commit", report.commit[:10] if report.commit else "-")
        return table

    @staticmethod
    def entries_table(entries: list[PushEntry]) -> Table:
        table = Table(
            Column(header="Outcome", width=10),
            Column(header="Project", width=18, overflow="ellipsis"),
            Column(header="Rule", overflow="ellipsis"),
            Column(header="Scope", width=8),
            Column(header="Activation", width=11),
            Column(header="Id", width=10, overflow="crop"),
            expand=True,
            header_style="bold",
        )
        for entry in entries:
            rule = entry.rule
            style = PUSH_OUTCOME_STYLE.get(entry.outcome, UIStyle.WHITE.value)
            table.add_row(
                _styled(entry.outcome.value, style),
                rule.project or "-",
                rule_label(rule),
                rule.scope.value,
                rule.activation.value,
                (rule.id or "")[:8],
            )
        return table


class StoreTable:
    @staticmethod
    def projects_table(items: list[ProjectRow]) -> Table:
        table = Table(
            Column(header="Project", overflow="ellipsis"),
            Column(header="Rules", width=8, justify="right"),
            expand=True,
            header_style="bold",
        )
        for item in items:
            row = item.as_dict()
            table.add_row(row["name"], row["rules"])
        return table

    @staticmethod
    def sync_block(report: SyncReport):
        style = SYNC_STATUS_STYLE.get(report.status, UIStyle.WHITE.value)
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Status", _styled(report.status.value, style))
        table.add_row("Ahead", str(report.ahead))
        table.add_row("Behind", str(report.behind))
        table.add_row("Revision", report.revision[:10] if report.revision else "-")
        table.add_row("Conflicts", str(len(report.warnings)))
        return table

    @staticmethod
    def warnings_table(report: SyncReport) -> Table:
        table = Table(
            Column(header="Rule id", overflow="fold"),
            Column(header="Kept", width=7),
            Column(header="Local updated"),
            Column(header="Remote updated"),
            Column(header="Discarded", width=14),
            expand=True,
            header_style="bold",
        )
        for warning in report.warnings:
            table.add_row(
                warning.rule_id,
                warning.kept,
                format_timestamp(warning.local_updated_at) if warning.local_updated_at else "deleted",
                format_timestamp(warning.remote_updated_at) if warning.remote_updated_at else "deleted",
                warning.discarded_hash[:12],
            )
        return table


class FormatTable:
    @staticmethod
    def formats_table(labels: dict[Format, str]) -> Table:
        table = Table(
            Column(header="Format", width=12),
            Column(header="Layout", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for fmt, label in labels.items():
            table.add_row(fmt.value, label)
        return table

    @staticmethod
    def discovery_table(items: list[DiscoveredLocation]) -> Table:
        table = Table(
            Column(header="Format", width=12),
            Column(header="Location", overflow="ellipsis"),
            Column(header="Rules", width=6, justify="right"),
            Column(header="Next", overflow="fold"),
            expand=True,
            header_style="bold",
        )
        for item in items:
            row = item.as_dict()
            rules = row["rules"] if item.found else _styled(row["rules"], UIStyle.DIM.value)
            table.add_row(row["format"], row["root"], rules, row["note"])
        return table

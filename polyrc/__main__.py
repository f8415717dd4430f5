import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler

from polyrc import __version__
from polyrc.config import AppConfig, ConfigRepository
from polyrc.constants import APP_NAME, SCOPE_VALUES
from polyrc.discover import discover as discover_locations
from polyrc.errors import PolyrcError, UnknownFormatError, WriteError
from polyrc.formats import list_registered_formats
from polyrc.ir.models import Scope
from polyrc.models import FORMAT_LABELS, Format
from polyrc.service import ConversionService
from polyrc.tui import ConsoleUI
from polyrc.utils import compact_home_paths_in_text

T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger(APP_NAME)
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, show_time=verbose)
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _parse_format(_ctx: click.Context, _param: click.Parameter, value: Optional[str]) -> Optional[Format]:
    if value is None:
        return None
    try:
        return Format.parse(value)
    except UnknownFormatError as exc:
        raise click.BadParameter(str(exc))


def _parse_scope(_ctx: click.Context, _param: click.Parameter, value: Optional[str]) -> Optional[Scope]:
    return Scope(value.lower()) if value else None


def _format_option(flag: str, dest: str, help_text: str) -> Callable:
    return click.option(
        flag,
        dest,
        required=True,
        metavar="FORMAT",
        callback=_parse_format,
        help=help_text,
    )


def _scope_option() -> Callable:
    return click.option(
        "--scope",
        type=click.Choice(list(SCOPE_VALUES), case_sensitive=False),
        callback=_parse_scope,
        help="Only rules with this scope.",
    )


def _dry_run_option() -> Callable:
    return click.option(
        "--dry-run", is_flag=True, help="Report what would change without writing."
    )


def _error_message(exc: PolyrcError) -> str:
    message = compact_home_paths_in_text(str(exc))
    if isinstance(exc, WriteError) and exc.written:
        written = ", ".join(compact_home_paths_in_text(str(path)) for path in exc.written)
        message += f" (already written: {written})"
    return message


def _run(action: Callable[[], T]) -> T:
    try:
        return action()
    except PolyrcError as exc:
        raise click.ClickException(_error_message(exc))


def _config(obj: Dict[str, Any]) -> AppConfig:
    return _run(lambda: ConfigRepository().load())


def _service(obj: Dict[str, Any]) -> ConversionService:
    return ConversionService.from_config(_config(obj))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name=APP_NAME)
@click.option("-v", "--verbose", is_flag=True, help="Log debug details to stderr.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Convert AI coding assistant rules between formats and keep them in a synced store."""
    _configure_logging(verbose)
    ctx.obj = {"verbose": verbose}


@cli.command(help="Convert rules from one format to another.")
@_format_option("--from", "source", "Format to read.")
@_format_option("--to", "target", "Format to write.")
@click.option(
    "--input",
    "input_root",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory holding the source layout.",
)
@click.option(
    "--output",
    "output_root",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory to write the target layout into.",
)
@_scope_option()
@_dry_run_option()
@click.pass_obj
def convert(
    obj: Dict[str, Any],
    source: Format,
    target: Format,
    input_root: Path,
    output_root: Path,
    scope: Optional[Scope],
    dry_run: bool,
) -> None:
    ui = ConsoleUI(Console())
    config = _config(obj)
    service = ConversionService(backups=config.backups)
    report = _run(
        lambda: service.convert(
            source,
            target,
            input_root.expanduser(),
            output_root.expanduser(),
            scope=scope,
            dry_run=dry_run,
        )
    )
    ui.render_conversion(report, mode="convert:dry-run" if dry_run else "convert")


@cli.command(help="List supported formats.")
def formats() -> None:
    ui = ConsoleUI(Console())
    ui.render_formats({fmt: FORMAT_LABELS[fmt] for fmt in list_registered_formats()})


@cli.command(help="Create the rule store, optionally tracking a git remote.")
@click.option("--remote", "remote_url", help="Git remote URL to sync with.")
@click.option(
    "--store",
    "store_path",
    type=click.Path(path_type=Path),
    help="Store directory (default: ~/.config/polyrc/store).",
)
@click.pass_obj
def init(obj: Dict[str, Any], remote_url: Optional[str], store_path: Optional[Path]) -> None:
    ui = ConsoleUI(Console())
    repository = ConfigRepository()
    config = _config(obj)
    if store_path is not None:
        config = config.with_changes(store_path=store_path.expanduser().resolve())
    if remote_url:
        config = config.with_changes(remote_url=remote_url)
    repository.save(config)

    service = ConversionService.from_config(config)
    manifest, created = _run(lambda: service.init(remote_url=config.remote_url))
    ui.render_store_ready(config.store_path, created, manifest.remote_url or config.remote_url)


@cli.command(help="Read rules from a format and save them to the store.")
@_format_option("--from", "source", "Format to read.")
@click.option(
    "--input",
    "input_roots",
    type=click.Path(path_type=Path),
    multiple=True,
    help="Source directory; repeat for several (default: current directory).",
)
@click.option("--project", help="Store project for non-user rules.")
@_scope_option()
@_dry_run_option()
@click.option(
    "--prune",
    is_flag=True,
    help="Remove stored rules of this format and project that are no longer on disk.",
)
@click.pass_obj
def push(
    obj: Dict[str, Any],
    source: Format,
    input_roots: tuple[Path, ...],
    project: Optional[str],
    scope: Optional[Scope],
    dry_run: bool,
    prune: bool,
) -> None:
    ui = ConsoleUI(Console())
    service = _service(obj)
    roots = [root.expanduser() for root in input_roots] or [Path(".")]
    report = _run(
        lambda: service.push(
            source,
            roots,
            project=project,
            scope=scope,
            dry_run=dry_run,
            prune=prune,
        )
    )
    ui.render_push(report)
    if report.errors:
        raise click.exceptions.Exit(1)


@cli.command(help="Write rules from the store in a format.")
@_format_option("--to", "target", "Format to write.")
@click.option(
    "--output",
    "output_root",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory to write into.",
)
@click.option("--project", help="Only rules of this store project.")
@_scope_option()
@_dry_run_option()
@click.pass_obj
def pull(
    obj: Dict[str, Any],
    target: Format,
    output_root: Path,
    project: Optional[str],
    scope: Optional[Scope],
    dry_run: bool,
) -> None:
    ui = ConsoleUI(Console())
    service = _service(obj)
    report = _run(
        lambda: service.pull(
            target,
            output_root.expanduser(),
            project=project,
            scope=scope,
            dry_run=dry_run,
        )
    )
    ui.render_conversion(report, mode="pull:dry-run" if dry_run else "pull")


@cli.command(help="Reconcile the store with its git remote.")
@click.pass_obj
def sync(obj: Dict[str, Any]) -> None:
    ui = ConsoleUI(Console())
    service = _service(obj)
    report = _run(service.sync)
    ui.render_sync(report)


@cli.group(help="Inspect and rename store projects.")
def projects() -> None:
    pass


@projects.command("list", help="List store projects with rule counts.")
@click.pass_obj
def projects_list(obj: Dict[str, Any]) -> None:
    ui = ConsoleUI(Console())
    service = _service(obj)
    ui.render_projects(_run(service.list_projects))


@projects.command("rename", help="Rename a store project.")
@click.argument("old")
@click.argument("new")
@click.pass_obj
def projects_rename(obj: Dict[str, Any], old: str, new: str) -> None:
    ui = ConsoleUI(Console())
    service = _service(obj)
    moved = _run(lambda: service.rename_project(old, new))
    ui.render_project_renamed(old, new, moved)


@cli.command(help="Find user-level rule configuration on this machine.")
def discover() -> None:
    ui = ConsoleUI(Console())
    ui.render_discovery(discover_locations())


def main() -> int:
    try:
        cli(standalone_mode=False)
    except click.exceptions.Exit as exc:
        code = exc.exit_code
        return code if isinstance(code, int) else 1
    except click.ClickException as exc:
        exc.show()
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

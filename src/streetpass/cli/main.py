"""streetpass command-line interface."""

from __future__ import annotations

import functools
import logging
import sys
from pathlib import Path

import click
import orjson
from dateutil import parser as date_parser
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from streetpass import __version__, clients
from streetpass.config import Settings
from streetpass.contacts import find_exposures
from streetpass.core.errors import StreetPassError
from streetpass.core.result import PipelineResult, PipelineStatus, UploadStatus
from streetpass.forwarders import FORWARDERS

console = Console()


def get_status_style(status: PipelineStatus | UploadStatus) -> str:
    """Get Rich style for a pipeline or upload status."""
    styles = {
        "SUCCESS": "bold green",
        "STARTED": "bold yellow",
        "ERROR": "bold red",
        "NONE": "dim",
    }
    return styles.get(status.value, "")


def _print_result(target: str, result: PipelineResult) -> None:
    status_style = get_status_style(result.status)
    detail = result.message or result.file_path or ""
    console.print(
        f"{target}: [{status_style}]{result.status.value}[/{status_style}] [dim]{detail}[/dim]"
    )


@click.group()
@click.version_option(version=__version__, prog_name="streetpass")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Settings file (JSON)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """streetpass: process uploaded street-pass records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = {"config_path": config_path}


def load_clients(ctx: click.Context) -> clients.Clients:
    """Initialize the process-wide clients on first use."""
    root = ctx.find_root()
    state = root.obj.get("clients")
    if state is None:
        try:
            state = clients.initialize(Settings.from_file(root.obj["config_path"]))
        except (OSError, ValueError, StreetPassError) as e:
            raise click.ClickException(f"Cannot start streetpass: {e}") from e
        root.obj["clients"] = state
        root.call_on_close(clients.shutdown)
    return state


def pass_clients(f):
    """Pass the initialized clients to a command as its first argument."""

    @click.pass_context
    def new_func(ctx: click.Context, *args, **kwargs):
        return ctx.invoke(f, load_clients(ctx), *args, **kwargs)

    return functools.update_wrapper(new_func, f)


@cli.command()
@click.argument("object_name")
@click.option(
    "--file",
    "-f",
    "local_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Upload this local file as OBJECT_NAME first",
)
@pass_clients
def process(state: clients.Clients, object_name: str, local_file: str | None) -> None:
    """Handle a newly uploaded object: archive, validate and forward it.

    Example:

        streetpass process records/device-123.json --file ./device-123.json
    """
    if local_file:
        state.objects.write(
            state.settings.upload_bucket, object_name, Path(local_file).read_bytes()
        )

    result = state.pipeline.handle(object_name)
    _print_result(object_name, result)
    if result.failed:
        sys.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--no-token-timestamp",
    is_flag=True,
    help="Accept expired upload tokens (backfills)",
)
@pass_clients
def replay(state: clients.Clients, paths: tuple[str, ...], no_token_timestamp: bool) -> None:
    """Reprocess files already in the archive bucket.

    Example:

        streetpass replay records/20240115/device-123.json --no-token-timestamp
    """
    pipeline = state.pipeline
    failed = 0
    for path in paths:
        pipeline.audit.started(pipeline.router.file_name(path))
        result = pipeline.process(path, validate_token_timestamp=not no_token_timestamp)
        _print_result(path, result)
        failed += result.failed

    if failed:
        sys.exit(1)


@cli.command()
@click.option(
    "--status",
    "-s",
    type=click.Choice([status.value for status in UploadStatus], case_sensitive=False),
    help="Filter by status",
)
@click.option("--since", help="Only logs written after this date/time")
@click.option("--limit", "-n", type=int, default=20, help="Maximum entries to show")
@click.option("--stats", is_flag=True, help="Show statistics only")
@pass_clients
def logs(
    state: clients.Clients,
    status: str | None,
    since: str | None,
    limit: int,
    stats: bool,
) -> None:
    """Query the upload audit log.

    Example:

        streetpass logs --status ERROR --since 2024-01-15 --limit 10
    """
    audit = state.pipeline.audit

    if stats:
        audit_stats = audit.stats()

        table = Table(title="Upload Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Total Uploads", str(audit_stats["total"]))
        for name, count in audit_stats["by_status"].items():
            table.add_row(name.title(), str(count))
        table.add_row("Records Received", str(audit_stats["records_received"]))
        table.add_row("Summaries Sent", str(audit_stats["records_sent"]))
        for step, count in sorted(audit_stats["errors_by_step"].items()):
            table.add_row(f"Errors in {step}", str(count))

        console.print(table)
        return

    since_ts = date_parser.parse(since).timestamp() if since else None
    status_filter = UploadStatus(status.upper()) if status else None
    entries = list(audit.query(status=status_filter, since=since_ts, limit=limit))

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title=f"Upload Log ({len(entries)} entries)")
    table.add_column("File", no_wrap=True)
    table.add_column("Status")
    table.add_column("Id", style="dim")
    table.add_column("Received")
    table.add_column("Sent")
    table.add_column("Step / Error")

    for entry in entries:
        status_style = get_status_style(entry.status)
        failure = f"{entry.step}: {entry.error_message}" if entry.step else ""
        table.add_row(
            entry.file_name,
            f"[{status_style}]{entry.status.value}[/{status_style}]",
            entry.id or "-",
            str(entry.records_received) if entry.records_received is not None else "-",
            str(entry.records_sent) if entry.records_sent is not None else "-",
            failure,
        )

    console.print(table)


@cli.command()
@click.argument("uid")
@click.option("--min-contact", default="15m", show_default=True, help="Minimum contact time")
@click.option("--max-age", default="15d", show_default=True, help="Maximum identity age")
@pass_clients
def contacts(state: clients.Clients, uid: str, min_contact: str, max_age: str) -> None:
    """List stored contacts in which UID was seen long enough, recently enough."""
    try:
        report = find_exposures(
            state.documents,
            uid,
            config={"min_contact": min_contact, "max_age": max_age},
            collection=state.settings.contacts_collection,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    console.print_json(orjson.dumps(report.to_dict()).decode())


@cli.command()
@pass_clients
def info(state: clients.Clients) -> None:
    """Show streetpass configuration."""
    settings = state.settings
    tree = Tree("[bold]streetpass[/bold]")

    version_branch = tree.add("[cyan]Version[/cyan]")
    version_branch.add(f"streetpass: {__version__}")

    storage_branch = tree.add("[cyan]Storage[/cyan]")
    storage_branch.add(f"objects: {state.objects!r}")
    storage_branch.add(f"documents: {state.documents!r}")
    storage_branch.add(f"upload bucket: {settings.upload_bucket}/{settings.records_dir}")
    storage_branch.add(f"archive bucket: {settings.archive_bucket}")

    pipeline_branch = tree.add("[cyan]Pipeline[/cyan]")
    pipeline_branch.add(f"decryption keys: {len(state.keys)}")
    pipeline_branch.add(f"enforce validTo: {settings.enforce_valid_to}")
    pipeline_branch.add(f"contact gap: {settings.contact_gap_seconds:g}s")
    pipeline_branch.add(f"merge policy: {settings.merge_policy.value}")
    pipeline_branch.add(f"forwarder: {settings.forwarder}")

    forwarders_branch = tree.add("[cyan]Forwarders[/cyan]")
    for name, forwarder_cls in sorted(FORWARDERS.items()):
        forwarders_branch.add(f"{name} - {forwarder_cls.__name__}")

    console.print(tree)


if __name__ == "__main__":
    cli()

"""Command-line interface using Typer."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from pulse_sync import __version__
from pulse_sync.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="pulse-sync",
    help="Pulse Sync - reconcile and sync date-partitioned video metadata",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Pulse Sync v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Pulse Sync - merge, query, back up and prune daily video records."""
    pass


def _load_records(path: Path) -> list[Any]:
    """Read a JSON file holding a list of records or ``{"records": [...]}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[bold red]Cannot read {path}: {e}[/bold red]")
        raise typer.Exit(code=1)
    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        console.print(f"[bold red]{path} does not contain a list of records[/bold red]")
        raise typer.Exit(code=1)
    return data


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _print_report(report: dict[str, Any], title: str) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key in ("inserted", "updated", "unchanged", "rejectedCount"):
        table.add_row(key, str(report.get(key, 0)))
    table.add_row("dayKeys", ", ".join(report.get("dayKeys", [])) or "-")
    console.print(table)

    for item in report.get("rejected", [])[:20]:
        console.print(f"[yellow]#{item['index']} {item['reason']}[/yellow] [dim]{item['detail']}[/dim]")


def _get_engine():
    from pulse_sync.services.engine import get_engine

    return get_engine()


@app.command()
def ingest(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file of raw records"),
    collection_type: str = typer.Option("manual", "--collection-type", "-c", help="auto or manual"),
    enqueue: bool = typer.Option(False, "--enqueue", "-q", help="Run as a Celery task instead of in-process"),
) -> None:
    """Normalize and merge raw records into their day partitions."""
    from pulse_sync.domain.enums import CollectionType
    from pulse_sync.domain.errors import ReconciliationError

    records = _load_records(path)
    try:
        kind = CollectionType(collection_type.lower())
    except ValueError:
        console.print(f"[bold red]Unknown collection type: {collection_type}[/bold red]")
        raise typer.Exit(code=1)

    if enqueue:
        from pulse_sync.jobs.ingestion_tasks import ingest_records_task

        result = ingest_records_task.delay(records=records, collection_type=str(kind))
        console.print(f"[green]Task enqueued: {result.id}[/green]")
        return

    from pulse_sync.adapters.leases import get_lease_backend, hold_lease
    from pulse_sync.config import settings

    console.print(f"[bold blue]Ingesting {len(records)} records...[/bold blue]")
    try:
        with hold_lease(get_lease_backend(), kind, "cli", settings.lease_ttl_seconds):
            report = _get_engine().normalize_and_merge(records)
    except ReconciliationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)

    _print_report(report.to_dict(), "Ingest Result")


@app.command()
def query(
    days: list[str] = typer.Argument(..., help="Day keys (YYYY-MM-DD)"),
    limit: int = typer.Option(20, "--limit", "-l", help="Rows to show"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write all records as JSON"),
) -> None:
    """Show deduplicated records of one or more days."""
    try:
        records = _get_engine().query_range(days)
    except ValueError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)

    if output is not None:
        _write_json(output, [record.to_dict() for record in records])
        console.print(f"[green]Wrote {len(records)} records to {output}[/green]")
        return

    table = Table(title=f"Records ({len(records)})")
    table.add_column("Day", style="cyan")
    table.add_column("Video")
    table.add_column("Title")
    table.add_column("Views", justify="right")
    table.add_column("Status")
    table.add_column("Category")
    for record in records[:limit]:
        table.add_row(
            record.day_key,
            record.video_id,
            (record.title or "")[:40],
            f"{record.view_count:,}",
            str(record.status),
            record.category or "-",
        )
    console.print(table)


@app.command()
def summary(
    count: int = typer.Option(7, "--days", "-d", help="Number of recent days"),
) -> None:
    """Show per-day totals and classification progress."""
    engine = _get_engine()
    summaries = engine.summarize_days(engine.recent_day_keys(count))

    if not summaries:
        console.print("[yellow]No records stored[/yellow]")
        return

    table = Table(title="Days")
    table.add_column("Day", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Classified", justify="right")
    table.add_column("Pending", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Progress", justify="right")
    for s in summaries:
        table.add_row(
            s.day_key,
            str(s.total),
            str(s.classified),
            str(s.pending),
            f"{s.total_views:,}",
            f"{s.progress:.0%}",
        )
    console.print(table)


@app.command()
def sweep(
    retention_days: Optional[int] = typer.Option(None, "--retention-days", "-r", help="Override retention"),
) -> None:
    """Delete day partitions older than the retention horizon."""
    from pulse_sync.domain.errors import RetentionConflict

    try:
        result = _get_engine().sweep(retention_days)
    except RetentionConflict as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]Deleted {result.deleted} records before {result.cutoff} "
        f"(retention {result.retention_days} days)[/green]"
    )


@app.command()
def export(
    output: Path = typer.Argument(..., dir_okay=False, help="Backup file to write"),
) -> None:
    """Write every stored record to a JSON backup."""
    records = _get_engine().export_snapshot()
    _write_json(output, {"records": [record.to_dict() for record in records], "count": len(records)})
    console.print(f"[green]Exported {len(records)} records to {output}[/green]")


@app.command()
def restore(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Backup file to restore"),
) -> None:
    """Merge a backup into the store; restoring twice changes nothing."""
    from pulse_sync.domain.errors import ReconciliationError

    snapshot = _load_records(path)
    try:
        report = _get_engine().restore_idempotent(snapshot)
    except ReconciliationError as e:
        console.print(f"[bold red]Restore failed, nothing committed: {e}[/bold red]")
        raise typer.Exit(code=1)

    _print_report(report.to_dict(), f"Restore Result ({report.restored}/{report.snapshot_size} changed)")


@app.command()
def push(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file of local changes"),
    remote: Optional[str] = typer.Option(None, "--remote", help="Remote API base URL"),
    pending_file: Optional[Path] = typer.Option(
        None, "--pending-file", help="Where to keep unacknowledged records (default: overwrite input)"
    ),
) -> None:
    """Push local changes to a remote server in chunks."""
    from pulse_sync.adapters.remote import RemoteSyncClient
    from pulse_sync.utils import run_async

    records = _load_records(path)

    async def _push():
        async with RemoteSyncClient(base_url=remote) as client:
            return await client.push(records)

    outcome = run_async(_push())
    console.print(f"[green]Acknowledged {outcome.acknowledged} of {len(records)} records[/green]")

    if outcome.pending:
        target = pending_file or path
        _write_json(target, outcome.pending)
        console.print(f"[bold red]Push incomplete: {outcome.error}[/bold red]")
        console.print(f"[dim]{len(outcome.pending)} records kept in {target}[/dim]")
        raise typer.Exit(code=1)


@app.command()
def pull(
    output: Path = typer.Argument(..., dir_okay=False, help="File to write pulled records to"),
    since: Optional[datetime] = typer.Option(None, "--since", help="Only records updated after this instant"),
    remote: Optional[str] = typer.Option(None, "--remote", help="Remote API base URL"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up after this many seconds"),
) -> None:
    """Pull records changed on a remote server."""
    from pulse_sync.adapters.remote import RemoteRequestError, RemoteSyncClient
    from pulse_sync.domain.errors import DeadlineExceeded
    from pulse_sync.utils import run_async

    async def _pull():
        async with RemoteSyncClient(base_url=remote) as client:
            if since is not None and not await client.has_changes(since):
                return None
            return await client.pull(since)

    try:
        result = run_async(_pull(), timeout=timeout)
    except (RemoteRequestError, DeadlineExceeded) as e:
        console.print(f"[bold red]Pull failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    if result is None:
        console.print("[dim]No changes[/dim]")
        return

    _write_json(output, {"records": result.records, "syncTime": result.sync_time.isoformat()})
    console.print(f"[green]Pulled {len(result.records)} records; next --since {result.sync_time.isoformat()}[/green]")


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from pulse_sync.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Database", "✓" if data.get("database") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker(
    beat: bool = typer.Option(False, "--beat", "-B", help="Also run the beat scheduler"),
) -> None:
    """Start a Celery worker (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    command = [sys.executable, "-m", "celery", "-A", "pulse_sync.worker", "worker", "--loglevel=info"]
    if beat:
        command.append("--beat")
    subprocess.run(command, check=True)


if __name__ == "__main__":
    app()

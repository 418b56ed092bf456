"""CLI for pgbackup (Typer + Rich)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError
from pydantic_settings import SettingsError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt
from rich.table import Table

from pgbackup.artifacts import latest_artifact, list_artifacts
from pgbackup.config import BackupConfig
from pgbackup.database import check_connection, restore_artifact
from pgbackup.errors import BackupError, ConfigError
from pgbackup.models import BackupArtifact
from pgbackup.runner import run_backup
from pgbackup.settings import get_settings

app = typer.Typer(
    name="pgbackup",
    help="Compressed, retained PostgreSQL backups.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("pgbackup")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    # .env from the working directory, same as `source .env` before a cron job
    load_dotenv(find_dotenv(usecwd=True))
    try:
        log = get_settings().logging
    except (ValidationError, SettingsError) as e:
        err_console.print(f"[red]Error:[/] invalid configuration\n{escape(str(e))}", highlight=False)
        raise typer.Exit(2)
    logging.basicConfig(
        level=logging.DEBUG if verbose else log.level,
        format=log.format,
        datefmt=log.datefmt,
        force=True,
    )


def _load_config() -> BackupConfig:
    return BackupConfig.from_settings()


def _status_line(target: Console, message: str) -> None:
    """One unwrapped, unstyled line for cron/log scrapers."""
    target.print(message, soft_wrap=True, markup=False, highlight=False)


def _fail(message: str, code: int = 1) -> NoReturn:
    _status_line(err_console, f"Backup failed: {message}")
    raise typer.Exit(code)


def _format_size(size_bytes: int) -> str:
    """Human-readable file size."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.2f} MB"


def _format_age(dt: datetime) -> str:
    """Human-readable age from a datetime."""
    delta = datetime.now(UTC) - dt
    hours = delta.total_seconds() / 3600
    if hours < 1:
        return f"{int(delta.total_seconds() / 60)}m ago"
    elif hours < 24:
        return f"{hours:.1f}h ago"
    else:
        return f"{delta.days}d ago"


def _artifact_table(title: str, entries: list[BackupArtifact], with_age: bool = True) -> Table:
    table = Table(title=title)
    table.add_column("#", style="dim", width=4)
    table.add_column("Database", style="cyan")
    table.add_column("Filename")
    table.add_column("Size", justify="right")
    table.add_column("Date")
    if with_age:
        table.add_column("Age", style="dim")

    for i, entry in enumerate(entries, 1):
        row = [
            str(i),
            entry.database_name,
            entry.filename,
            _format_size(entry.size_bytes),
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        ]
        if with_age:
            row.append(_format_age(entry.created_at))
        table.add_row(*row)
    return table


# ── backup run ──────────────────────────────────────────────────────────


@app.command()
def run(
    db: Annotated[Optional[str], typer.Option("--db", help="Database name (default: POSTGRES_DB)")] = None,
    backup_dir: Annotated[Optional[Path], typer.Option("--dir", "-d", help="Backup directory")] = None,
    retention_days: Annotated[
        Optional[int], typer.Option("--retention-days", "-r", help="Delete backups older than this")
    ] = None,
    container: Annotated[
        Optional[str], typer.Option("--container", "-c", help="Run pg_dump inside this docker container")
    ] = None,
) -> None:
    """Run one backup cycle: dump, compress, publish, apply retention."""
    config = _load_config()
    if db:
        config.db_name = db
    if backup_dir:
        config.backup_dir = backup_dir
    if retention_days is not None:
        config.retention_days = retention_days
    if container is not None:
        config.container = container

    try:
        artifact = run_backup(
            config.connection,
            config.backup_dir,
            config.retention,
            container=config.container,
            compression_level=config.compression_level,
            dump_timeout=config.dump_timeout,
        )
    except ConfigError as e:
        _fail(str(e), code=2)
    except BackupError as e:
        logger.debug("Backup cycle failed", exc_info=True)
        _fail(str(e))

    _status_line(console, f"Backup completed: {artifact.path}")


# ── backup list ─────────────────────────────────────────────────────────


@app.command("list")
def list_backups(
    db: Annotated[Optional[str], typer.Option("--db", help="Filter by database")] = None,
    backup_dir: Annotated[Optional[Path], typer.Option("--dir", "-d", help="Backup directory")] = None,
) -> None:
    """List available backups."""
    config = _load_config()
    entries = list_artifacts(backup_dir or config.backup_dir, db)

    if not entries:
        console.print("[yellow]No backups found.[/]")
        return

    console.print(_artifact_table("Available Backups", entries))


# ── backup restore ──────────────────────────────────────────────────────


@app.command()
def restore(
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Restore from this backup file")] = None,
    target: Annotated[
        Optional[str], typer.Option("--target", "-t", help="Target database name (default: configured)")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompt")] = False,
) -> None:
    """Restore a database from backup."""
    config = _load_config()
    if target:
        config.db_name = target

    if file is None:
        entries = list_artifacts(config.backup_dir, config.db_name)
        if not entries:
            console.print("[yellow]No backups found.[/]")
            raise typer.Exit(1)

        # Newest first so the default choice is the latest backup
        entries = list(reversed(entries))
        console.print(_artifact_table("Select a backup to restore", entries, with_age=False))
        choice = IntPrompt.ask("\nSelect backup number", default=1)
        if choice < 1 or choice > len(entries):
            console.print("[red]Invalid selection.[/]")
            raise typer.Exit(1)
        file = entries[choice - 1].path

    if not file.exists():
        console.print(f"[red]Error:[/] File not found: {file}")
        raise typer.Exit(1)

    connection = config.connection
    try:
        connection.validate()
    except ConfigError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(2)

    console.print(f"Backup:   [bold]{file.name}[/] ({_format_size(file.stat().st_size)})")
    console.print(f"Target:   [bold]{connection.describe()}[/]")
    if config.container:
        console.print(f"Container: [bold]{config.container}[/]")

    if not yes and not Confirm.ask("\n[yellow]This will overwrite data. Continue?[/]"):
        console.print("Aborted.")
        raise typer.Exit(0)

    try:
        with console.status("Restoring..."):
            restore_artifact(file, connection, container=config.container)
    except BackupError as e:
        console.print(f"[red]Restore failed:[/] {e}")
        raise typer.Exit(1)

    console.print("[green]Restore completed successfully.[/]")


# ── backup status ───────────────────────────────────────────────────────


@app.command()
def status() -> None:
    """Show backup configuration and the latest backup."""
    config = _load_config()
    connection = config.connection

    lines = []
    lines.append(f"[bold]Database:[/]       {connection.describe()}")
    lines.append(f"[bold]Password:[/]       {'set' if connection.password else '[red]not set[/]'}")
    if config.container:
        lines.append(f"[bold]Container:[/]      {config.container}")
    lines.append(f"[bold]Backup Dir:[/]     {config.backup_dir.resolve()}")
    lines.append(f"[bold]Retention:[/]      {config.retention_days} days")
    lines.append(f"[bold]Compression:[/]    gzip -{config.compression_level}")

    latest = latest_artifact(config.backup_dir, config.db_name)
    if latest:
        lines.append(
            f"[bold]Last Backup:[/]    {latest.created_at.strftime('%Y-%m-%d %H:%M UTC')} "
            f"({_format_age(latest.created_at)}, {_format_size(latest.size_bytes)})"
        )
    else:
        lines.append("[bold]Last Backup:[/]    [dim]never[/]")

    entries = list_artifacts(config.backup_dir, config.db_name)
    lines.append(f"[bold]Total Backups:[/]  {len(entries)}")

    console.print(Panel("\n".join(lines), title="Backup Status"))


# ── backup check ────────────────────────────────────────────────────────


@app.command()
def check() -> None:
    """Check that the database is reachable."""
    config = _load_config()
    connection = config.connection
    try:
        connection.validate()
    except ConfigError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(2)

    with console.status(f"Connecting to {connection.describe()}..."):
        ok = check_connection(
            connection,
            attempts=config.db_retry_attempts,
            delay=config.db_retry_delay,
            container=config.container,
        )

    if not ok:
        console.print(f"[red]Failed:[/] Could not connect to {connection.describe()}")
        raise typer.Exit(1)
    console.print(f"[green]OK:[/] {connection.describe()}")

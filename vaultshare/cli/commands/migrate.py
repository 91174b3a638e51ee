"""
vaultshare migrate command - Run database migrations.

Applies pending SQL migrations to your Supabase database.
"""

import asyncio
from typing import Optional

import typer
from rich.table import Table

from ...config import load_config
from ...migrations.manager import EXEC_SQL_FUNCTION, MigrationManager
from ...utils.supabase import VaultShareSupabaseClient
from .common import console


def _load_config_or_exit():
    try:
        return load_config()
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        console.print("\nSet the VAULTSHARE_* environment variables or add them to .env")
        raise typer.Exit(1)


def migrate_command(
    target: Optional[str] = typer.Argument(
        None,
        help="Target migration version (default: latest)",
    ),
) -> None:
    """
    Run database migrations.

    Applies all pending migrations to your Supabase database.

    Example:
        $ vaultshare migrate           # Run all pending migrations
        $ vaultshare migrate 003       # Run migrations up to version 003
    """
    console.print("\n[bold cyan]Vaultshare Migration[/bold cyan]\n")

    config = _load_config_or_exit()
    console.print("[green]✓[/green] Configuration loaded")

    asyncio.run(_run_migrations(config, target))


async def _run_migrations(config, target: Optional[str]) -> None:
    """
    Internal function to run migrations asynchronously.

    Args:
        config: Vaultshare configuration
        target: Optional target migration version
    """
    client = await VaultShareSupabaseClient.create(config)
    console.print("[green]✓[/green] Connected to Supabase")

    manager = MigrationManager(client)

    try:
        applied = await manager.migrate(target=target)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        console.print(
            f"\nMigrations run through the [cyan]{EXEC_SQL_FUNCTION}(query text)[/cyan] "
            "Postgres function. Create it once in the Supabase SQL editor, or apply"
        )
        console.print(
            "[cyan]vaultshare/migrations/versions/001_initial_schema.sql[/cyan] by hand."
        )
        raise typer.Exit(1)
    finally:
        await client.close()

    if not applied:
        console.print("[green]✓[/green] Database is up to date")
        return

    for migration in applied:
        console.print(f"[green]✓[/green] Applied {migration.version}_{migration.name}")


def status_command() -> None:
    """
    Show migration status.

    Displays which migrations have been applied and which are pending.

    Example:
        $ vaultshare status
    """
    console.print("\n[bold cyan]Vaultshare Migration Status[/bold cyan]\n")

    config = _load_config_or_exit()

    asyncio.run(_show_status(config))


async def _show_status(config) -> None:
    """
    Internal function to show migration status.

    Args:
        config: Vaultshare configuration
    """
    client = await VaultShareSupabaseClient.create(config)
    try:
        status = await MigrationManager(client).status()
    finally:
        await client.close()

    table = Table(title="Migration Status")
    table.add_column("Status", style="cyan", width=8)
    table.add_column("Version", style="magenta")
    table.add_column("Name", style="green")

    for migration, is_applied in status:
        status_style = "green" if is_applied else "yellow"
        table.add_row(
            f"[{status_style}]{'✓' if is_applied else 'pending'}[/{status_style}]",
            migration.version,
            migration.name,
        )

    console.print(table)

    applied_count = sum(1 for _, is_applied in status if is_applied)
    console.print(f"\nTotal: {len(status)} migrations")
    console.print(f"[green]Applied: {applied_count}[/green]")
    if applied_count < len(status):
        console.print(f"[yellow]Pending: {len(status) - applied_count}[/yellow]")

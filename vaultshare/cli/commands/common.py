"""
Helpers shared by the CLI command groups.
"""

import asyncio
from typing import NoReturn
from uuid import UUID

import typer
from rich.console import Console

console = Console()

ACTING_USER_HELP = "User ID the command acts on behalf of"


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def parse_id(value: str, label: str = "ID") -> UUID:
    """Parse a UUID argument, exiting with a readable message when malformed."""
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Error:[/red] {label} is not a valid UUID: {value}")
        raise typer.Exit(1)


def fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def short(value) -> str:
    return str(value)[:8]


def when(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"

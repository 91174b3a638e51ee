"""
Vaultshare CLI - Command-line interface for shared secret vaults.

Usage:
    vaultshare migrate           Run database migrations
    vaultshare status            Show migration status
    vaultshare vaults            Manage vaults and release policies
    vaultshare invites           Manage vault invitations
    vaultshare items             Browse and manage vault items

Commands that act inside a vault take ``--as <user-id>``, the user on whose
behalf the command runs.
"""

import typer

from .commands import invites, items, migrate, vaults

# Create the main Typer app
app = typer.Typer(
    name="vaultshare",
    help="Shared secret vaults with release policies, on Supabase",
    add_completion=False,
)

# Register top-level commands
app.command(name="migrate")(migrate.migrate_command)
app.command(name="status")(migrate.status_command)

# Subcommand groups
app.add_typer(vaults.app, name="vaults")
app.add_typer(invites.app, name="invites")
app.add_typer(items.app, name="items")


@app.callback()
def callback() -> None:
    """
    Vaultshare - shared secret vaults for Python.

    Passwords, notes, links, wallets and documents, shared on your terms.
    """
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

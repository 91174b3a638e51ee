"""
CLI commands for vault management.
"""

from datetime import datetime
from typing import Optional

import typer
from rich.table import Table

from ...client import VaultShare
from ...exceptions import VaultShareError
from ...policies.models import PolicyType
from .common import ACTING_USER_HELP, console, fail, parse_id, run_async, short, when

app = typer.Typer(help="Manage vaults")


@app.command("create")
def vaults_create_command(
    name: str = typer.Argument(..., help="Vault name"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Vault description"),
    policy: PolicyType = typer.Option(PolicyType.IMMEDIATE, "--policy", "-p", help="Release policy"),
    release_date: Optional[datetime] = typer.Option(
        None, "--release-date", help="Release date for time-based policies (UTC)"
    ),
    expires_at: Optional[datetime] = typer.Option(
        None, "--expires-at", help="Expiry date for expiry-based policies (UTC)"
    ),
    note: Optional[str] = typer.Option(None, "--note", help="Note attached to the policy"),
) -> None:
    """Create a vault owned by the acting user."""
    owner_id = parse_id(user_id, "User ID")

    async def _create():
        vaultshare = await VaultShare.create()
        try:
            vault = await vaultshare.vaults.create(
                user_id=owner_id,
                name=name,
                description=description,
                policy_type=policy,
                release_date=release_date,
                expires_at=expires_at,
                note=note,
            )
            console.print(f"[green]✓[/green] Vault created: {vault.name}")
            console.print(f"  ID: {vault.id}")
            console.print(f"  Policy: {policy.value} ({vault.release_status.value})")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_create())


@app.command("list")
def vaults_list_command(
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """List the vaults the acting user belongs to."""
    caller_id = parse_id(user_id, "User ID")

    async def _list():
        vaultshare = await VaultShare.create()
        try:
            vaults = await vaultshare.vaults.list_for_user(caller_id)

            if not vaults:
                console.print("[yellow]No vaults found[/yellow]")
                return

            table = Table(title="Vaults")
            table.add_column("Name", style="cyan")
            table.add_column("Privilege", style="magenta")
            table.add_column("Accessible", style="green")
            table.add_column("Status", style="yellow")
            table.add_column("ID", style="dim")

            for vault in vaults:
                table.add_row(
                    vault.name,
                    vault.user_privilege.value,
                    "yes" if vault.is_accessible else "no",
                    vault.release_status.value if vault.release_status else "-",
                    short(vault.id),
                )

            console.print(table)
        finally:
            await vaultshare.close()

    run_async(_list())


@app.command("show")
def vaults_show_command(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Show one vault as the acting user sees it."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _show():
        vaultshare = await VaultShare.create()
        try:
            vault = await vaultshare.vaults.get(vid, caller_id)
            console.print(f"[bold cyan]{vault.name}[/bold cyan]")
            if vault.description:
                console.print(f"  {vault.description}")
            console.print(f"  ID: {vault.id}")
            console.print(f"  Status: {vault.status.value}")
            console.print(f"  Your privilege: {vault.user_privilege.value}")
            console.print(f"  Accessible: {'yes' if vault.is_accessible else 'no'}")
            if vault.policy:
                console.print(f"  Policy: {vault.policy.policy_type.value}")
                console.print(f"  Release status: {vault.policy.release_status.value}")
                if vault.policy.release_date:
                    console.print(f"  Release date: {when(vault.policy.release_date)}")
                if vault.policy.expires_at:
                    console.print(f"  Expires: {when(vault.policy.expires_at)}")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_show())


@app.command("release")
def vaults_release_command(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Open a manual-release vault to its members."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _release():
        vaultshare = await VaultShare.create()
        try:
            policy = await vaultshare.policies.release_manually(vid, caller_id)
            console.print(f"[green]✓[/green] Vault {short(vid)}... released")
            console.print(f"  Released at: {when(policy.released_at)}")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_release())


@app.command("members")
def vaults_members_command(
    vault_id: str = typer.Argument(..., help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    all_members: bool = typer.Option(False, "--all", "-a", help="Include members who left or were removed"),
) -> None:
    """List the members of a vault."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _members():
        vaultshare = await VaultShare.create()
        try:
            members = await vaultshare.members.list_by_vault(
                vid, caller_id, include_inactive=all_members
            )
            users = await vaultshare.users.get_many([m.user_id for m in members])

            table = Table(title="Members")
            table.add_column("User", style="cyan")
            table.add_column("Privilege", style="magenta")
            table.add_column("Status", style="green")
            table.add_column("Joined", style="yellow")

            for member in members:
                user = users.get(member.user_id)
                table.add_row(
                    user.label if user else str(member.user_id),
                    member.privilege.value,
                    member.status.value,
                    when(member.joined_at),
                )

            console.print(table)
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_members())

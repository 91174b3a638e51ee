"""
CLI commands for invitation management.
"""

from typing import Optional

import typer
from rich.table import Table

from ...client import VaultShare
from ...exceptions import VaultShareError
from ...vaults.models import Privilege
from .common import ACTING_USER_HELP, console, fail, parse_id, run_async, short, when

app = typer.Typer(help="Manage vault invitations")


@app.command("send")
def invites_send_command(
    email: str = typer.Argument(..., help="Email address to invite"),
    vault_id: str = typer.Option(..., "--vault", "-v", help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    privilege: Privilege = typer.Option(Privilege.MEMBER, "--privilege", "-p", help="Privilege granted on acceptance"),
    note: Optional[str] = typer.Option(None, "--note", help="Personal note for the invitee"),
) -> None:
    """Invite someone to a vault by e-mail."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _send():
        vaultshare = await VaultShare.create()
        try:
            invite = await vaultshare.invites.create(
                vid, email, caller_id, privilege=privilege, note=note
            )
            console.print(f"[green]✓[/green] Invitation created for {invite.invitee_email}")
            console.print(f"  ID: {invite.id}")
            console.print(f"  Status: {invite.status.value}")
            console.print(f"  Token: {invite.token}")
            console.print(f"  Expires: {when(invite.expires_at)}")
        except (VaultShareError, ValueError) as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_send())


@app.command("list")
def invites_list_command(
    vault_id: str = typer.Option(..., "--vault", "-v", help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    open_only: bool = typer.Option(False, "--open", "-o", help="Only pending or sent invites"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum results"),
) -> None:
    """List invitations for a vault."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _list():
        vaultshare = await VaultShare.create()
        try:
            invites = await vaultshare.invites.list_by_vault(
                vid, caller_id, open_only=open_only, limit=limit
            )

            if not invites:
                console.print("[yellow]No invitations found[/yellow]")
                return

            table = Table(title="Invitations")
            table.add_column("Email", style="cyan")
            table.add_column("Privilege", style="magenta")
            table.add_column("Status", style="green")
            table.add_column("Expires", style="yellow")
            table.add_column("ID", style="dim")

            for invite in invites:
                table.add_row(
                    invite.invitee_email,
                    invite.privilege.value,
                    invite.status.value,
                    when(invite.expires_at),
                    short(invite.id),
                )

            console.print(table)
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_list())


@app.command("cancel")
def invites_cancel_command(
    invite_id: str = typer.Argument(..., help="Invitation ID to cancel"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Cancel an open invitation."""
    iid = parse_id(invite_id, "Invitation ID")
    caller_id = parse_id(user_id, "User ID")

    async def _cancel():
        vaultshare = await VaultShare.create()
        try:
            invite = await vaultshare.invites.cancel(iid, caller_id)
            console.print(f"[green]✓[/green] Invitation {short(iid)}... is {invite.status.value}")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_cancel())


@app.command("resend")
def invites_resend_command(
    invite_id: str = typer.Argument(..., help="Invitation ID to resend"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Resend an invitation with a new token and expiration."""
    iid = parse_id(invite_id, "Invitation ID")
    caller_id = parse_id(user_id, "User ID")

    async def _resend():
        vaultshare = await VaultShare.create()
        try:
            invite = await vaultshare.invites.resend(iid, caller_id)
            console.print(f"[green]✓[/green] Invitation resent to {invite.invitee_email}")
            console.print(f"  New token: {invite.token}")
            console.print(f"  New expiration: {when(invite.expires_at)}")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_resend())


@app.command("accept")
def invites_accept_command(
    token: str = typer.Argument(..., help="Invitation token"),
    email: str = typer.Option(..., "--email", "-e", help="Email address of the accepting user"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Accept an invitation using its token."""
    caller_id = parse_id(user_id, "User ID")

    async def _accept():
        vaultshare = await VaultShare.create()
        try:
            invite = await vaultshare.invites.accept(token, email, caller_id)
            console.print("[green]✓[/green] Invitation accepted")
            console.print(f"  Vault: {invite.vault_id}")
            console.print(f"  Privilege: {invite.privilege.value}")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_accept())

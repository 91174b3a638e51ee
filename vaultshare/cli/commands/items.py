"""
CLI commands for vault items.

Secret fields are masked unless ``--reveal`` is given.
"""

from typing import Optional

import typer
from rich.table import Table

from ...client import VaultShare
from ...exceptions import VaultShareError
from ...items.models import ItemType, VaultItemView, payload_field
from .common import ACTING_USER_HELP, console, fail, parse_id, run_async, short, when

app = typer.Typer(help="Browse and manage vault items")

_SECRET_FIELDS = {"password", "secret", "notes", "content"}
_MASK = "••••••••"


def _print_payload(item: VaultItemView, reveal: bool) -> None:
    if item.item_type == ItemType.DOCUMENT:
        if item.document:
            console.print(f"  File: {item.document.file_name} ({item.document.file_size} bytes)")
            console.print(f"  Content type: {item.document.content_type}")
            if item.document.download_url:
                console.print(f"  Download: {item.document.download_url}")
        return

    payload = getattr(item, payload_field(item.item_type))
    if payload is None:
        return

    for field, value in payload.model_dump(mode="json").items():
        if value is None:
            continue
        if field in _SECRET_FIELDS and not reveal:
            value = _MASK
        console.print(f"  {field}: {value}")


@app.command("list")
def items_list_command(
    vault_id: str = typer.Option(..., "--vault", "-v", help="Vault ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    item_type: Optional[ItemType] = typer.Option(None, "--type", "-t", help="Only items of this type"),
    deleted: bool = typer.Option(False, "--deleted", help="List soft-deleted items instead"),
) -> None:
    """List the items of a vault the acting user can see."""
    vid = parse_id(vault_id, "Vault ID")
    caller_id = parse_id(user_id, "User ID")

    async def _list():
        vaultshare = await VaultShare.create()
        try:
            if deleted:
                items = await vaultshare.items.list_deleted(vid, caller_id)
            else:
                items = await vaultshare.items.list_by_vault(vid, caller_id, item_type=item_type)

            if not items:
                console.print("[yellow]No items found[/yellow]")
                return

            table = Table(title="Deleted items" if deleted else "Items")
            table.add_column("Title", style="cyan")
            table.add_column("Type", style="magenta")
            if deleted:
                table.add_column("Deleted", style="yellow")
            else:
                table.add_column("Permission", style="green")
                table.add_column("Updated", style="yellow")
            table.add_column("ID", style="dim")

            for item in items:
                if deleted:
                    table.add_row(item.title, item.item_type.value, when(item.deleted_at), short(item.id))
                else:
                    table.add_row(
                        item.title,
                        item.item_type.value,
                        item.user_permission.value,
                        when(item.updated_at),
                        short(item.id),
                    )

            console.print(table)
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_list())


@app.command("show")
def items_show_command(
    item_id: str = typer.Argument(..., help="Item ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
    reveal: bool = typer.Option(False, "--reveal", "-r", help="Print secret fields in clear"),
) -> None:
    """Show one item, decrypted."""
    iid = parse_id(item_id, "Item ID")
    caller_id = parse_id(user_id, "User ID")

    async def _show():
        vaultshare = await VaultShare.create()
        try:
            item = await vaultshare.items.get(iid, caller_id)
            console.print(f"[bold cyan]{item.title}[/bold cyan] ({item.item_type.value})")
            if item.description:
                console.print(f"  {item.description}")
            console.print(f"  ID: {item.id}")
            console.print(f"  Your permission: {item.user_permission.value}")
            _print_payload(item, reveal)
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_show())


@app.command("delete")
def items_delete_command(
    item_id: str = typer.Argument(..., help="Item ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Soft-delete an item. It can be restored for a limited time."""
    iid = parse_id(item_id, "Item ID")
    caller_id = parse_id(user_id, "User ID")

    async def _delete():
        vaultshare = await VaultShare.create()
        try:
            if await vaultshare.items.delete(iid, caller_id):
                console.print(f"[green]✓[/green] Item {short(iid)}... deleted")
            else:
                console.print(f"[yellow]Item {short(iid)}... was already deleted[/yellow]")
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_delete())


@app.command("restore")
def items_restore_command(
    item_id: str = typer.Argument(..., help="Item ID"),
    user_id: str = typer.Option(..., "--as", help=ACTING_USER_HELP),
) -> None:
    """Restore a soft-deleted item."""
    iid = parse_id(item_id, "Item ID")
    caller_id = parse_id(user_id, "User ID")

    async def _restore():
        vaultshare = await VaultShare.create()
        try:
            if await vaultshare.items.restore(iid, caller_id):
                console.print(f"[green]✓[/green] Item {short(iid)}... restored")
            else:
                console.print(f"[yellow]Item {short(iid)}... cannot be restored[/yellow]")
                raise typer.Exit(1)
        except VaultShareError as e:
            fail(e)
        finally:
            await vaultshare.close()

    run_async(_restore())

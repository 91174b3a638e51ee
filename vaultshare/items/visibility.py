"""
Per-item visibility for vaultshare.

Who may see or edit an item is decided by rows in vaultshare_item_visibilities,
one per (item, member). The vault owner is the exception: the owner can
always edit every item, whatever the table says.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from uuid import UUID

from ..utils.timeutils import to_iso
from ..vaults.models import Vault, VaultMember
from .models import ItemPermission, ItemStatus, ItemVisibility, ItemVisibilityRequest

if TYPE_CHECKING:
    from ..client import VaultShare


def effective_permission(
    is_owner: bool,
    member: Optional[VaultMember],
    permission: Optional[ItemPermission],
) -> Optional[ItemPermission]:
    """
    Resolve what a caller may do with one item.

    Args:
        is_owner: Caller owns the vault
        member: Caller's member row, if any
        permission: Stored visibility for the caller's member row, if any

    Returns:
        EDIT for the owner, otherwise the stored permission of an active
        member, otherwise None
    """
    if is_owner:
        return ItemPermission.EDIT
    if member is None or not member.is_active:
        return None
    return permission


def _explicit_grants(
    active: Dict[UUID, VaultMember],
    owner_id: UUID,
    explicit: Iterable[ItemVisibilityRequest],
) -> Dict[UUID, ItemPermission]:
    grants = {}
    for entry in explicit:
        member = active.get(entry.member_id)
        # Unknown and inactive members are ignored, owner entries are forced below
        if member is None or member.user_id == owner_id:
            continue
        grants[member.id] = entry.permission
    return grants


def _owner_grant(active: Dict[UUID, VaultMember], owner_id: UUID) -> Dict[UUID, ItemPermission]:
    return {
        member.id: ItemPermission.EDIT
        for member in active.values()
        if member.user_id == owner_id
    }


def default_visibilities(
    members: Iterable[VaultMember],
    owner_id: UUID,
    creator_id: UUID,
    explicit: Optional[Iterable[ItemVisibilityRequest]] = None,
) -> Dict[UUID, ItemPermission]:
    """
    Visibility rows for a new item, keyed by member id.

    The creator and the owner get EDIT and every other active member VIEW.
    Explicit entries override that for the members they name, except the
    owner, who always keeps EDIT. When one member is named twice the last
    entry wins.
    """
    active = {member.id: member for member in members if member.is_active}

    grants = {
        member.id: (
            ItemPermission.EDIT
            if member.user_id in (owner_id, creator_id)
            else ItemPermission.VIEW
        )
        for member in active.values()
    }
    grants.update(_explicit_grants(active, owner_id, explicit or []))
    grants.update(_owner_grant(active, owner_id))
    return grants


def replacement_visibilities(
    members: Iterable[VaultMember],
    owner_id: UUID,
    explicit: Iterable[ItemVisibilityRequest],
) -> Dict[UUID, ItemPermission]:
    """
    Visibility rows replacing an item's current ones, keyed by member id.

    Exactly the explicit entries plus the owner's EDIT row; members left
    out lose access.
    """
    active = {member.id: member for member in members if member.is_active}

    grants = _explicit_grants(active, owner_id, explicit)
    grants.update(_owner_grant(active, owner_id))
    return grants


class VisibilityManager:
    """
    Reads and writes the visibility matrix.

    Example:
        ```python
        permission = await vaultshare.visibility.get_effective_permission(
            vault, item_id, user_id
        )
        if permission is None:
            raise NotFoundError("Item not found")
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize VisibilityManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    async def get_effective_permission(
        self,
        vault: Vault,
        item_id: UUID,
        user_id: UUID,
    ) -> Optional[ItemPermission]:
        """
        Resolve a user's permission on an item.

        Args:
            vault: Vault holding the item
            item_id: Item UUID
            user_id: Calling user

        Returns:
            ItemPermission, or None if the user may not see the item
        """
        if vault.owner_id == user_id:
            return effective_permission(True, None, None)

        member = await self.vaultshare.members.get_active(vault.id, user_id)
        if member is None:
            return None

        permissions = await self.permissions_for_member(member.id, [item_id])
        return effective_permission(False, member, permissions.get(item_id))

    async def permissions_for_member(
        self,
        member_id: UUID,
        item_ids: List[UUID],
    ) -> Dict[UUID, ItemPermission]:
        """Stored permissions of one member over several items, keyed by item id."""
        if not item_ids:
            return {}

        result = await self.client.table("vaultshare_item_visibilities").select("*").eq(
            "member_id", str(member_id)
        ).in_("item_id", [str(item_id) for item_id in item_ids]).execute()

        rows = [ItemVisibility(**row) for row in result.data]
        return {row.item_id: row.permission for row in rows}

    async def list_for_item(self, item_id: UUID) -> List[ItemVisibility]:
        """List the visibility rows of an item."""
        result = await self.client.table("vaultshare_item_visibilities").select("*").eq(
            "item_id", str(item_id)
        ).execute()

        return [ItemVisibility(**row) for row in result.data]

    async def seed(self, item_id: UUID, grants: Dict[UUID, ItemPermission]) -> List[ItemVisibility]:
        """
        Insert visibility rows for a new item.

        Args:
            item_id: Item UUID
            grants: Permission per member id

        Returns:
            Inserted rows
        """
        if not grants:
            return []

        now = to_iso(self.vaultshare.now())
        result = await self.client.table("vaultshare_item_visibilities").insert(
            [
                {
                    "item_id": str(item_id),
                    "member_id": str(member_id),
                    "permission": permission.value,
                    "created_at": now,
                }
                for member_id, permission in grants.items()
            ]
        ).execute()

        return [ItemVisibility(**row) for row in result.data]

    async def replace(self, item_id: UUID, grants: Dict[UUID, ItemPermission]) -> List[ItemVisibility]:
        """
        Replace every visibility row of an item.

        Concurrent replacements of the same item are last-writer-wins.
        """
        await self.client.table("vaultshare_item_visibilities").delete().eq(
            "item_id", str(item_id)
        ).execute()

        return await self.seed(item_id, grants)

    async def grant_default_view(self, vault_id: UUID, member_id: UUID) -> int:
        """
        Give a newly activated member VIEW on every active item of a vault.

        Rows left over from an earlier membership are discarded first.

        Returns:
            Number of items granted
        """
        await self.client.table("vaultshare_item_visibilities").delete().eq(
            "member_id", str(member_id)
        ).execute()

        result = await self.client.table("vaultshare_vault_items").select("id").eq(
            "vault_id", str(vault_id)
        ).eq("status", ItemStatus.ACTIVE.value).execute()

        if not result.data:
            return 0

        now = to_iso(self.vaultshare.now())
        await self.client.table("vaultshare_item_visibilities").insert(
            [
                {
                    "item_id": row["id"],
                    "member_id": str(member_id),
                    "permission": ItemPermission.VIEW.value,
                    "created_at": now,
                }
                for row in result.data
            ]
        ).execute()

        return len(result.data)

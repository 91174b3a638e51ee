"""
Account deletion for vaultshare.

Deleting an account touches every table that refers to the user. The steps
run in a fixed order so that no step leaves a dangling reference the next
one depends on.
"""

import logging
from typing import TYPE_CHECKING, List
from uuid import UUID

from pydantic import BaseModel, Field

from ..exceptions import InvalidRequestError, NotFoundError
from ..notifications.models import NotificationKind
from ..vaults.models import Vault, VaultStatus

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class AccountDeletionResult(BaseModel):
    """What deleting an account removed or rewrote."""

    user_id: UUID
    vaults_deleted: List[UUID] = Field(default_factory=list)
    items_reassigned: int = 0
    invites_cancelled: int = 0
    memberships_removed: int = 0


class AccountCleanup:
    """
    Deletes a user account and everything that refers to it.

    Steps, in order:
    1. Refuse if the user owns a live vault that still has other active
       members; ownership must be transferred first
    2. Permanently delete the vaults the user owns (children cascade)
    3. Hand the user's items in other vaults to each vault's owner
    4. Cancel open invitations sent by or addressed to the user
    5. Delete the user's member rows
    6. Delete the user's activity entries and clear references to them
    7. Delete the user's notifications
    8. Delete the account itself

    Owners of vaults the user belonged to are notified afterwards.

    Example:
        ```python
        result = await vaultshare.accounts.delete_account(user_id)
        print(f"Deleted {len(result.vaults_deleted)} vaults")
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize AccountCleanup.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    async def _owned_vaults(self, user_id: UUID) -> List[Vault]:
        result = await self.client.table("vaultshare_vaults").select("*").eq(
            "owner_id", str(user_id)
        ).execute()
        return [Vault(**row) for row in result.data]

    async def delete_account(self, user_id: UUID) -> AccountDeletionResult:
        """
        Delete a user account.

        Args:
            user_id: Account to delete

        Returns:
            AccountDeletionResult summarizing the changes

        Raises:
            NotFoundError: If the account does not exist
            InvalidRequestError: If the user owns a vault other people still use
        """
        user = await self.vaultshare.users.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        result = AccountDeletionResult(user_id=user_id)

        # 1. Shared vaults block deletion
        owned = await self._owned_vaults(user_id)
        for vault in owned:
            if vault.status == VaultStatus.DELETED:
                continue
            others = await self.vaultshare.vaults.count_active_members(vault.id, user_id)
            if others:
                raise InvalidRequestError(
                    f"Transfer ownership of vault '{vault.name}' before deleting the account"
                )

        # 2. Owned vaults go entirely
        for vault in owned:
            await self.vaultshare.vaults.hard_delete(vault.id)
            result.vaults_deleted.append(vault.id)

        # 3. Items the user created elsewhere now belong to each vault's owner
        items = await self.client.table("vaultshare_vault_items").select(
            "id, vault_id"
        ).eq("created_by_user_id", str(user_id)).execute()

        owners = {}
        for row in items.data:
            vault_id = UUID(row["vault_id"])
            if vault_id not in owners:
                record = await self.vaultshare.vaults.get_record(vault_id)
                owners[vault_id] = record.owner_id if record else None
            if owners[vault_id] is None:
                continue
            await self.client.table("vaultshare_vault_items").update(
                {"created_by_user_id": str(owners[vault_id])}
            ).eq("id", row["id"]).execute()
            result.items_reassigned += 1

        # 4. Open invitations
        result.invites_cancelled = await self.vaultshare.invites.cancel_for_user(
            user_id, user.email
        )

        # 5. Member rows; remember which vaults to tell about it
        memberships = await self.vaultshare.members.list_for_user(user_id, active_only=False)
        notify_vaults = [member.vault_id for member in memberships if member.is_active]

        await self.client.table("vaultshare_vault_members").delete().eq(
            "user_id", str(user_id)
        ).execute()
        result.memberships_removed = len(memberships)

        # 6. Activity log
        await self.vaultshare.audit.forget_user(user_id)

        # 7. Notifications
        await self.vaultshare.notifications.delete_all_for_user(user_id)

        # 8. The account
        await self.vaultshare.users.delete(user_id)

        logger.info(
            "Deleted account %s (%d vaults, %d items reassigned)",
            user_id,
            len(result.vaults_deleted),
            result.items_reassigned,
        )

        for vault_id in notify_vaults:
            record = await self.vaultshare.vaults.get_record(vault_id)
            if record is None:
                continue
            await self.vaultshare.notifications.send(
                NotificationKind.ACCOUNT_DELETED,
                user_id=record.owner_id,
                vault_id=vault_id,
                context={"vault_name": record.name},
            )

        return result

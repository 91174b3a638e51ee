"""
Membership management for vaultshare.

Handles the member lifecycle in the vaultshare_vault_members table:
joining, privilege changes, ownership transfer, leaving and removal.
"""

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID

from ..audit.models import AuditAction
from ..exceptions import ForbiddenError, InvalidRequestError, NotFoundError
from ..notifications.models import NotificationKind
from ..utils.timeutils import to_iso
from .models import MemberStatus, Privilege, Vault, VaultMember, VaultStatus

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class MembershipManager:
    """
    Manager for vault membership operations.

    A user has at most one member row per vault. Leaving or being removed
    flips its status; accepting a later invitation reactivates the same row.

    Example:
        ```python
        vaultshare = await VaultShare.create()

        # Who can see this vault?
        members = await vaultshare.members.list_by_vault(vault_id, user_id)

        # Promote a member so they can become owner later
        await vaultshare.members.update_privilege(
            vault_id, target_user_id=bob_id, privilege=Privilege.ADMIN, user_id=owner_id
        )
        await vaultshare.members.transfer_ownership(vault_id, bob_id, user_id=owner_id)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize MembershipManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    async def get(self, member_id: UUID) -> Optional[VaultMember]:
        """
        Get a member row by ID.

        Args:
            member_id: Member UUID

        Returns:
            VaultMember if found, None otherwise
        """
        result = await self.client.table("vaultshare_vault_members").select("*").eq(
            "id", str(member_id)
        ).execute()

        if not result.data:
            return None

        return VaultMember(**result.data[0])

    async def get_by_user(self, vault_id: UUID, user_id: UUID) -> Optional[VaultMember]:
        """Get a user's member row in a vault, whatever its status."""
        result = await self.client.table("vaultshare_vault_members").select("*").eq(
            "vault_id", str(vault_id)
        ).eq("user_id", str(user_id)).execute()

        if not result.data:
            return None

        return VaultMember(**result.data[0])

    async def get_active(self, vault_id: UUID, user_id: UUID) -> Optional[VaultMember]:
        """Get a user's member row in a vault if it is active."""
        member = await self.get_by_user(vault_id, user_id)
        if member and member.is_active:
            return member
        return None

    async def list_active(self, vault_id: UUID) -> List[VaultMember]:
        """List the active members of a vault without an authorization check."""
        result = await self.client.table("vaultshare_vault_members").select("*").eq(
            "vault_id", str(vault_id)
        ).eq("status", MemberStatus.ACTIVE.value).execute()

        return [VaultMember(**row) for row in result.data]

    async def list_for_user(self, user_id: UUID, active_only: bool = True) -> List[VaultMember]:
        """List a user's member rows across vaults."""
        query = self.client.table("vaultshare_vault_members").select("*").eq(
            "user_id", str(user_id)
        )

        if active_only:
            query = query.eq("status", MemberStatus.ACTIVE.value)

        result = await query.execute()
        return [VaultMember(**row) for row in result.data]

    async def get_privilege(
        self,
        vault_id: UUID,
        user_id: UUID,
        vault_record: Optional[Vault] = None,
    ) -> Optional[Privilege]:
        """
        Resolve a user's privilege in a vault.

        The vault's owner_id always resolves to OWNER. Anyone else needs an
        active member row.

        Args:
            vault_id: Vault UUID
            user_id: User UUID
            vault_record: Vault row if the caller already loaded it

        Returns:
            Privilege, or None if the user has no standing in the vault
        """
        record = vault_record or await self.vaultshare.vaults.get_record(vault_id)
        if record is None:
            return None

        if record.owner_id == user_id:
            return Privilege.OWNER

        member = await self.get_active(vault_id, user_id)
        return member.privilege if member else None

    async def require_privilege(
        self,
        vault_id: UUID,
        user_id: UUID,
        *allowed: Privilege,
        include_deleted: bool = False,
    ) -> Tuple[Vault, Privilege]:
        """
        Load a vault and check the caller's privilege in it.

        Args:
            vault_id: Vault UUID
            user_id: Calling user
            *allowed: Privileges that may proceed; any privilege when empty
            include_deleted: Let the owner through on a soft-deleted vault

        Returns:
            Tuple of (vault, caller privilege)

        Raises:
            NotFoundError: If the vault does not exist, is deleted, or the
                caller has no standing in it
            ForbiddenError: If the caller's privilege is not allowed
        """
        record = await self.vaultshare.vaults.get_record(vault_id)
        if record is None:
            raise NotFoundError("Vault not found")

        if record.status == VaultStatus.DELETED:
            if not (include_deleted and record.owner_id == user_id):
                raise NotFoundError("Vault not found")

        privilege = await self.get_privilege(vault_id, user_id, vault_record=record)
        if privilege is None:
            raise NotFoundError("Vault not found")

        if allowed and privilege not in allowed:
            raise ForbiddenError(
                f"This action requires {' or '.join(p.value for p in allowed)} privilege"
            )

        return record, privilege

    async def require_owner(self, vault_id: UUID, user_id: UUID) -> Vault:
        """Load a vault the caller must own."""
        record, _ = await self.require_privilege(vault_id, user_id, Privilege.OWNER)
        return record

    async def list_by_vault(
        self,
        vault_id: UUID,
        user_id: UUID,
        include_inactive: bool = False,
    ) -> List[VaultMember]:
        """
        List the members of a vault.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must have any privilege in the vault
            include_inactive: Also return members who left or were removed

        Returns:
            List of VaultMember instances, oldest first

        Raises:
            NotFoundError: If the caller cannot see the vault
        """
        await self.require_privilege(vault_id, user_id)

        query = self.client.table("vaultshare_vault_members").select("*").eq(
            "vault_id", str(vault_id)
        )

        if not include_inactive:
            query = query.eq("status", MemberStatus.ACTIVE.value)

        result = await query.order("joined_at").execute()
        return [VaultMember(**row) for row in result.data]

    async def add_owner(self, vault_id: UUID, user_id: UUID) -> VaultMember:
        """
        Insert the owner row of a new vault.

        Called by ``VaultManager.create`` only.
        """
        result = await self.client.table("vaultshare_vault_members").insert(
            {
                "vault_id": str(vault_id),
                "user_id": str(user_id),
                "privilege": Privilege.OWNER.value,
                "status": MemberStatus.ACTIVE.value,
                "joined_at": to_iso(self.vaultshare.now()),
                "added_by": str(user_id),
            }
        ).execute()

        if not result.data:
            raise ValueError("Failed to create owner membership")

        return VaultMember(**result.data[0])

    async def activate(
        self,
        vault_id: UUID,
        user_id: UUID,
        privilege: Privilege,
        added_by: Optional[UUID] = None,
    ) -> Tuple[VaultMember, bool]:
        """
        Make a user an active member of a vault.

        An existing row that left or was removed is reactivated in place:
        joined_at restarts and the removal fields are cleared.

        Args:
            vault_id: Vault UUID
            user_id: User joining the vault
            privilege: ADMIN or MEMBER
            added_by: User who invited them

        Returns:
            Tuple of (member, activated). ``activated`` is False when the user
            was already active and nothing changed.
        """
        if privilege == Privilege.OWNER:
            raise ForbiddenError("Owner privilege cannot be granted by joining")

        now = to_iso(self.vaultshare.now())
        existing = await self.get_by_user(vault_id, user_id)

        if existing and existing.is_active:
            return existing, False

        if existing:
            result = await self.client.table("vaultshare_vault_members").update(
                {
                    "privilege": privilege.value,
                    "status": MemberStatus.ACTIVE.value,
                    "joined_at": now,
                    "left_at": None,
                    "removed_at": None,
                    "removed_by": None,
                    "added_by": str(added_by) if added_by else None,
                }
            ).eq("id", str(existing.id)).execute()
            action = AuditAction.MEMBER_REACTIVATED
        else:
            result = await self.client.table("vaultshare_vault_members").insert(
                {
                    "vault_id": str(vault_id),
                    "user_id": str(user_id),
                    "privilege": privilege.value,
                    "status": MemberStatus.ACTIVE.value,
                    "joined_at": now,
                    "added_by": str(added_by) if added_by else None,
                }
            ).execute()
            action = AuditAction.MEMBER_ADDED

        if not result.data:
            raise ValueError("Failed to activate membership")

        member = VaultMember(**result.data[0])

        await self.vaultshare.audit.log(
            action,
            vault_id=vault_id,
            user_id=added_by,
            target_user_id=user_id,
            metadata={"privilege": privilege.value},
        )

        return member, True

    async def update_privilege(
        self,
        vault_id: UUID,
        target_user_id: UUID,
        privilege: Privilege,
        user_id: UUID,
    ) -> VaultMember:
        """
        Change a member's privilege between ADMIN and MEMBER.

        Args:
            vault_id: Vault UUID
            target_user_id: Member whose privilege changes
            privilege: New privilege (ADMIN or MEMBER)
            user_id: Calling user, who must be the owner

        Returns:
            Updated VaultMember

        Raises:
            ForbiddenError: If the caller is not the owner, or the change
                would grant or take away ownership
            NotFoundError: If the target is not an active member
        """
        record, _ = await self.require_privilege(vault_id, user_id, Privilege.OWNER)

        if privilege == Privilege.OWNER:
            raise ForbiddenError("Use transfer_ownership to change the owner")

        if target_user_id == record.owner_id:
            raise ForbiddenError("The owner's privilege cannot be changed")

        target = await self.get_active(vault_id, target_user_id)
        if target is None:
            raise NotFoundError("Member not found")

        if target.privilege == privilege:
            return target

        updated = await self._set_privilege(target.id, privilege)

        await self.vaultshare.audit.log(
            AuditAction.PRIVILEGE_CHANGED,
            vault_id=vault_id,
            user_id=user_id,
            target_user_id=target_user_id,
            metadata={"from": target.privilege.value, "to": privilege.value},
        )
        await self.vaultshare.notifications.send(
            NotificationKind.PRIVILEGE_CHANGED,
            user_id=target_user_id,
            vault_id=vault_id,
            context={"vault_name": record.name, "privilege": privilege.value},
        )

        return updated

    async def _set_privilege(self, member_id: UUID, privilege: Privilege) -> VaultMember:
        result = await self.client.table("vaultshare_vault_members").update(
            {"privilege": privilege.value}
        ).eq("id", str(member_id)).execute()
        return VaultMember(**result.data[0])

    async def transfer_ownership(
        self,
        vault_id: UUID,
        new_owner_id: UUID,
        user_id: UUID,
    ) -> Vault:
        """
        Hand a vault to one of its admins.

        The current owner becomes an admin, the target becomes owner and the
        vault's owner_id follows. If any of the three writes fails both
        member rows are put back and the error propagates.

        The per-vault key is derived from the owner id, so secrets written
        before the transfer need ``items.reencrypt`` to stay readable.

        Args:
            vault_id: Vault UUID
            new_owner_id: User receiving ownership; must be an active admin
            user_id: Calling user, who must be the owner

        Returns:
            The updated Vault

        Raises:
            ForbiddenError: If the caller is not the owner
            InvalidRequestError: If the target is not an active admin
        """
        record, _ = await self.require_privilege(vault_id, user_id, Privilege.OWNER)

        if new_owner_id == record.owner_id:
            raise InvalidRequestError("User already owns this vault")

        target = await self.get_active(vault_id, new_owner_id)
        if target is None or target.privilege != Privilege.ADMIN:
            raise InvalidRequestError(
                "Ownership can only be transferred to an active admin"
            )

        now = to_iso(self.vaultshare.now())

        current = await self.get_active(vault_id, record.owner_id)
        try:
            if current:
                await self._set_privilege(current.id, Privilege.ADMIN)
            await self._set_privilege(target.id, Privilege.OWNER)

            result = await self.client.table("vaultshare_vaults").update(
                {"owner_id": str(new_owner_id), "updated_at": now}
            ).eq("id", str(vault_id)).eq("owner_id", str(record.owner_id)).execute()

            if not result.data:
                raise InvalidRequestError("Vault owner changed during transfer")
        except Exception:
            logger.exception("Rolling back ownership transfer of vault %s", vault_id)
            await self._set_privilege(target.id, Privilege.ADMIN)
            if current:
                await self._set_privilege(current.id, Privilege.OWNER)
            raise

        vault = Vault(**result.data[0])

        logger.warning(
            "Ownership of vault %s moved to %s; the vault key changed and "
            "existing secrets must be re-encrypted",
            vault_id,
            new_owner_id,
        )

        await self.vaultshare.audit.log(
            AuditAction.OWNERSHIP_TRANSFERRED,
            vault_id=vault_id,
            user_id=user_id,
            target_user_id=new_owner_id,
            metadata={"previous_owner_id": str(record.owner_id)},
        )
        await self.vaultshare.notifications.send(
            NotificationKind.OWNERSHIP_TRANSFERRED,
            user_id=new_owner_id,
            vault_id=vault_id,
            context={"vault_name": vault.name},
        )

        return vault

    async def leave(self, vault_id: UUID, user_id: UUID) -> bool:
        """
        Leave a vault.

        Returns:
            True if the caller left, False if they were no longer active

        Raises:
            NotFoundError: If the vault does not exist or the caller never
                belonged to it
            ForbiddenError: If the caller owns the vault
        """
        record = await self.vaultshare.vaults.get_record(vault_id)
        if record is None:
            raise NotFoundError("Vault not found")

        if record.owner_id == user_id:
            raise ForbiddenError("The owner cannot leave; transfer ownership first")

        member = await self.get_by_user(vault_id, user_id)
        if member is None:
            raise NotFoundError("Vault not found")

        if not member.is_active:
            return False

        await self.client.table("vaultshare_vault_members").update(
            {
                "status": MemberStatus.LEFT.value,
                "left_at": to_iso(self.vaultshare.now()),
            }
        ).eq("id", str(member.id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.MEMBER_LEFT,
            vault_id=vault_id,
            user_id=user_id,
        )
        await self.vaultshare.notifications.send(
            NotificationKind.MEMBER_LEFT,
            user_id=record.owner_id,
            vault_id=vault_id,
            context={"vault_name": record.name},
        )

        return True

    async def remove(self, vault_id: UUID, target_user_id: UUID, user_id: UUID) -> bool:
        """
        Remove a member from a vault.

        The owner may remove anyone but themselves. Admins may remove plain
        members only.

        Args:
            vault_id: Vault UUID
            target_user_id: Member to remove
            user_id: Calling user

        Returns:
            True if the member was removed, False if they were already inactive

        Raises:
            ForbiddenError: On self-removal, removing the owner, or an admin
                removing another admin
            NotFoundError: If the target never belonged to the vault
        """
        record, privilege = await self.require_privilege(
            vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )

        if target_user_id == user_id:
            raise ForbiddenError("You cannot remove yourself; leave the vault instead")

        if target_user_id == record.owner_id:
            raise ForbiddenError("The owner cannot be removed")

        target = await self.get_by_user(vault_id, target_user_id)
        if target is None:
            raise NotFoundError("Member not found")

        if not target.is_active:
            return False

        if privilege == Privilege.ADMIN and target.privilege != Privilege.MEMBER:
            raise ForbiddenError("Admins can only remove members")

        await self.client.table("vaultshare_vault_members").update(
            {
                "status": MemberStatus.REMOVED.value,
                "removed_at": to_iso(self.vaultshare.now()),
                "removed_by": str(user_id),
            }
        ).eq("id", str(target.id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.MEMBER_REMOVED,
            vault_id=vault_id,
            user_id=user_id,
            target_user_id=target_user_id,
        )
        await self.vaultshare.notifications.send(
            NotificationKind.MEMBER_REMOVED,
            user_id=target_user_id,
            vault_id=vault_id,
            context={"vault_name": record.name},
        )

        return True

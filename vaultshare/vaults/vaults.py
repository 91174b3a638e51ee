"""
Vault management for vaultshare.

Handles CRUD operations for vaults in the vaultshare_vaults table. A vault is
always created together with its owner member row and its release policy.
"""

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from ..audit.models import AuditAction, AuditLogEntry
from ..exceptions import NotFoundError
from ..policies import engine
from ..policies.models import PolicySettings, PolicyType, ReleaseStatus
from ..utils.retention import can_restore, soft_delete_state
from ..utils.timeutils import to_iso
from .models import (
    CreateVaultRequest,
    MemberStatus,
    Privilege,
    UpdateVaultRequest,
    Vault,
    VaultStatus,
    VaultView,
)

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class VaultManager:
    """
    Manager for vault CRUD operations.

    Example:
        ```python
        vaultshare = await VaultShare.create()

        # Vault that opens to members on a fixed date
        vault = await vaultshare.vaults.create(
            user_id=owner_id,
            name="Estate",
            policy_type=PolicyType.TIME_BASED,
            release_date=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

        # Every vault the user owns or belongs to
        vaults = await vaultshare.vaults.list_for_user(owner_id)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize VaultManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    @property
    def restore_window(self) -> timedelta:
        return timedelta(days=self.vaultshare.config.restore_window_days)

    async def create(
        self,
        user_id: UUID,
        name: str,
        description: Optional[str] = None,
        policy_type: PolicyType = PolicyType.IMMEDIATE,
        release_date: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> VaultView:
        """
        Create a new vault owned by ``user_id``.

        The policy is validated before anything is written. If inserting the
        owner row or the policy fails, the vault row is deleted again (its
        children cascade) and the error re-raised.

        Args:
            user_id: Creating user, who becomes the owner
            name: Vault name (1-200 characters)
            description: Optional description
            policy_type: When members may open the vault
            release_date: Required for time-based policies
            expires_at: Required for expiry-based policies
            note: Optional note on the policy

        Returns:
            VaultView of the new vault as its owner sees it

        Raises:
            InvalidPolicyConfigurationError: If the policy dates are invalid
            ValidationError: If name or description are invalid

        Example:
            ```python
            vault = await vaultshare.vaults.create(
                user_id=owner_id,
                name="Shared accounts",
                policy_type=PolicyType.MANUAL_RELEASE,
            )
            ```
        """
        request = CreateVaultRequest(name=name, description=description)
        settings = PolicySettings(
            policy_type=policy_type,
            release_date=release_date,
            expires_at=expires_at,
            note=note,
        )

        now = self.vaultshare.now()
        engine.validate_policy(
            settings.policy_type, settings.release_date, settings.expires_at, now
        )

        result = await self.client.table("vaultshare_vaults").insert(
            {
                "owner_id": str(user_id),
                "original_owner_id": str(user_id),
                "name": request.name,
                "description": request.description,
                "status": VaultStatus.ACTIVE.value,
                "created_at": to_iso(now),
                "updated_at": to_iso(now),
            }
        ).execute()

        if not result.data:
            raise ValueError("Failed to create vault")

        vault = Vault(**result.data[0])

        try:
            await self.vaultshare.members.add_owner(vault.id, user_id)
            policy = await self.vaultshare.policies.create(vault.id, settings)
        except Exception:
            logger.exception("Rolling back vault %s after a failed create", vault.id)
            await self.client.table("vaultshare_vaults").delete().eq(
                "id", str(vault.id)
            ).execute()
            raise

        await self.vaultshare.audit.log(
            AuditAction.VAULT_CREATED,
            vault_id=vault.id,
            user_id=user_id,
            metadata={"name": vault.name, "policy_type": policy.policy_type.value},
        )

        return VaultView(
            **vault.model_dump(exclude={"original_owner_id"}),
            user_privilege=Privilege.OWNER,
            is_accessible=True,
            policy=policy,
            release_status=policy.release_status,
        )

    async def get_record(self, vault_id: UUID) -> Optional[Vault]:
        """
        Get a vault row by ID without an authorization check.

        Args:
            vault_id: Vault UUID

        Returns:
            Vault if found (including soft-deleted vaults), None otherwise
        """
        result = await self.client.table("vaultshare_vaults").select("*").eq(
            "id", str(vault_id)
        ).execute()

        if not result.data:
            return None

        return Vault(**result.data[0])

    async def get(self, vault_id: UUID, user_id: UUID) -> VaultView:
        """
        Get a vault as ``user_id`` sees it.

        Due policy transitions are applied first. The owner sees the whole
        policy; other members see the release status only while the vault is
        accessible to them.

        Args:
            vault_id: Vault UUID
            user_id: Calling user

        Returns:
            VaultView

        Raises:
            NotFoundError: If the vault does not exist, the caller has no
                standing in it, or it is deleted and the caller is not the owner
        """
        vault, privilege = await self.vaultshare.members.require_privilege(
            vault_id, user_id, include_deleted=True
        )
        return await self._view(vault, privilege)

    async def list_for_user(self, user_id: UUID) -> List[VaultView]:
        """
        List the active vaults a user owns or belongs to.

        Args:
            user_id: User UUID

        Returns:
            List of VaultView, newest first
        """
        memberships = await self.vaultshare.members.list_for_user(user_id)
        privileges = {member.vault_id: member.privilege for member in memberships}

        owned = await self.client.table("vaultshare_vaults").select("id").eq(
            "owner_id", str(user_id)
        ).execute()
        for row in owned.data:
            privileges[UUID(row["id"])] = Privilege.OWNER

        if not privileges:
            return []

        result = await self.client.table("vaultshare_vaults").select("*").in_(
            "id", [str(vault_id) for vault_id in privileges]
        ).eq("status", VaultStatus.ACTIVE.value).order(
            "created_at", desc=True
        ).execute()

        views = []
        for row in result.data:
            vault = Vault(**row)
            privilege = Privilege.OWNER if vault.owner_id == user_id else privileges[vault.id]
            views.append(await self._view(vault, privilege))
        return views

    async def update(
        self,
        vault_id: UUID,
        user_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> VaultView:
        """
        Rename a vault or change its description.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be owner or admin
            name: New name
            description: New description

        Returns:
            Updated VaultView

        Raises:
            ForbiddenError: If the caller is a plain member
        """
        vault, privilege = await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )

        request = UpdateVaultRequest(name=name, description=description)
        updates = request.model_dump(exclude_none=True)
        if not updates:
            return await self._view(vault, privilege)

        updates["updated_at"] = to_iso(self.vaultshare.now())

        result = await self.client.table("vaultshare_vaults").update(updates).eq(
            "id", str(vault_id)
        ).execute()

        vault = Vault(**result.data[0])

        await self.vaultshare.audit.log(
            AuditAction.VAULT_UPDATED,
            vault_id=vault_id,
            user_id=user_id,
            metadata={key: value for key, value in updates.items() if key != "updated_at"},
        )

        return await self._view(vault, privilege)

    async def delete(self, vault_id: UUID, user_id: UUID) -> bool:
        """
        Soft-delete a vault.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be the owner

        Returns:
            True if the vault was deleted, False if it already was
        """
        vault, _ = await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, include_deleted=True
        )

        if vault.status == VaultStatus.DELETED:
            return False

        now = to_iso(self.vaultshare.now())
        await self.client.table("vaultshare_vaults").update(
            {"status": VaultStatus.DELETED.value, "deleted_at": now, "updated_at": now}
        ).eq("id", str(vault_id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.VAULT_DELETED, vault_id=vault_id, user_id=user_id
        )

        return True

    async def restore(self, vault_id: UUID, user_id: UUID) -> bool:
        """
        Restore a soft-deleted vault within the restore window.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be the owner

        Returns:
            True if the vault was restored, False if it was not deleted or the
            restore window has passed
        """
        vault, _ = await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, include_deleted=True
        )

        state = soft_delete_state(vault.status.value, vault.deleted_at)
        if not can_restore(state, self.vaultshare.now(), self.restore_window):
            return False

        await self.client.table("vaultshare_vaults").update(
            {
                "status": VaultStatus.ACTIVE.value,
                "deleted_at": None,
                "updated_at": to_iso(self.vaultshare.now()),
            }
        ).eq("id", str(vault_id)).execute()

        await self.vaultshare.audit.log(
            AuditAction.VAULT_RESTORED, vault_id=vault_id, user_id=user_id
        )

        return True

    async def get_logs(
        self,
        vault_id: UUID,
        user_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogEntry]:
        """
        Read a vault's activity log.

        Raises:
            ForbiddenError: If the caller is a plain member
        """
        await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )
        return await self.vaultshare.audit.list_by_vault(
            vault_id, limit=limit, offset=offset
        )

    async def hard_delete(self, vault_id: UUID) -> None:
        """
        Permanently delete a vault and, by cascade, everything in it.

        No authorization check; account deletion is the only caller.
        """
        items = await self.vaultshare.items.list_document_keys(vault_id)
        for object_key in items:
            await self.vaultshare.documents.delete(object_key)

        await self.client.table("vaultshare_vaults").delete().eq(
            "id", str(vault_id)
        ).execute()

    async def count_active_members(self, vault_id: UUID, exclude_user_id: UUID) -> int:
        """Count active members other than ``exclude_user_id``."""
        result = await self.client.table("vaultshare_vault_members").select(
            "id", count="exact"
        ).eq("vault_id", str(vault_id)).eq("status", MemberStatus.ACTIVE.value).neq(
            "user_id", str(exclude_user_id)
        ).execute()
        return result.count or 0

    async def _view(self, vault: Vault, privilege: Privilege) -> VaultView:
        is_owner = privilege == Privilege.OWNER
        policy = await self.vaultshare.policies.evaluate(vault.id)

        if is_owner or policy is None:
            accessible = True
        else:
            accessible = policy.release_status == ReleaseStatus.RELEASED

        release_status = None
        if policy is not None and (is_owner or accessible):
            release_status = policy.release_status

        return VaultView(
            **vault.model_dump(exclude={"original_owner_id"}),
            user_privilege=privilege,
            is_accessible=accessible,
            policy=policy if is_owner else None,
            release_status=release_status,
        )

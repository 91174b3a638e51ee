"""
Activity logging for vaultshare.

Every mutating operation on a vault appends an entry to vaultshare_vault_logs.
Logging never blocks the operation it records: write failures are logged
and swallowed.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from ..utils.timeutils import to_iso
from .models import AuditAction, AuditLogEntry

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class AuditLogger:
    """
    Manages the per-vault activity trail.

    Example:
        ```python
        await vaultshare.audit.log(
            AuditAction.ITEM_CREATED,
            vault_id=vault.id,
            user_id=user_id,
            item_id=item.id,
            metadata={"title": item.title},
        )

        entries = await vaultshare.audit.list_by_vault(vault.id)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize AuditLogger.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client
        self._enabled = vaultshare.config.enable_audit_log

    def disable(self) -> None:
        """Disable activity logging (useful for bulk operations)."""
        self._enabled = False

    def enable(self) -> None:
        """Enable activity logging."""
        self._enabled = True

    @property
    def is_enabled(self) -> bool:
        """Check if activity logging is enabled."""
        return self._enabled

    async def log(
        self,
        action: AuditAction | str,
        vault_id: UUID,
        user_id: Optional[UUID] = None,
        target_user_id: Optional[UUID] = None,
        item_id: Optional[UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append an entry to a vault's activity log.

        Args:
            action: The action performed (AuditAction or custom string)
            vault_id: Vault the action happened in
            user_id: User who performed the action, if any
            target_user_id: User the action was aimed at (removed member, invitee, ...)
            item_id: Item the action touched
            metadata: Additional details

        Returns:
            The stored AuditLogEntry, or None when logging is disabled or the
            write failed
        """
        if not self._enabled:
            return None

        entry_data = {
            "vault_id": str(vault_id),
            "user_id": str(user_id) if user_id else None,
            "action": action.value if isinstance(action, AuditAction) else action,
            "target_user_id": str(target_user_id) if target_user_id else None,
            "item_id": str(item_id) if item_id else None,
            "metadata": metadata or {},
            "created_at": to_iso(self.vaultshare.now()),
        }

        try:
            result = await self.client.table("vaultshare_vault_logs").insert(
                entry_data
            ).execute()
        except Exception:
            logger.exception(
                "Failed to write activity log entry %s for vault %s",
                entry_data["action"],
                vault_id,
            )
            return None

        if not result.data:
            return None

        return AuditLogEntry(**result.data[0])

    async def list_by_vault(
        self,
        vault_id: UUID,
        action: Optional[AuditAction | str] = None,
        user_id: Optional[UUID] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogEntry]:
        """
        List activity entries for a vault, newest first.

        Callers are responsible for authorization; ``VaultManager.get_logs``
        is the checked entry point.

        Args:
            vault_id: Vault UUID
            action: Filter by action type
            user_id: Filter by acting user
            since: Only entries at or after this time
            until: Only entries at or before this time
            limit: Maximum entries to return
            offset: Entries to skip

        Returns:
            List of AuditLogEntry instances
        """
        query = self.client.table("vaultshare_vault_logs").select("*").eq(
            "vault_id", str(vault_id)
        )

        if action:
            action_value = action.value if isinstance(action, AuditAction) else action
            query = query.eq("action", action_value)

        if user_id:
            query = query.eq("user_id", str(user_id))

        if since:
            query = query.gte("created_at", to_iso(since))

        if until:
            query = query.lte("created_at", to_iso(until))

        result = await query.limit(limit).offset(offset).order(
            "created_at", desc=True
        ).execute()

        return [AuditLogEntry(**entry) for entry in result.data]

    async def list_by_user(
        self,
        user_id: UUID,
        vault_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogEntry]:
        """List entries for actions a user performed, newest first."""
        query = self.client.table("vaultshare_vault_logs").select("*").eq(
            "user_id", str(user_id)
        )

        if vault_id:
            query = query.eq("vault_id", str(vault_id))

        result = await query.limit(limit).offset(offset).order(
            "created_at", desc=True
        ).execute()

        return [AuditLogEntry(**entry) for entry in result.data]

    async def count_by_vault(
        self,
        vault_id: UUID,
        action: Optional[AuditAction | str] = None,
    ) -> int:
        """
        Count activity entries for a vault.

        Args:
            vault_id: Vault UUID
            action: Filter by action type

        Returns:
            Count of entries
        """
        query = self.client.table("vaultshare_vault_logs").select(
            "id", count="exact"
        ).eq("vault_id", str(vault_id))

        if action:
            action_value = action.value if isinstance(action, AuditAction) else action
            query = query.eq("action", action_value)

        result = await query.execute()
        return result.count or 0

    async def forget_user(self, user_id: UUID) -> None:
        """
        Remove a user from the activity trail.

        Deletes the entries the user authored and clears references to them
        as a target. Used by account deletion.
        """
        await self.client.table("vaultshare_vault_logs").delete().eq(
            "user_id", str(user_id)
        ).execute()

        await self.client.table("vaultshare_vault_logs").update(
            {"target_user_id": None}
        ).eq("target_user_id", str(user_id)).execute()

    async def cleanup_old_entries(
        self,
        before: datetime,
        vault_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete activity entries older than a given date.

        Args:
            before: Delete entries created before this time
            vault_id: Only delete for this vault (optional)

        Returns:
            Number of entries deleted

        Example:
            ```python
            cutoff = vaultshare.now() - timedelta(days=365)
            deleted = await vaultshare.audit.cleanup_old_entries(before=cutoff)
            ```
        """
        query = self.client.table("vaultshare_vault_logs").select(
            "id", count="exact"
        ).lt("created_at", to_iso(before))

        if vault_id:
            query = query.eq("vault_id", str(vault_id))

        count_result = await query.execute()
        count = count_result.count or 0

        if count > 0:
            delete_query = self.client.table("vaultshare_vault_logs").delete().lt(
                "created_at", to_iso(before)
            )

            if vault_id:
                delete_query = delete_query.eq("vault_id", str(vault_id))

            await delete_query.execute()

        return count

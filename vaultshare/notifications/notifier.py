"""
Notification delivery for vaultshare.

In-app notifications are rows in vaultshare_notifications. Invite e-mails go
through Supabase's invite_user_by_email so the invitee gets a sign-up link
when they have no account yet.

Wraps: supabase_auth._async.gotrue_admin_api.AsyncGoTrueAdminAPI.invite_user_by_email
"""

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from ..utils.timeutils import to_iso
from .models import MESSAGES, NotificationKind, VaultNotification

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)


class NotificationManager:
    """
    Sends and manages user notifications.

    Sending is fire-and-forget: ``send`` never raises, it reports failure by
    returning False so the operation that triggered it can carry on.

    Example:
        ```python
        delivered = await vaultshare.notifications.send(
            NotificationKind.VAULT_RELEASED,
            user_id=member.user_id,
            vault_id=vault.id,
            context={"vault_name": vault.name},
        )

        unread = await vaultshare.notifications.list_for_user(user_id, unread_only=True)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize NotificationManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    def accept_url(self, token: str) -> Optional[str]:
        """Link the invitee follows to accept an invitation."""
        base = self.vaultshare.config.app_base_url
        if not base:
            return None
        return f"{base}/invites/accept?token={token}"

    async def send(
        self,
        kind: NotificationKind,
        user_id: Optional[UUID] = None,
        email: Optional[str] = None,
        vault_id: Optional[UUID] = None,
        item_id: Optional[UUID] = None,
        invite_id: Optional[UUID] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Deliver a notification.

        A known user gets an in-app row. An invitation addressed to an e-mail
        also triggers the Supabase invite e-mail carrying the accept link.

        Args:
            kind: What happened
            user_id: Recipient user, when known
            email: Recipient e-mail (invitations)
            vault_id: Related vault
            item_id: Related item
            invite_id: Related invitation
            context: Values for the message template; ``token`` is used for
                the accept link and never stored

        Returns:
            True if every delivery attempted succeeded
        """
        context = dict(context or {})
        token = context.pop("token", None)

        if user_id is None and email is None:
            logger.warning("Dropping %s notification without a recipient", kind.value)
            return False

        delivered = True

        if user_id is not None:
            delivered = await self._store(
                kind, user_id, vault_id, item_id, invite_id, context
            ) and delivered

        if email is not None and kind == NotificationKind.INVITE_RECEIVED:
            delivered = await self._send_invite_email(
                email, vault_id, invite_id, token, context
            ) and delivered

        return delivered

    async def send_many(
        self,
        kind: NotificationKind,
        user_ids: List[UUID],
        **kwargs,
    ) -> int:
        """
        Send the same notification to several users.

        Returns:
            Number of users successfully notified
        """
        sent = 0
        for user_id in user_ids:
            if await self.send(kind, user_id=user_id, **kwargs):
                sent += 1
        return sent

    async def _store(
        self,
        kind: NotificationKind,
        user_id: UUID,
        vault_id: Optional[UUID],
        item_id: Optional[UUID],
        invite_id: Optional[UUID],
        context: Dict[str, Any],
    ) -> bool:
        title, template = MESSAGES[kind]
        row = {
            "user_id": str(user_id),
            "kind": kind.value,
            "title": title,
            "description": template.format_map(defaultdict(str, context)),
            "vault_id": str(vault_id) if vault_id else None,
            "item_id": str(item_id) if item_id else None,
            "invite_id": str(invite_id) if invite_id else None,
            "is_read": False,
            "created_at": to_iso(self.vaultshare.now()),
        }

        try:
            await self.client.table("vaultshare_notifications").insert(row).execute()
        except Exception:
            logger.exception("Failed to store %s notification for user %s", kind.value, user_id)
            return False

        return True

    async def _send_invite_email(
        self,
        email: str,
        vault_id: Optional[UUID],
        invite_id: Optional[UUID],
        token: Optional[str],
        context: Dict[str, Any],
    ) -> bool:
        options: Dict[str, Any] = {
            "data": {
                "vault_id": str(vault_id) if vault_id else None,
                "vault_name": context.get("vault_name"),
                "invite_id": str(invite_id) if invite_id else None,
                "invitation_token": token,
            }
        }
        if token:
            redirect_to = self.accept_url(token)
            if redirect_to:
                options["redirect_to"] = redirect_to

        try:
            await self.client.auth.admin.invite_user_by_email(email, options)
        except Exception:
            logger.exception("Failed to send invitation e-mail for invite %s", invite_id)
            return False

        logger.info("Sent invitation e-mail for invite %s", invite_id)
        return True

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[VaultNotification]:
        """
        List a user's notifications, newest first.

        Args:
            user_id: Recipient UUID
            unread_only: Only return notifications not yet marked read
            limit: Maximum results
            offset: Results to skip

        Returns:
            List of VaultNotification instances
        """
        query = self.client.table("vaultshare_notifications").select("*").eq(
            "user_id", str(user_id)
        )

        if unread_only:
            query = query.eq("is_read", False)

        result = await query.limit(limit).offset(offset).order(
            "created_at", desc=True
        ).execute()

        return [VaultNotification(**row) for row in result.data]

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """
        Mark one of the user's notifications as read.

        Returns:
            True if a notification was updated
        """
        result = await self.client.table("vaultshare_notifications").update(
            {"is_read": True}
        ).eq("id", str(notification_id)).eq("user_id", str(user_id)).execute()

        return bool(result.data)

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self.client.table("vaultshare_notifications").update(
            {"is_read": True}
        ).eq("user_id", str(user_id)).eq("is_read", False).execute()

        return len(result.data or [])

    async def delete(self, notification_id: UUID, user_id: UUID) -> bool:
        """
        Delete one of the user's notifications.

        Returns:
            True if a notification was deleted
        """
        result = await self.client.table("vaultshare_notifications").delete().eq(
            "id", str(notification_id)
        ).eq("user_id", str(user_id)).execute()

        return bool(result.data)

    async def delete_all_for_user(self, user_id: UUID) -> None:
        await self.client.table("vaultshare_notifications").delete().eq(
            "user_id", str(user_id)
        ).execute()

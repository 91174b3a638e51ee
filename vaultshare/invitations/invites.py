"""
Invitation management for vaultshare.

Handles inviting people to a vault by e-mail, resending, cancelling and
accepting invitations. E-mail delivery goes through the notification
manager, which wraps Supabase invite_user_by_email.

Wraps: supabase_auth._async.gotrue_admin_api.AsyncGoTrueAdminAPI.invite_user_by_email
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from ..audit.models import AuditAction
from ..exceptions import ForbiddenError, InvalidRequestError, NotFoundError
from ..notifications.models import NotificationKind
from ..utils.timeutils import as_utc, to_iso
from ..vaults.models import Privilege, Vault, VaultStatus
from .models import (
    OPEN_STATUSES,
    CreateInviteRequest,
    InviteInfo,
    InviteStatus,
    VaultInvite,
    VaultInviteWithToken,
)

if TYPE_CHECKING:
    from ..client import VaultShare

logger = logging.getLogger(__name__)

_OPEN_VALUES = [status.value for status in OPEN_STATUSES]


def hash_token(token: str) -> str:
    """SHA-256 hex digest under which an invitation token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class InvitationManager:
    """
    Manages vault invitation operations.

    The invitation flow:
    1. The owner invites an e-mail address with a privilege (admin or member)
    2. A random token is generated; only its hash is stored
    3. The invitee is notified; a successful e-mail marks the invite sent
    4. The invitee accepts with the token and their verified e-mail
    5. Their member row is created or reactivated and they get VIEW on
       every active item

    Expiry is lazy: an invite past its expires_at is marked expired by the
    first lookup that notices.
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize InvitationManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    def _generate_token(self, length: int = 32) -> str:
        """Generate a secure random token for invitations."""
        return secrets.token_urlsafe(length)

    def _expiry(self):
        return self.vaultshare.now() + timedelta(days=self.vaultshare.config.invite_expiry_days)

    async def create(
        self,
        vault_id: UUID,
        email: str,
        user_id: UUID,
        privilege: Privilege = Privilege.MEMBER,
        note: Optional[str] = None,
    ) -> VaultInviteWithToken:
        """
        Invite an e-mail address to a vault.

        Any earlier open invitation for the same address is cancelled.

        Args:
            vault_id: Vault to invite to
            email: Address to invite (matched case-insensitively)
            user_id: Calling user, who must be the owner
            privilege: Privilege granted on acceptance (admin or member)
            note: Optional message for the invitee

        Returns:
            VaultInviteWithToken; the token is not retrievable later

        Raises:
            ForbiddenError: If the caller is not the owner, or privilege is owner
            NotFoundError: If the caller cannot see the vault
            InvalidRequestError: If the address already belongs to an active member

        Example:
            ```python
            invite = await vaultshare.invites.create(
                vault_id=vault.id,
                email="bob@example.com",
                user_id=owner_id,
                privilege=Privilege.ADMIN,
            )
            print(f"Accept link token: {invite.token}")
            ```
        """
        request = CreateInviteRequest(
            vault_id=vault_id, email=email, privilege=privilege, note=note
        )

        if request.privilege == Privilege.OWNER:
            raise ForbiddenError("Owner privilege cannot be granted by invitation")

        vault = await self.vaultshare.members.require_owner(vault_id, user_id)

        invitee_email = request.email.lower()
        invitee = await self.vaultshare.users.get_by_email(invitee_email)
        if invitee:
            privilege_now = await self.vaultshare.members.get_privilege(
                vault_id, invitee.id, vault_record=vault
            )
            if privilege_now is not None:
                raise InvalidRequestError(f"{invitee_email} is already a member of this vault")

        # Replace any open invitation for the same address
        await self.client.table("vaultshare_vault_invites").update(
            {"status": InviteStatus.CANCELLED.value}
        ).eq("vault_id", str(vault_id)).eq("invitee_email", invitee_email).in_(
            "status", _OPEN_VALUES
        ).execute()

        token = self._generate_token()
        result = await self.client.table("vaultshare_vault_invites").insert(
            {
                "vault_id": str(vault_id),
                "inviter_id": str(user_id),
                "invitee_email": invitee_email,
                "privilege": request.privilege.value,
                "status": InviteStatus.PENDING.value,
                "token_hash": hash_token(token),
                "note": request.note,
                "expires_at": to_iso(self._expiry()),
                "created_at": to_iso(self.vaultshare.now()),
            }
        ).execute()

        if not result.data:
            raise ValueError("Failed to create invitation")

        row = await self._deliver(result.data[0], vault, user_id, token)

        await self.vaultshare.audit.log(
            AuditAction.INVITE_SENT,
            vault_id=vault_id,
            user_id=user_id,
            target_user_id=invitee.id if invitee else None,
            metadata={"email": invitee_email, "privilege": request.privilege.value},
        )

        return VaultInviteWithToken(**row, token=token)

    async def _deliver(
        self,
        row: Dict[str, Any],
        vault: Vault,
        inviter_id: UUID,
        token: str,
    ) -> Dict[str, Any]:
        """Notify the invitee and mark the invite sent when delivery worked."""
        inviter = await self.vaultshare.users.get(inviter_id)
        invitee = await self.vaultshare.users.get_by_email(row["invitee_email"])

        delivered = await self.vaultshare.notifications.send(
            NotificationKind.INVITE_RECEIVED,
            user_id=invitee.id if invitee else None,
            email=row["invitee_email"],
            vault_id=vault.id,
            invite_id=UUID(row["id"]),
            context={
                "vault_name": vault.name,
                "inviter": inviter.label if inviter else "A vault owner",
                "token": token,
            },
        )

        if not delivered:
            logger.warning("Invite %s stays pending; notification failed", row["id"])
            return row

        result = await self.client.table("vaultshare_vault_invites").update(
            {
                "status": InviteStatus.SENT.value,
                "sent_at": to_iso(self.vaultshare.now()),
            }
        ).eq("id", row["id"]).in_("status", _OPEN_VALUES).execute()

        return result.data[0] if result.data else row

    async def get(self, invite_id: UUID) -> Optional[VaultInvite]:
        """
        Get an invitation by ID.

        Args:
            invite_id: Invitation UUID

        Returns:
            VaultInvite instance or None if not found
        """
        result = await self.client.table("vaultshare_vault_invites").select("*").eq(
            "id", str(invite_id)
        ).execute()

        if not result.data:
            return None

        return await self._observe_expiry(VaultInvite(**result.data[0]))

    async def get_by_token(self, token: str) -> Optional[VaultInvite]:
        """
        Get an invitation by its bearer token.

        Args:
            token: Invitation token

        Returns:
            VaultInvite instance or None if no invitation matches
        """
        result = await self.client.table("vaultshare_vault_invites").select("*").eq(
            "token_hash", hash_token(token)
        ).execute()

        if not result.data:
            return None

        return await self._observe_expiry(VaultInvite(**result.data[0]))

    async def _observe_expiry(self, invite: VaultInvite) -> VaultInvite:
        """Mark an open invite past its expiry as expired, notifying once."""
        if not invite.is_open or self.vaultshare.now() <= as_utc(invite.expires_at):
            return invite

        result = await self.client.table("vaultshare_vault_invites").update(
            {"status": InviteStatus.EXPIRED.value}
        ).eq("id", str(invite.id)).in_("status", _OPEN_VALUES).execute()

        if not result.data:
            # Someone else observed it first
            return invite.model_copy(update={"status": InviteStatus.EXPIRED})

        expired = VaultInvite(**result.data[0])
        logger.info("Invite %s expired", invite.id)

        record = await self.vaultshare.vaults.get_record(invite.vault_id)
        context = {
            "vault_name": record.name if record else "",
            "invitee": invite.invitee_email,
        }

        await self.vaultshare.notifications.send(
            NotificationKind.INVITE_EXPIRED,
            user_id=invite.inviter_id,
            vault_id=invite.vault_id,
            invite_id=invite.id,
            context=context,
        )

        invitee = await self.vaultshare.users.get_by_email(invite.invitee_email)
        if invitee:
            await self.vaultshare.notifications.send(
                NotificationKind.INVITE_EXPIRED,
                user_id=invitee.id,
                vault_id=invite.vault_id,
                invite_id=invite.id,
                context=context,
            )

        await self.vaultshare.audit.log(
            AuditAction.INVITE_EXPIRED,
            vault_id=invite.vault_id,
            metadata={"email": invite.invitee_email},
        )

        return expired

    async def _require_invite(self, invite_id: UUID, user_id: UUID):
        invite = await self.get(invite_id)
        if not invite:
            raise NotFoundError("Invitation not found")

        vault = await self.vaultshare.members.require_owner(invite.vault_id, user_id)
        return invite, vault

    async def cancel(self, invite_id: UUID, user_id: UUID) -> VaultInvite:
        """
        Cancel an open invitation.

        Cancelling an accepted, cancelled or expired invitation changes
        nothing and returns it as is.

        Args:
            invite_id: Invitation UUID
            user_id: Calling user, who must be the owner

        Returns:
            The invitation

        Example:
            ```python
            await vaultshare.invites.cancel(invite_id, owner_id)
            ```
        """
        invite, vault = await self._require_invite(invite_id, user_id)

        if not invite.is_open:
            return invite

        result = await self.client.table("vaultshare_vault_invites").update(
            {"status": InviteStatus.CANCELLED.value}
        ).eq("id", str(invite_id)).in_("status", _OPEN_VALUES).execute()

        if not result.data:
            return await self.get(invite_id)

        cancelled = VaultInvite(**result.data[0])

        invitee = await self.vaultshare.users.get_by_email(invite.invitee_email)
        if invitee:
            await self.vaultshare.notifications.send(
                NotificationKind.INVITE_CANCELLED,
                user_id=invitee.id,
                vault_id=vault.id,
                invite_id=invite.id,
                context={"vault_name": vault.name},
            )

        await self.vaultshare.audit.log(
            AuditAction.INVITE_CANCELLED,
            vault_id=vault.id,
            user_id=user_id,
            metadata={"email": invite.invitee_email},
        )

        return cancelled

    async def resend(self, invite_id: UUID, user_id: UUID) -> VaultInviteWithToken:
        """
        Resend an open invitation with a fresh token and expiry.

        The previous token stops working.

        Args:
            invite_id: Invitation UUID
            user_id: Calling user, who must be the owner

        Returns:
            VaultInviteWithToken carrying the new token

        Raises:
            InvalidRequestError: If the invitation is accepted, cancelled or
                expired, including when that happens while resending
        """
        invite, vault = await self._require_invite(invite_id, user_id)

        if not invite.is_open:
            raise InvalidRequestError(f"Cannot resend a {invite.status.value} invitation")

        token = self._generate_token()
        result = await self.client.table("vaultshare_vault_invites").update(
            {
                "token_hash": hash_token(token),
                "expires_at": to_iso(self._expiry()),
            }
        ).eq("id", str(invite_id)).in_("status", _OPEN_VALUES).execute()

        if not result.data:
            raise InvalidRequestError("Invitation is no longer open")

        row = await self._deliver(result.data[0], vault, user_id, token)

        await self.vaultshare.audit.log(
            AuditAction.INVITE_RESENT,
            vault_id=vault.id,
            user_id=user_id,
            metadata={"email": invite.invitee_email},
        )

        return VaultInviteWithToken(**row, token=token)

    async def get_info(self, token: str) -> InviteInfo:
        """
        Describe an invitation for an accept page.

        Never raises for bad tokens; ``is_valid`` and ``error`` say what is wrong.
        """
        invite = await self.get_by_token(token)
        if not invite:
            return InviteInfo(is_valid=False, error="Invitation not found")

        record = await self.vaultshare.vaults.get_record(invite.vault_id)
        if record is None or record.status == VaultStatus.DELETED:
            return InviteInfo(is_valid=False, error="Vault no longer exists")

        info = InviteInfo(
            is_valid=invite.is_open,
            invitee_email=invite.invitee_email,
            vault_name=record.name,
            privilege=invite.privilege,
            expires_at=invite.expires_at,
        )
        if not invite.is_open:
            info.error = f"Invitation is {invite.status.value}"
        return info

    async def accept(self, token: str, email: str, user_id: UUID) -> VaultInvite:
        """
        Accept an invitation.

        Accepting twice as the same user returns the accepted invitation
        without creating a second member row.

        Args:
            token: Invitation token
            email: E-mail address the caller presents
            user_id: Authenticated caller

        Returns:
            The accepted VaultInvite

        Raises:
            NotFoundError: If no invitation matches the token
            InvalidRequestError: If the invitation expired, was cancelled or
                was accepted by someone else
            ForbiddenError: If the e-mail does not match the invitation and
                the caller's verified address

        Example:
            ```python
            invite = await vaultshare.invites.accept(
                token=token, email=user.email, user_id=user.id
            )
            ```
        """
        invite = await self.get_by_token(token)
        if not invite:
            raise NotFoundError("Invitation not found")

        if invite.status == InviteStatus.ACCEPTED:
            if invite.invitee_id == user_id:
                return invite
            raise InvalidRequestError("Invitation has already been accepted")

        if invite.status == InviteStatus.EXPIRED:
            raise InvalidRequestError("Invitation has expired")

        if invite.status == InviteStatus.CANCELLED:
            raise InvalidRequestError("Invitation was cancelled")

        presented = email.strip().lower()
        user = await self.vaultshare.users.get(user_id)
        if (
            user is None
            or not user.email_verified
            or user.email.lower() != presented
            or invite.invitee_email.lower() != presented
        ):
            raise ForbiddenError("This invitation was sent to a different e-mail address")

        record = await self.vaultshare.vaults.get_record(invite.vault_id)
        if record is None or record.status == VaultStatus.DELETED:
            raise NotFoundError("Vault not found")

        member, activated = await self.vaultshare.members.activate(
            invite.vault_id, user_id, invite.privilege, added_by=invite.inviter_id
        )
        if activated:
            await self.vaultshare.visibility.grant_default_view(invite.vault_id, member.id)

        result = await self.client.table("vaultshare_vault_invites").update(
            {
                "status": InviteStatus.ACCEPTED.value,
                "accepted_at": to_iso(self.vaultshare.now()),
                "invitee_id": str(user_id),
            }
        ).eq("id", str(invite.id)).in_("status", _OPEN_VALUES).execute()

        if not result.data:
            # A concurrent accept won
            return await self.get(invite.id)

        accepted = VaultInvite(**result.data[0])

        await self.vaultshare.notifications.send(
            NotificationKind.INVITE_ACCEPTED,
            user_id=invite.inviter_id,
            vault_id=invite.vault_id,
            invite_id=invite.id,
            context={"vault_name": record.name, "invitee": user.label},
        )
        await self.vaultshare.audit.log(
            AuditAction.INVITE_ACCEPTED,
            vault_id=invite.vault_id,
            user_id=user_id,
            target_user_id=user_id,
            metadata={"privilege": invite.privilege.value},
        )

        return accepted

    async def list_by_vault(
        self,
        vault_id: UUID,
        user_id: UUID,
        open_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[VaultInvite]:
        """
        List invitations for a vault.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be owner or admin
            open_only: Only return pending or sent invitations
            limit: Maximum number of invitations to return
            offset: Number of invitations to skip

        Returns:
            List of VaultInvite instances
        """
        await self.vaultshare.members.require_privilege(
            vault_id, user_id, Privilege.OWNER, Privilege.ADMIN
        )

        query = self.client.table("vaultshare_vault_invites").select("*").eq(
            "vault_id", str(vault_id)
        )

        if open_only:
            query = query.in_("status", _OPEN_VALUES)

        result = await query.limit(limit).offset(offset).order(
            "created_at", desc=True
        ).execute()

        invites = [await self._observe_expiry(VaultInvite(**row)) for row in result.data]
        if open_only:
            invites = [invite for invite in invites if invite.is_open]
        return invites

    async def list_pending_for_user(self, user_id: UUID) -> List[VaultInvite]:
        """
        List open invitations addressed to a user's e-mail.

        Args:
            user_id: User UUID

        Returns:
            List of VaultInvite instances
        """
        user = await self.vaultshare.users.get(user_id)
        if not user:
            return []

        result = await self.client.table("vaultshare_vault_invites").select("*").eq(
            "invitee_email", user.email.lower()
        ).in_("status", _OPEN_VALUES).order("created_at", desc=True).execute()

        invites = [await self._observe_expiry(VaultInvite(**row)) for row in result.data]
        return [invite for invite in invites if invite.is_open]

    async def cancel_for_user(self, user_id: UUID, email: str) -> int:
        """
        Cancel every open invitation sent by or addressed to a user.

        Used by account deletion.

        Returns:
            Number of invitations cancelled
        """
        sent = await self.client.table("vaultshare_vault_invites").update(
            {"status": InviteStatus.CANCELLED.value}
        ).eq("inviter_id", str(user_id)).in_("status", _OPEN_VALUES).execute()

        received = await self.client.table("vaultshare_vault_invites").update(
            {"status": InviteStatus.CANCELLED.value}
        ).eq("invitee_email", email.lower()).in_("status", _OPEN_VALUES).execute()

        return len(sent.data or []) + len(received.data or [])

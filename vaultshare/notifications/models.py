"""
Vaultshare notification models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class NotificationKind(str, Enum):
    """Events users are told about."""

    INVITE_RECEIVED = "invite_received"
    INVITE_ACCEPTED = "invite_accepted"
    INVITE_CANCELLED = "invite_cancelled"
    INVITE_EXPIRED = "invite_expired"

    VAULT_RELEASED = "vault_released"
    VAULT_EXPIRED = "vault_expired"
    VAULT_REVOKED = "vault_revoked"

    MEMBER_LEFT = "member_left"
    MEMBER_REMOVED = "member_removed"
    PRIVILEGE_CHANGED = "privilege_changed"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"

    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"

    ACCOUNT_DELETED = "account_deleted"


# Title shown in-app; the description is formatted with the send() context.
MESSAGES = {
    NotificationKind.INVITE_RECEIVED: (
        "Vault invitation",
        "{inviter} invited you to join {vault_name}.",
    ),
    NotificationKind.INVITE_ACCEPTED: (
        "Invitation accepted",
        "{invitee} joined {vault_name}.",
    ),
    NotificationKind.INVITE_CANCELLED: (
        "Invitation cancelled",
        "Your invitation to {vault_name} was cancelled.",
    ),
    NotificationKind.INVITE_EXPIRED: (
        "Invitation expired",
        "The invitation to {vault_name} for {invitee} has expired.",
    ),
    NotificationKind.VAULT_RELEASED: (
        "Vault released",
        "{vault_name} is now accessible.",
    ),
    NotificationKind.VAULT_EXPIRED: (
        "Vault expired",
        "{vault_name} is no longer accessible.",
    ),
    NotificationKind.VAULT_REVOKED: (
        "Vault closed",
        "{vault_name} is no longer accessible.",
    ),
    NotificationKind.MEMBER_LEFT: (
        "Member left",
        "A member left {vault_name}.",
    ),
    NotificationKind.MEMBER_REMOVED: (
        "Removed from vault",
        "You were removed from {vault_name}.",
    ),
    NotificationKind.PRIVILEGE_CHANGED: (
        "Privilege changed",
        "Your privilege in {vault_name} is now {privilege}.",
    ),
    NotificationKind.OWNERSHIP_TRANSFERRED: (
        "Ownership transferred",
        "You are now the owner of {vault_name}.",
    ),
    NotificationKind.ITEM_UPDATED: (
        "Item updated",
        "{item_title} in {vault_name} was updated.",
    ),
    NotificationKind.ITEM_DELETED: (
        "Item deleted",
        "{item_title} in {vault_name} was deleted.",
    ),
    NotificationKind.ACCOUNT_DELETED: (
        "Member account deleted",
        "A member of {vault_name} deleted their account.",
    ),
}


class VaultNotification(BaseModel):
    """
    In-app notification - represents a row in the vaultshare_notifications table.
    """

    id: UUID
    user_id: UUID
    kind: NotificationKind

    title: str
    description: Optional[str] = None

    # Links back to what the notification is about
    vault_id: Optional[UUID] = None
    item_id: Optional[UUID] = None
    invite_id: Optional[UUID] = None

    is_read: bool = False
    created_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "user_id": "456e7890-e89b-12d3-a456-426614174000",
                "kind": "vault_released",
                "title": "Vault released",
                "description": "Family is now accessible.",
                "vault_id": "789e0123-e89b-12d3-a456-426614174000",
                "item_id": None,
                "invite_id": None,
                "is_read": False,
                "created_at": "2024-01-01T00:00:00Z",
            }
        },
    }

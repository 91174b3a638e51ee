"""
Vaultshare activity log models.

Pydantic models for the per-vault activity trail.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Actions recorded in a vault's activity log."""

    # Vault actions
    VAULT_CREATED = "vault.created"
    VAULT_UPDATED = "vault.updated"
    VAULT_DELETED = "vault.deleted"
    VAULT_RESTORED = "vault.restored"

    # Membership actions
    MEMBER_ADDED = "member.added"
    MEMBER_REACTIVATED = "member.reactivated"
    MEMBER_LEFT = "member.left"
    MEMBER_REMOVED = "member.removed"
    PRIVILEGE_CHANGED = "member.privilege_changed"
    OWNERSHIP_TRANSFERRED = "ownership.transferred"

    # Invitation actions
    INVITE_SENT = "invite.sent"
    INVITE_RESENT = "invite.resent"
    INVITE_CANCELLED = "invite.cancelled"
    INVITE_ACCEPTED = "invite.accepted"
    INVITE_EXPIRED = "invite.expired"

    # Item actions
    ITEM_CREATED = "item.created"
    ITEM_UPDATED = "item.updated"
    ITEM_DELETED = "item.deleted"
    ITEM_RESTORED = "item.restored"
    ITEMS_REENCRYPTED = "item.reencrypted"

    # Policy actions
    POLICY_UPDATED = "policy.updated"
    POLICY_RELEASED = "policy.released"
    POLICY_EXPIRED = "policy.expired"
    POLICY_REVOKED = "policy.revoked"

    # Account actions
    ACCOUNT_DELETED = "account.deleted"


class AuditLogEntry(BaseModel):
    """
    Activity log entry - represents a row in the vaultshare_vault_logs table.

    ``user_id`` is the actor and is empty for transitions nobody triggered
    directly (a time-based release observed on read, an invite expiring).
    """

    id: UUID
    vault_id: UUID
    user_id: Optional[UUID] = None

    # What happened
    action: str
    target_user_id: Optional[UUID] = None
    item_id: Optional[UUID] = None

    # Details
    metadata: Dict[str, Any] = Field(default_factory=dict)

    # Timestamp
    created_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "vault_id": "456e7890-e89b-12d3-a456-426614174000",
                "user_id": "789e0123-e89b-12d3-a456-426614174000",
                "action": "item.created",
                "target_user_id": None,
                "item_id": "012e3456-e89b-12d3-a456-426614174000",
                "metadata": {"title": "Bank login", "item_type": "password"},
                "created_at": "2024-01-01T00:00:00Z",
            }
        },
    }

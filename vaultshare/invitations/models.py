"""
Vaultshare invitation models.

Pydantic models for vault invitations.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ..vaults.models import Privilege


class InviteStatus(str, Enum):
    """
    Invitation lifecycle.

    pending -> sent -> accepted | cancelled | expired. A failed e-mail leaves
    the invite pending; it can still be accepted with the token.
    """

    PENDING = "pending"
    SENT = "sent"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


OPEN_STATUSES = frozenset({InviteStatus.PENDING, InviteStatus.SENT})


class VaultInvite(BaseModel):
    """
    Vault invitation model - represents a row in the vaultshare_vault_invites table.

    Only the SHA-256 hash of the bearer token is stored. The token itself is
    handed out once, by ``InvitationManager.create`` and ``resend``.
    """

    id: UUID
    vault_id: UUID
    inviter_id: UUID

    invitee_email: EmailStr
    # Resolved when the invitee accepts
    invitee_id: Optional[UUID] = None

    privilege: Privilege = Privilege.MEMBER
    status: InviteStatus = InviteStatus.PENDING

    token_hash: str = Field(..., exclude=True, repr=False)
    note: Optional[str] = None

    # Tracking
    sent_at: Optional[datetime] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "vault_id": "456e7890-e89b-12d3-a456-426614174000",
                "inviter_id": "789e0123-e89b-12d3-a456-426614174000",
                "invitee_email": "newuser@example.com",
                "invitee_id": None,
                "privilege": "member",
                "status": "sent",
                "note": "Welcome to the family vault",
                "sent_at": "2024-01-01T00:00:00Z",
                "expires_at": "2024-01-08T00:00:00Z",
                "accepted_at": None,
                "created_at": "2024-01-01T00:00:00Z",
            }
        },
    }

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class VaultInviteWithToken(VaultInvite):
    """An invitation together with its bearer token, returned exactly once."""

    token: str


class InviteInfo(BaseModel):
    """What an accept page may show about a token without accepting it."""

    is_valid: bool
    invitee_email: Optional[str] = None
    vault_name: Optional[str] = None
    privilege: Optional[Privilege] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None


class CreateInviteRequest(BaseModel):
    """Request model for creating a new invitation."""

    vault_id: UUID
    email: EmailStr = Field(..., description="Email address to invite")
    privilege: Privilege = Field(Privilege.MEMBER, description="Privilege granted on acceptance")
    note: Optional[str] = Field(None, max_length=500)

"""
Vaultshare vault models.

Pydantic models for vaults and vault members.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..policies.models import ReleaseStatus, VaultPolicy


class VaultStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class Privilege(str, Enum):
    """Member privilege level inside one vault."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    LEFT = "left"
    REMOVED = "removed"


class Vault(BaseModel):
    """
    Vault model - represents a row in the vaultshare_vaults table.

    ``owner_id`` changes on ownership transfer; ``original_owner_id`` never does.
    """

    id: UUID
    owner_id: UUID
    original_owner_id: UUID

    name: str
    description: Optional[str] = None

    status: VaultStatus = VaultStatus.ACTIVE

    # Timestamps
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "owner_id": "456e7890-e89b-12d3-a456-426614174000",
                "original_owner_id": "456e7890-e89b-12d3-a456-426614174000",
                "name": "Family",
                "description": "Passwords and documents for the family",
                "status": "active",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
                "deleted_at": None,
            }
        },
    }


class VaultMember(BaseModel):
    """
    Vault member model - represents a row in the vaultshare_vault_members table.

    There is at most one row per (vault_id, user_id). Leaving or being removed
    only changes the status; a later invite reactivates the same row.
    """

    id: UUID
    vault_id: UUID
    user_id: UUID

    privilege: Privilege = Privilege.MEMBER
    status: MemberStatus = MemberStatus.ACTIVE

    # Lifecycle
    joined_at: datetime
    left_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None

    added_by: Optional[UUID] = None
    removed_by: Optional[UUID] = None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "vault_id": "456e7890-e89b-12d3-a456-426614174000",
                "user_id": "789e0123-e89b-12d3-a456-426614174000",
                "privilege": "member",
                "status": "active",
                "joined_at": "2024-01-01T00:00:00Z",
                "left_at": None,
                "removed_at": None,
                "added_by": "456e7890-e89b-12d3-a456-426614174000",
                "removed_by": None,
            }
        },
    }

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE


class VaultView(BaseModel):
    """
    A vault as seen by one caller.

    Owners get the full policy. Other members only learn the release status,
    and only while the vault is accessible to them.
    """

    id: UUID
    owner_id: UUID
    name: str
    description: Optional[str] = None
    status: VaultStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    user_privilege: Privilege
    is_accessible: bool

    policy: Optional[VaultPolicy] = None
    release_status: Optional[ReleaseStatus] = None


class CreateVaultRequest(BaseModel):
    """Request model for creating a new vault."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)


class UpdateVaultRequest(BaseModel):
    """Request model for updating an existing vault."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)

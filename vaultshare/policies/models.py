"""
Vaultshare release policy models.

Pydantic models for the vault-wide release policy.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PolicyType(str, Enum):
    """When non-owners may open a vault."""

    IMMEDIATE = "immediate"
    TIME_BASED = "time_based"
    EXPIRY_BASED = "expiry_based"
    MANUAL_RELEASE = "manual_release"


class ReleaseStatus(str, Enum):
    """Current state of a release policy."""

    PENDING = "pending"
    RELEASED = "released"
    EXPIRED = "expired"
    REVOKED = "revoked"


TERMINAL_STATUSES = frozenset({ReleaseStatus.EXPIRED, ReleaseStatus.REVOKED})


class VaultPolicy(BaseModel):
    """
    Vault policy model - represents a row in the vaultshare_vault_policies table.

    One policy per vault, created together with the vault.
    """

    id: UUID
    vault_id: UUID

    policy_type: PolicyType
    release_status: ReleaseStatus = ReleaseStatus.PENDING

    # time_based only
    release_date: Optional[datetime] = None

    # expiry_based only
    expires_at: Optional[datetime] = None

    released_at: Optional[datetime] = None
    released_by: Optional[UUID] = None

    note: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "vault_id": "456e7890-e89b-12d3-a456-426614174000",
                "policy_type": "time_based",
                "release_status": "pending",
                "release_date": "2024-02-01T00:00:00Z",
                "expires_at": None,
                "released_at": None,
                "released_by": None,
                "note": "Open on Feb 1st",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
            }
        },
    }


class PolicySettings(BaseModel):
    """Requested policy configuration, validated against the clock by the engine."""

    policy_type: PolicyType = PolicyType.IMMEDIATE
    release_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    note: Optional[str] = Field(None, max_length=500)

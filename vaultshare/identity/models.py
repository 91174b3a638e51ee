"""
Vaultshare identity models.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr


class AccountUser(BaseModel):
    """
    Account model - represents a row in the vaultshare_users table.

    Accounts are registered and authenticated elsewhere; vaultshare only
    reads them to resolve invitees and check verified e-mail addresses.
    """

    id: UUID
    email: EmailStr
    email_verified: bool = False

    display_name: Optional[str] = None

    # Link to the Supabase auth user
    supabase_auth_id: Optional[UUID] = None

    status: str = "active"

    # Timestamps
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "email": "user@example.com",
                "email_verified": True,
                "display_name": "Jane Doe",
                "supabase_auth_id": "456e7890-e89b-12d3-a456-426614174000",
                "status": "active",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
            }
        },
    }

    @property
    def label(self) -> str:
        """Name to show other vault members."""
        return self.display_name or self.email

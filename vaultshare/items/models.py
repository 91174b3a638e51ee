"""
Vaultshare item models.

Pydantic models for vault items, their typed payloads and the per-item
visibility matrix.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class ItemType(str, Enum):
    DOCUMENT = "document"
    PASSWORD = "password"
    NOTE = "note"
    LINK = "link"
    CRYPTO_WALLET = "crypto_wallet"


class ItemStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class ItemPermission(str, Enum):
    """What a member may do with one item."""

    VIEW = "view"
    EDIT = "edit"


class ContentFormat(str, Enum):
    PLAIN_TEXT = "plain_text"
    MARKDOWN = "markdown"


class WalletType(str, Enum):
    SEED_PHRASE = "seed_phrase"
    PRIVATE_KEY = "private_key"
    EXCHANGE_LOGIN = "exchange_login"


# Typed payloads. Secret fields are plaintext here and encrypted at rest.


class PasswordData(BaseModel):
    username: Optional[str] = Field(None, max_length=200)
    password: Optional[str] = None
    website_url: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = None


class NoteData(BaseModel):
    content: Optional[str] = None
    content_format: Optional[ContentFormat] = None


class LinkData(BaseModel):
    url: Optional[str] = Field(None, max_length=2000)
    notes: Optional[str] = None


class CryptoWalletData(BaseModel):
    wallet_type: Optional[WalletType] = None
    platform_name: Optional[str] = Field(None, max_length=200)
    blockchain: Optional[str] = Field(None, max_length=100)
    public_address: Optional[str] = Field(None, max_length=500)
    secret: Optional[str] = None
    notes: Optional[str] = None


class DocumentData(BaseModel):
    """An uploaded file. The bytes go to storage, never to the database."""

    file_name: str = Field(..., min_length=1, max_length=255)
    content_type: str = "application/octet-stream"
    content: bytes


class DocumentInfo(BaseModel):
    """Stored document metadata plus a time-limited download link."""

    object_key: str
    file_name: str
    content_type: str
    file_size: int
    uploaded_at: datetime
    download_url: Optional[str] = None


class ItemVisibilityRequest(BaseModel):
    """One entry of a caller-supplied visibility list."""

    member_id: UUID
    permission: ItemPermission = ItemPermission.VIEW


_PAYLOAD_FIELDS = {
    ItemType.PASSWORD: "password",
    ItemType.NOTE: "note",
    ItemType.LINK: "link",
    ItemType.CRYPTO_WALLET: "crypto_wallet",
    ItemType.DOCUMENT: "document",
}


def payload_field(item_type: ItemType) -> str:
    """Name of the request/view attribute carrying an item type's payload."""
    return _PAYLOAD_FIELDS[item_type]


class CreateItemRequest(BaseModel):
    """Request model for creating a new item."""

    vault_id: UUID
    item_type: ItemType
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)

    password: Optional[PasswordData] = None
    note: Optional[NoteData] = None
    link: Optional[LinkData] = None
    crypto_wallet: Optional[CryptoWalletData] = None
    document: Optional[DocumentData] = None

    # None means default visibilities: owner and creator edit, everyone else view
    visibilities: Optional[List[ItemVisibilityRequest]] = None

    @model_validator(mode="after")
    def check_payload(self) -> "CreateItemRequest":
        field = payload_field(self.item_type)
        if getattr(self, field) is None:
            raise ValueError(f"{field} data is required for {self.item_type.value} items")
        return self


class UpdateItemRequest(BaseModel):
    """
    Request model for updating an item.

    Unset fields are left unchanged. ``visibilities=None`` keeps the current
    visibility rows; a list, even an empty one, replaces them.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)

    password: Optional[PasswordData] = None
    note: Optional[NoteData] = None
    link: Optional[LinkData] = None
    crypto_wallet: Optional[CryptoWalletData] = None

    # Replace the stored file, or drop it
    document: Optional[DocumentData] = None
    delete_document: bool = False

    visibilities: Optional[List[ItemVisibilityRequest]] = None


class VaultItem(BaseModel):
    """
    Vault item model - represents a row in the vaultshare_vault_items table.

    The secret payload lives in the sub-table matching ``item_type``.
    """

    id: UUID
    vault_id: UUID
    created_by_user_id: UUID

    item_type: ItemType
    title: str
    description: Optional[str] = None

    status: ItemStatus = ItemStatus.ACTIVE

    # Timestamps
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "vault_id": "456e7890-e89b-12d3-a456-426614174000",
                "created_by_user_id": "789e0123-e89b-12d3-a456-426614174000",
                "item_type": "password",
                "title": "Bank login",
                "description": None,
                "status": "active",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z",
                "deleted_at": None,
                "deleted_by": None,
            }
        },
    }


class ItemVisibility(BaseModel):
    """
    Visibility row - represents a row in the vaultshare_item_visibilities table.

    A row grants one member VIEW or EDIT on one item. No row means no access.
    """

    id: UUID
    item_id: UUID
    member_id: UUID
    permission: ItemPermission
    created_at: datetime

    model_config = {"from_attributes": True}


class VaultItemView(BaseModel):
    """An item as seen by a caller with at least VIEW permission, decrypted."""

    id: UUID
    vault_id: UUID
    created_by_user_id: UUID
    item_type: ItemType
    title: str
    description: Optional[str] = None
    status: ItemStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    user_permission: ItemPermission

    password: Optional[PasswordData] = None
    note: Optional[NoteData] = None
    link: Optional[LinkData] = None
    crypto_wallet: Optional[CryptoWalletData] = None
    document: Optional[DocumentInfo] = None

    # Only filled in for callers who can edit the item
    visibilities: Optional[List[ItemVisibility]] = None

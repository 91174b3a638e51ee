"""
Vaultshare items module.

Typed secret items and the per-item visibility matrix.
"""

from .items import VaultItemManager
from .models import (
    ContentFormat,
    CreateItemRequest,
    CryptoWalletData,
    DocumentData,
    DocumentInfo,
    ItemPermission,
    ItemStatus,
    ItemType,
    ItemVisibility,
    ItemVisibilityRequest,
    LinkData,
    NoteData,
    PasswordData,
    UpdateItemRequest,
    VaultItem,
    VaultItemView,
    WalletType,
)
from .visibility import VisibilityManager, effective_permission

__all__ = [
    "VaultItemManager",
    "VisibilityManager",
    "effective_permission",
    "VaultItem",
    "VaultItemView",
    "ItemVisibility",
    "ItemVisibilityRequest",
    "CreateItemRequest",
    "UpdateItemRequest",
    "ItemType",
    "ItemStatus",
    "ItemPermission",
    "ContentFormat",
    "WalletType",
    "PasswordData",
    "NoteData",
    "LinkData",
    "CryptoWalletData",
    "DocumentData",
    "DocumentInfo",
]

"""
Vaultshare - Shared secret vaults with release policies, on Supabase.

Owners keep passwords, notes, links, crypto wallets and documents in a
vault, invite people by e-mail, and decide per item who may view or edit.
A release policy controls when invited members may open the vault at all.

Example:
    ```python
    from vaultshare import VaultShare, PolicyType, ItemType

    # Initialize vaultshare
    vaultshare = await VaultShare.create()

    # Vault with a dead-man's-switch style manual release
    vault = await vaultshare.vaults.create(
        user_id=owner_id,
        name="Estate",
        policy_type=PolicyType.MANUAL_RELEASE,
    )

    # Invitations
    invite = await vaultshare.invites.create(vault.id, "heir@example.com", owner_id)
    await vaultshare.invites.accept(invite.token, "heir@example.com", heir_id)

    # Items
    item = await vaultshare.items.create(
        CreateItemRequest(
            vault_id=vault.id,
            item_type=ItemType.PASSWORD,
            title="Bank",
            password=PasswordData(username="me", password="hunter2"),
        ),
        user_id=owner_id,
    )

    # Open the vault to members
    await vaultshare.policies.release_manually(vault.id, owner_id)
    ```
"""

from .audit import AuditAction, AuditLogEntry, AuditLogger
from .client import VaultShare
from .config import VaultShareConfig, load_config
from .exceptions import (
    DecryptionError,
    ForbiddenError,
    InvalidPolicyConfigurationError,
    InvalidRequestError,
    NotAccessibleError,
    NotFoundError,
    VaultShareError,
)
from .invitations import InvitationManager, InviteInfo, InviteStatus, VaultInvite, VaultInviteWithToken
from .items import (
    CreateItemRequest,
    CryptoWalletData,
    DocumentData,
    ItemPermission,
    ItemType,
    ItemVisibilityRequest,
    LinkData,
    NoteData,
    PasswordData,
    UpdateItemRequest,
    VaultItem,
    VaultItemView,
)
from .notifications import NotificationKind, VaultNotification
from .policies import PolicyType, ReleaseStatus, VaultPolicy
from .vaults import MemberStatus, Privilege, Vault, VaultMember, VaultView

__version__ = "0.1.0"

__all__ = [
    # Main client
    "VaultShare",
    "VaultShareConfig",
    "load_config",
    # Errors
    "VaultShareError",
    "NotFoundError",
    "ForbiddenError",
    "NotAccessibleError",
    "InvalidPolicyConfigurationError",
    "InvalidRequestError",
    "DecryptionError",
    # Vaults and membership
    "Vault",
    "VaultView",
    "VaultMember",
    "Privilege",
    "MemberStatus",
    # Release policies
    "VaultPolicy",
    "PolicyType",
    "ReleaseStatus",
    # Invitations
    "InvitationManager",
    "VaultInvite",
    "VaultInviteWithToken",
    "InviteInfo",
    "InviteStatus",
    # Items
    "VaultItem",
    "VaultItemView",
    "ItemType",
    "ItemPermission",
    "ItemVisibilityRequest",
    "CreateItemRequest",
    "UpdateItemRequest",
    "PasswordData",
    "NoteData",
    "LinkData",
    "CryptoWalletData",
    "DocumentData",
    # Activity log
    "AuditLogger",
    "AuditLogEntry",
    "AuditAction",
    # Notifications
    "NotificationKind",
    "VaultNotification",
]

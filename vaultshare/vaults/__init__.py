"""
Vaultshare vaults module.

Provides vault and membership management.
"""

from .members import MembershipManager
from .models import (
    CreateVaultRequest,
    MemberStatus,
    Privilege,
    UpdateVaultRequest,
    Vault,
    VaultMember,
    VaultStatus,
    VaultView,
)
from .vaults import VaultManager

__all__ = [
    "VaultManager",
    "MembershipManager",
    "Vault",
    "VaultMember",
    "VaultView",
    "VaultStatus",
    "Privilege",
    "MemberStatus",
    "CreateVaultRequest",
    "UpdateVaultRequest",
]

"""
Vaultshare release policy module.

Decides when non-owners may open a vault.
"""

from .models import PolicySettings, PolicyType, ReleaseStatus, VaultPolicy
from .policies import PolicyManager

__all__ = [
    "PolicyManager",
    "PolicySettings",
    "PolicyType",
    "ReleaseStatus",
    "VaultPolicy",
]

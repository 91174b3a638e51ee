"""
Vaultshare invitations module.

Invite people to vaults by e-mail.
"""

from .invites import InvitationManager, hash_token
from .models import InviteInfo, InviteStatus, VaultInvite, VaultInviteWithToken

__all__ = [
    "InvitationManager",
    "InviteInfo",
    "InviteStatus",
    "VaultInvite",
    "VaultInviteWithToken",
    "hash_token",
]

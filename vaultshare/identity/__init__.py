"""
Vaultshare identity module.

Account lookups used to resolve invitees and verify e-mail addresses.
"""

from .models import AccountUser
from .users import UserDirectory

__all__ = [
    "UserDirectory",
    "AccountUser",
]

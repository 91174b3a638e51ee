"""
Vaultshare accounts module.
"""

from .cleanup import AccountCleanup, AccountDeletionResult

__all__ = ["AccountCleanup", "AccountDeletionResult"]

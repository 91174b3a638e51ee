"""
Vaultshare activity log module.

Records who did what in each vault.
"""

from .logger import AuditLogger
from .models import AuditAction, AuditLogEntry

__all__ = [
    "AuditLogger",
    "AuditLogEntry",
    "AuditAction",
]

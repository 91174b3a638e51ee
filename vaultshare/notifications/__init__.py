"""
Vaultshare notifications module.

In-app notifications and invitation e-mails.
"""

from .models import NotificationKind, VaultNotification
from .notifier import NotificationManager

__all__ = [
    "NotificationManager",
    "NotificationKind",
    "VaultNotification",
]

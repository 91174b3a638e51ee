"""Vaultshare utilities."""

from .retention import ActiveState, DeletedState, can_restore, soft_delete_state
from .timeutils import as_utc, to_iso, utcnow

__all__ = [
    "ActiveState",
    "DeletedState",
    "can_restore",
    "soft_delete_state",
    "as_utc",
    "to_iso",
    "utcnow",
]

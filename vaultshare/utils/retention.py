"""
Soft-delete state and restore windows.

Vaults and items are never hard-deleted by their owners; they are marked
deleted and may be restored for a limited time.
"""

from datetime import datetime, timedelta
from typing import Literal, Optional, Union

from pydantic import BaseModel

from .timeutils import as_utc

DEFAULT_RESTORE_WINDOW = timedelta(days=30)


class ActiveState(BaseModel):
    """Entity is live."""

    kind: Literal["active"] = "active"


class DeletedState(BaseModel):
    """Entity was soft-deleted at ``deleted_at``."""

    kind: Literal["deleted"] = "deleted"
    deleted_at: datetime


SoftDeleteState = Union[ActiveState, DeletedState]


def soft_delete_state(status: str, deleted_at: Optional[datetime]) -> SoftDeleteState:
    """
    Build the tagged state from a row's status column and deletion timestamp.

    Raises:
        ValueError: If a deleted row carries no deletion timestamp
    """
    if status != "deleted":
        return ActiveState()
    if deleted_at is None:
        raise ValueError("deleted rows must carry deleted_at")
    return DeletedState(deleted_at=deleted_at)


def can_restore(
    state: SoftDeleteState,
    now: datetime,
    window: timedelta = DEFAULT_RESTORE_WINDOW,
) -> bool:
    """
    Check whether a soft-deleted entity may still be restored.

    Restorable while ``now - deleted_at <= window``. Active entities have
    nothing to restore.

    Examples:
        >>> from datetime import timezone
        >>> deleted = DeletedState(deleted_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        >>> can_restore(deleted, datetime(2024, 1, 31, tzinfo=timezone.utc))
        True
        >>> can_restore(deleted, datetime(2024, 2, 1, tzinfo=timezone.utc))
        False
    """
    if not isinstance(state, DeletedState):
        return False
    return as_utc(now) - as_utc(state.deleted_at) <= window

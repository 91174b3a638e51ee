"""
Account lookups for vaultshare.

Reads the vaultshare_users table, which mirrors Supabase auth users.

Wraps: supabase_auth._async.gotrue_admin_api.AsyncGoTrueAdminAPI.delete_user
"""

from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from ..exceptions import NotFoundError
from .models import AccountUser

if TYPE_CHECKING:
    from ..client import VaultShare


class UserDirectory:
    """
    Resolves accounts by id or e-mail.

    E-mail addresses are stored lowercased and matched case-insensitively.

    Example:
        ```python
        user = await vaultshare.users.get_by_email("Alice@Example.com")
        if user and user.email_verified:
            ...
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize UserDirectory.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    async def get(self, user_id: UUID) -> Optional[AccountUser]:
        """
        Get an account by its id.

        Args:
            user_id: Account UUID

        Returns:
            AccountUser if found, None otherwise
        """
        result = await self.client.table("vaultshare_users").select("*").eq(
            "id", str(user_id)
        ).execute()

        if not result.data:
            return None

        return AccountUser(**result.data[0])

    async def get_by_email(self, email: str) -> Optional[AccountUser]:
        """
        Get an account by e-mail address.

        Args:
            email: E-mail address, any case

        Returns:
            AccountUser if found, None otherwise
        """
        result = await self.client.table("vaultshare_users").select("*").eq(
            "email", email.strip().lower()
        ).execute()

        if not result.data:
            return None

        return AccountUser(**result.data[0])

    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, AccountUser]:
        """Fetch several accounts at once, keyed by id."""
        ids = [str(user_id) for user_id in set(user_ids)]
        if not ids:
            return {}

        result = await self.client.table("vaultshare_users").select("*").in_(
            "id", ids
        ).execute()

        users = [AccountUser(**row) for row in result.data]
        return {user.id: user for user in users}

    async def delete(self, user_id: UUID) -> None:
        """
        Permanently delete an account row and its Supabase auth user.

        Only ``AccountCleanup`` should call this; it removes everything that
        refers to the account first.

        Raises:
            NotFoundError: If the account does not exist
        """
        user = await self.get(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")

        if user.supabase_auth_id:
            await self.client.auth.admin.delete_user(
                str(user.supabase_auth_id), should_soft_delete=False
            )

        await self.client.table("vaultshare_users").delete().eq(
            "id", str(user_id)
        ).execute()

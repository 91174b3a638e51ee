"""
Supabase client wrapper for vaultshare.

Provides a thin wrapper around the Supabase AsyncClient with vaultshare-specific
configuration: PostgREST tables, the auth admin API (invite e-mails, account
deletion), Storage (document blobs) and RPC (migrations).
"""

from typing import Any, Dict, Optional

from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncMemoryStorage

from ..config import VaultShareConfig


class VaultShareSupabaseClient:
    """
    Wrapper around Supabase AsyncClient with vaultshare-specific configuration.

    Example:
        ```python
        config = VaultShareConfig()
        client = await VaultShareSupabaseClient.create(config)

        result = await client.table("vaultshare_vaults").select("*").execute()
        ```
    """

    def __init__(self, config: VaultShareConfig, client: AsyncClient) -> None:
        """
        Initialize the wrapper.

        Args:
            config: Vaultshare configuration
            client: Initialized Supabase AsyncClient

        Note:
            Use VaultShareSupabaseClient.create() instead of direct instantiation.
        """
        self.config = config
        self._client = client

    @classmethod
    async def create(cls, config: VaultShareConfig) -> "VaultShareSupabaseClient":
        """
        Create and initialize a VaultShareSupabaseClient.

        Args:
            config: Vaultshare configuration with Supabase credentials

        Returns:
            Initialized VaultShareSupabaseClient
        """
        options = AsyncClientOptions(
            schema=config.db_schema,
            storage=AsyncMemoryStorage(),
            # Service role key for admin operations
            headers={
                "apikey": config.supabase_key,
                "Authorization": f"Bearer {config.supabase_key}",
            },
        )

        client = await acreate_client(
            supabase_url=config.supabase_url,
            supabase_key=config.supabase_key,
            options=options,
        )

        return cls(config=config, client=client)

    @property
    def auth(self):
        """Supabase Auth client (``auth.admin`` for invite e-mails and user deletion)."""
        return self._client.auth

    @property
    def storage(self):
        """Supabase Storage client used for document blobs."""
        return self._client.storage

    def table(self, table_name: str):
        """
        Create a query builder for a specific table.

        Args:
            table_name: Name of the table (e.g., "vaultshare_vaults")

        Returns:
            AsyncRequestBuilder for chaining queries
        """
        return self._client.table(table_name)

    def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None):
        """
        Call a Postgres function exposed through PostgREST.

        Args:
            fn: Function name
            params: Named arguments

        Returns:
            Request builder; await ``.execute()`` on it
        """
        return self._client.rpc(fn, params or {})

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        # The AsyncClient keeps no resources that need explicit release
        pass

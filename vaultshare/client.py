"""
Main vaultshare client.

This is the primary interface users interact with.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .accounts import AccountCleanup
from .audit import AuditLogger
from .config import VaultShareConfig, load_config
from .identity import UserDirectory
from .invitations import InvitationManager
from .items import VaultItemManager, VisibilityManager
from .notifications import NotificationManager
from .policies import PolicyManager
from .storage import DocumentStorage
from .utils.supabase import VaultShareSupabaseClient
from .utils.timeutils import as_utc, utcnow
from .vaults import MembershipManager, VaultManager

logger = logging.getLogger(__name__)


class VaultShare:
    """
    Main vaultshare client for shared secret vaults.

    Provides one manager per concern: vaults, members, policies, invites,
    items, visibility, audit, notifications, documents, users and accounts.
    Every method that acts on behalf of someone takes the acting user's id.

    Example:
        ```python
        from vaultshare import VaultShare, PolicyType

        # Initialize from environment variables
        vaultshare = await VaultShare.create()

        vault = await vaultshare.vaults.create(
            user_id=owner_id,
            name="Family",
            policy_type=PolicyType.MANUAL_RELEASE,
        )
        invite = await vaultshare.invites.create(vault.id, "bob@example.com", owner_id)
        ```
    """

    def __init__(
        self,
        config: VaultShareConfig,
        client: VaultShareSupabaseClient,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the vaultshare client.

        Args:
            config: Vaultshare configuration
            client: Supabase client wrapper
            clock: Returns the current time; defaults to the system clock.
                Every time-based decision (policy release, invite expiry,
                restore windows) reads it.

        Note:
            Use VaultShare.create() instead of direct instantiation.
        """
        self.config = config
        self.client = client
        self._clock = clock or utcnow

        if config.debug:
            logging.getLogger("vaultshare").setLevel(logging.DEBUG)

        # Collaborators
        self.users = UserDirectory(self)
        self.audit = AuditLogger(self)
        self.notifications = NotificationManager(self)
        self.documents = DocumentStorage(self)

        # Vaults, membership and release policies
        self.vaults = VaultManager(self)
        self.members = MembershipManager(self)
        self.policies = PolicyManager(self)
        self.invites = InvitationManager(self)

        # Items
        self.items = VaultItemManager(self)
        self.visibility = VisibilityManager(self)

        self.accounts = AccountCleanup(self)

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        return as_utc(self._clock())

    @classmethod
    async def create(
        cls,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        **kwargs,
    ) -> "VaultShare":
        """
        Create and initialize a vaultshare client.

        Args:
            supabase_url: Supabase project URL (optional, loads from env)
            supabase_key: Supabase service role key (optional, loads from env)
            clock: Optional time source, mainly for tests
            **kwargs: Additional configuration options

        Returns:
            Initialized VaultShare client

        Raises:
            ValidationError: If required configuration is missing or invalid

        Example:
            ```python
            # Load from environment (.env file or VAULTSHARE_* env vars)
            vaultshare = await VaultShare.create()

            # Explicit configuration
            vaultshare = await VaultShare.create(
                supabase_url="https://xxx.supabase.co",
                supabase_key="your-service-key",
                encryption_secret="long-random-server-secret",
            )
            ```
        """
        config_kwargs = kwargs.copy()
        if supabase_url:
            config_kwargs["supabase_url"] = supabase_url
        if supabase_key:
            config_kwargs["supabase_key"] = supabase_key

        config = load_config(**config_kwargs)

        client = await VaultShareSupabaseClient.create(config)

        if config.auto_migrate:
            from .migrations.manager import MigrationManager

            manager = MigrationManager(client)
            await manager.migrate()

        return cls(config=config, client=client, clock=clock)

    async def close(self) -> None:
        """
        Close the client and cleanup resources.

        Example:
            ```python
            vaultshare = await VaultShare.create()
            try:
                ...
            finally:
                await vaultshare.close()
            ```
        """
        await self.client.close()

    async def __aenter__(self) -> "VaultShare":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()

"""
Release policy persistence for vaultshare.

Loads and stores rows of vaultshare_vault_policies and drives them through
the state machine in ``engine``. Time-driven transitions are applied lazily
whenever a policy is read for an access decision.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from ..audit.models import AuditAction
from ..exceptions import InvalidPolicyConfigurationError, NotFoundError
from ..notifications.models import NotificationKind
from ..utils.timeutils import to_iso
from . import engine
from .models import PolicySettings, PolicyType, ReleaseStatus, VaultPolicy

if TYPE_CHECKING:
    from ..client import VaultShare
    from ..vaults.models import Vault

logger = logging.getLogger(__name__)

_TRANSITION_EVENTS = {
    ReleaseStatus.RELEASED: (NotificationKind.VAULT_RELEASED, AuditAction.POLICY_RELEASED),
    ReleaseStatus.EXPIRED: (NotificationKind.VAULT_EXPIRED, AuditAction.POLICY_EXPIRED),
    ReleaseStatus.REVOKED: (NotificationKind.VAULT_REVOKED, AuditAction.POLICY_REVOKED),
}


class PolicyManager:
    """
    Manager for vault release policies.

    Status updates are conditional on the status the caller observed, so
    when several requests notice the same due transition only one of them
    writes it and notifies members.

    Example:
        ```python
        # Gate for non-owners
        if not await vaultshare.policies.is_accessible(vault, user_id):
            raise NotAccessibleError()

        # Owner opens a manual-release vault
        policy = await vaultshare.policies.release_manually(vault.id, owner_id)
        ```
    """

    def __init__(self, vaultshare: "VaultShare") -> None:
        """
        Initialize PolicyManager.

        Args:
            vaultshare: Main VaultShare client instance
        """
        self.vaultshare = vaultshare
        self.client = vaultshare.client

    async def create(self, vault_id: UUID, settings: PolicySettings) -> VaultPolicy:
        """
        Insert the policy of a new vault.

        Called by ``VaultManager.create`` after validating the settings.
        """
        now = self.vaultshare.now()
        status = engine.initial_status(settings.policy_type)

        result = await self.client.table("vaultshare_vault_policies").insert(
            {
                "vault_id": str(vault_id),
                "policy_type": settings.policy_type.value,
                "release_status": status.value,
                "release_date": to_iso(settings.release_date),
                "expires_at": to_iso(settings.expires_at),
                "released_at": to_iso(now) if status == ReleaseStatus.RELEASED else None,
                "note": settings.note,
                "created_at": to_iso(now),
                "updated_at": to_iso(now),
            }
        ).execute()

        if not result.data:
            raise ValueError("Failed to create vault policy")

        return VaultPolicy(**result.data[0])

    async def get(self, vault_id: UUID) -> Optional[VaultPolicy]:
        """
        Get a vault's policy as stored, without applying due transitions.

        Args:
            vault_id: Vault UUID

        Returns:
            VaultPolicy if the vault has one, None otherwise
        """
        result = await self.client.table("vaultshare_vault_policies").select("*").eq(
            "vault_id", str(vault_id)
        ).execute()

        if not result.data:
            return None

        return VaultPolicy(**result.data[0])

    async def evaluate(self, vault_id: UUID) -> Optional[VaultPolicy]:
        """
        Get a vault's policy with every due transition applied and persisted.

        Args:
            vault_id: Vault UUID

        Returns:
            The current VaultPolicy, or None if the vault has no policy
        """
        policy = await self.get(vault_id)
        if policy is None:
            return None

        advanced = engine.advance(policy, self.vaultshare.now())
        if advanced is policy:
            return policy

        if await self._persist(policy, advanced):
            logger.info(
                "Vault %s policy moved from %s to %s",
                vault_id,
                policy.release_status.value,
                advanced.release_status.value,
            )
            await self._announce(advanced, actor_id=None)
            return advanced

        # Another request wrote the transition first
        return await self.get(vault_id)

    async def is_accessible(self, vault: "Vault", user_id: UUID) -> bool:
        """
        Whether a user may open a vault right now.

        The owner always may. A vault without a policy row is open.
        """
        if vault.owner_id == user_id:
            return True

        policy = await self.evaluate(vault.id)
        if policy is None:
            return True

        return policy.release_status == ReleaseStatus.RELEASED

    async def release_manually(self, vault_id: UUID, user_id: UUID) -> VaultPolicy:
        """
        Open a manual-release vault to its members.

        Releasing an already released vault returns the policy unchanged.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be the owner

        Returns:
            The released VaultPolicy

        Raises:
            ForbiddenError: If the caller is not the owner
            InvalidPolicyConfigurationError: If the policy is not manual-release
                or is expired/revoked
        """
        policy = await self._owner_policy(vault_id, user_id)

        released = engine.release(policy, user_id, self.vaultshare.now())
        if released is policy:
            return policy

        if not await self._persist(policy, released):
            return await self.get(vault_id)

        await self._announce(released, actor_id=user_id)
        return released

    async def revoke(self, vault_id: UUID, user_id: UUID) -> VaultPolicy:
        """
        Close a vault to its members for good.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be the owner

        Returns:
            The revoked VaultPolicy
        """
        policy = await self._owner_policy(vault_id, user_id)

        revoked = engine.revoke(policy, self.vaultshare.now())
        if revoked is policy:
            return policy

        if not await self._persist(policy, revoked):
            return await self.get(vault_id)

        await self._announce(revoked, actor_id=user_id)
        return revoked

    async def update(
        self,
        vault_id: UUID,
        user_id: UUID,
        policy_type: PolicyType,
        release_date: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> VaultPolicy:
        """
        Reconfigure a vault's policy while it is still pending.

        The new configuration is validated like a new vault's, and the status
        restarts from the new type's initial status.

        Args:
            vault_id: Vault UUID
            user_id: Calling user, who must be the owner
            policy_type: New policy type
            release_date: Required for time-based policies
            expires_at: Required for expiry-based policies
            note: New note; the current note is kept when None

        Returns:
            Updated VaultPolicy

        Raises:
            InvalidPolicyConfigurationError: If the policy is no longer
                pending or the new configuration is invalid
        """
        policy = await self._owner_policy(vault_id, user_id)

        if policy.release_status != ReleaseStatus.PENDING:
            raise InvalidPolicyConfigurationError(
                f"Cannot change a {policy.release_status.value} policy"
            )

        now = self.vaultshare.now()
        settings = PolicySettings(
            policy_type=policy_type,
            release_date=release_date,
            expires_at=expires_at,
            note=note if note is not None else policy.note,
        )
        engine.validate_policy(
            settings.policy_type, settings.release_date, settings.expires_at, now
        )

        status = engine.initial_status(settings.policy_type)
        updated = policy.model_copy(
            update={
                "policy_type": settings.policy_type,
                "release_status": status,
                "release_date": settings.release_date,
                "expires_at": settings.expires_at,
                "released_at": now if status == ReleaseStatus.RELEASED else None,
                "released_by": user_id if status == ReleaseStatus.RELEASED else None,
                "note": settings.note,
                "updated_at": now,
            }
        )

        if not await self._persist(policy, updated):
            raise InvalidPolicyConfigurationError("Policy changed while updating")

        await self.vaultshare.audit.log(
            AuditAction.POLICY_UPDATED,
            vault_id=vault_id,
            user_id=user_id,
            metadata={"policy_type": settings.policy_type.value},
        )

        if status == ReleaseStatus.RELEASED:
            await self._announce(updated, actor_id=user_id)

        return updated

    async def _owner_policy(self, vault_id: UUID, user_id: UUID) -> VaultPolicy:
        await self.vaultshare.members.require_owner(vault_id, user_id)

        policy = await self.evaluate(vault_id)
        if policy is None:
            raise NotFoundError("Vault policy not found")
        return policy

    async def _persist(self, previous: VaultPolicy, current: VaultPolicy) -> bool:
        """Write ``current`` if the stored status still equals ``previous``'s."""
        result = await self.client.table("vaultshare_vault_policies").update(
            {
                "policy_type": current.policy_type.value,
                "release_status": current.release_status.value,
                "release_date": to_iso(current.release_date),
                "expires_at": to_iso(current.expires_at),
                "released_at": to_iso(current.released_at),
                "released_by": str(current.released_by) if current.released_by else None,
                "note": current.note,
                "updated_at": to_iso(current.updated_at),
            }
        ).eq("id", str(previous.id)).eq(
            "release_status", previous.release_status.value
        ).execute()

        return bool(result.data)

    async def _announce(self, policy: VaultPolicy, actor_id: Optional[UUID]) -> None:
        """Log a status transition and tell every active member about it."""
        events = _TRANSITION_EVENTS.get(policy.release_status)
        if events is None:
            return
        kind, action = events

        await self.vaultshare.audit.log(
            action,
            vault_id=policy.vault_id,
            user_id=actor_id,
            metadata={"policy_type": policy.policy_type.value},
        )

        record = await self.vaultshare.vaults.get_record(policy.vault_id)
        vault_name = record.name if record else ""

        members = await self.vaultshare.members.list_active(policy.vault_id)
        await self.vaultshare.notifications.send_many(
            kind,
            [member.user_id for member in members],
            vault_id=policy.vault_id,
            context={"vault_name": vault_name},
        )

"""
Release policy state machine.

Pure functions over VaultPolicy. Nothing here touches the database or the
system clock; callers pass ``now`` and persist whatever comes back.

    immediate       released ────────────────────────────┐
    expiry_based    released ── now > expires_at ──> expired
    time_based      pending ─── now >= release_date ──> released
    manual_release  pending ─── owner release ──> released
    any non-terminal ── owner revoke ──> revoked

Expired and revoked are terminal.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from ..exceptions import InvalidPolicyConfigurationError
from ..utils.timeutils import as_utc
from .models import TERMINAL_STATUSES, PolicyType, ReleaseStatus, VaultPolicy


def initial_status(policy_type: PolicyType) -> ReleaseStatus:
    """Status a freshly created policy starts in."""
    if policy_type in (PolicyType.IMMEDIATE, PolicyType.EXPIRY_BASED):
        return ReleaseStatus.RELEASED
    return ReleaseStatus.PENDING


def validate_policy(
    policy_type: PolicyType,
    release_date: Optional[datetime],
    expires_at: Optional[datetime],
    now: datetime,
) -> None:
    """
    Validate a requested policy configuration.

    Raises:
        InvalidPolicyConfigurationError: If a required date is missing or not
            strictly in the future, or a date is given for a policy type that
            does not use it
    """
    now = as_utc(now)

    if policy_type == PolicyType.TIME_BASED:
        if release_date is None:
            raise InvalidPolicyConfigurationError(
                "release_date is required for time-based policies"
            )
        if as_utc(release_date) <= now:
            raise InvalidPolicyConfigurationError("release_date must be in the future")
    elif release_date is not None:
        raise InvalidPolicyConfigurationError(
            f"release_date is not used by {policy_type.value} policies"
        )

    if policy_type == PolicyType.EXPIRY_BASED:
        if expires_at is None:
            raise InvalidPolicyConfigurationError(
                "expires_at is required for expiry-based policies"
            )
        if as_utc(expires_at) <= now:
            raise InvalidPolicyConfigurationError("expires_at must be in the future")
    elif expires_at is not None:
        raise InvalidPolicyConfigurationError(
            f"expires_at is not used by {policy_type.value} policies"
        )


def advance(policy: VaultPolicy, now: datetime) -> VaultPolicy:
    """
    Apply every time-driven transition that is due at ``now``.

    Returns the same object when nothing changes, otherwise an updated copy.
    """
    now = as_utc(now)

    if (
        policy.policy_type == PolicyType.TIME_BASED
        and policy.release_status == ReleaseStatus.PENDING
        and policy.release_date is not None
        and now >= as_utc(policy.release_date)
    ):
        return policy.model_copy(
            update={
                "release_status": ReleaseStatus.RELEASED,
                "released_at": now,
                "updated_at": now,
            }
        )

    if (
        policy.policy_type == PolicyType.EXPIRY_BASED
        and policy.release_status == ReleaseStatus.RELEASED
        and policy.expires_at is not None
        and now > as_utc(policy.expires_at)
    ):
        return policy.model_copy(
            update={"release_status": ReleaseStatus.EXPIRED, "updated_at": now}
        )

    return policy


def is_accessible(policy: VaultPolicy, now: datetime) -> bool:
    """Whether non-owners may open the vault at ``now``."""
    return advance(policy, now).release_status == ReleaseStatus.RELEASED


def release(policy: VaultPolicy, released_by: UUID, now: datetime) -> VaultPolicy:
    """
    Manually release a pending manual-release policy.

    Releasing an already released policy returns it unchanged.

    Raises:
        InvalidPolicyConfigurationError: If the policy is not manual-release,
            or is expired/revoked
    """
    if policy.policy_type != PolicyType.MANUAL_RELEASE:
        raise InvalidPolicyConfigurationError(
            "Only manual-release policies can be released manually"
        )
    if policy.release_status == ReleaseStatus.RELEASED:
        return policy
    if policy.release_status != ReleaseStatus.PENDING:
        raise InvalidPolicyConfigurationError(
            f"Cannot release a {policy.release_status.value} policy"
        )

    now = as_utc(now)
    return policy.model_copy(
        update={
            "release_status": ReleaseStatus.RELEASED,
            "released_at": now,
            "released_by": released_by,
            "updated_at": now,
        }
    )


def revoke(policy: VaultPolicy, now: datetime) -> VaultPolicy:
    """Close a vault for good. Terminal policies are returned unchanged."""
    if is_terminal(policy):
        return policy
    return policy.model_copy(
        update={"release_status": ReleaseStatus.REVOKED, "updated_at": as_utc(now)}
    )


def is_terminal(policy: VaultPolicy) -> bool:
    return policy.release_status in TERMINAL_STATUSES

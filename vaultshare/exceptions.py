"""
Vaultshare exceptions.

Every error subclasses the builtin exception callers of this library
already catch (ValueError, PermissionError, LookupError).
"""


class VaultShareError(Exception):
    """Base class for all vaultshare errors."""


class NotFoundError(VaultShareError, LookupError):
    """
    Entity does not exist, or the caller has no right to know it exists.

    Both cases raise the same error with the same message shape.
    """


class ForbiddenError(VaultShareError, PermissionError):
    """Caller is known to the vault but lacks the required privilege or permission."""


class NotAccessibleError(ForbiddenError):
    """
    Vault is closed to the caller by its release policy.

    Pending, expired and revoked vaults raise the same message.
    """

    def __init__(self, message: str = "Vault is not accessible") -> None:
        super().__init__(message)


class InvalidPolicyConfigurationError(VaultShareError, ValueError):
    """Release policy dates or transitions are invalid."""


class InvalidRequestError(VaultShareError, ValueError):
    """Request is well-formed but cannot be applied to the current state."""


class DecryptionError(VaultShareError):
    """Ciphertext could not be authenticated with the current vault key."""

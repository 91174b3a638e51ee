"""
Per-vault key derivation.

Keys are never stored. Every operation re-derives the key from the vault id,
the vault's *current* owner id and the server secret, so every authorized
member encrypts and decrypts with the same key.

Because the owner id is part of the input, transferring ownership changes the
key. Ciphertext written before a transfer stays bound to the previous owner's
key until ``VaultItemManager.reencrypt`` is run for the vault.
"""

import hashlib
from uuid import UUID


def derive_vault_key(vault_id: UUID, owner_id: UUID, server_secret: str) -> bytes:
    """
    Derive the 256-bit symmetric key of a vault.

    Args:
        vault_id: Vault UUID
        owner_id: UUID of the vault's current owner
        server_secret: Server-side secret from configuration

    Returns:
        32-byte key

    Example:
        ```python
        key = derive_vault_key(vault.id, vault.owner_id, config.encryption_secret)
        ciphertext = encrypt("hunter2", key)
        ```
    """
    material = f"{vault_id}_{owner_id}_{server_secret}"
    return hashlib.sha256(material.encode("utf-8")).digest()

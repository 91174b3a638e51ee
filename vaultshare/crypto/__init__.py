"""
Vaultshare crypto module.

Key derivation and the symmetric cipher used for secret item fields.
"""

from .cipher import decrypt, encrypt
from .keys import derive_vault_key

__all__ = [
    "derive_vault_key",
    "encrypt",
    "decrypt",
]

"""
Symmetric encryption of secret fields.

AES-256-GCM with a random 96-bit nonce per message. The stored form is
``urlsafe_b64(nonce || ciphertext || tag)``.
"""

import base64
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionError

NONCE_SIZE = 12


def encrypt(plaintext: str, key: bytes) -> str:
    """
    Encrypt a string with a vault key.

    Empty input encrypts to an empty string so optional fields stay empty.
    """
    if not plaintext:
        return ""

    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.urlsafe_b64encode(nonce + sealed).decode("ascii")


def decrypt(ciphertext: str, key: bytes) -> str:
    """
    Decrypt a string produced by :func:`encrypt`.

    Raises:
        DecryptionError: If the key is wrong or the data was tampered with
    """
    if not ciphertext:
        return ""

    try:
        raw = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        return AESGCM(key).decrypt(nonce, sealed, None).decode("utf-8")
    except (InvalidTag, ValueError) as e:
        raise DecryptionError(
            "Failed to decrypt data. Invalid key or corrupted data."
        ) from e

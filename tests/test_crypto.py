"""
Tests for vaultshare.crypto module.
"""

from uuid import uuid4

import pytest

from vaultshare.crypto import decrypt, derive_vault_key, encrypt
from vaultshare.exceptions import DecryptionError

SECRET = "server-secret-0123456789"


class TestKeyDerivation:
    """Tests for derive_vault_key."""

    def test_key_is_deterministic(self):
        """Test the same inputs always give the same key."""
        vault_id, owner_id = uuid4(), uuid4()
        assert derive_vault_key(vault_id, owner_id, SECRET) == derive_vault_key(
            vault_id, owner_id, SECRET
        )

    def test_key_length(self):
        """Test keys are 256 bits."""
        assert len(derive_vault_key(uuid4(), uuid4(), SECRET)) == 32

    def test_key_depends_on_owner(self):
        """Test a different owner gives a different key."""
        vault_id = uuid4()
        assert derive_vault_key(vault_id, uuid4(), SECRET) != derive_vault_key(
            vault_id, uuid4(), SECRET
        )

    def test_key_depends_on_secret(self):
        """Test a different server secret gives a different key."""
        vault_id, owner_id = uuid4(), uuid4()
        assert derive_vault_key(vault_id, owner_id, SECRET) != derive_vault_key(
            vault_id, owner_id, SECRET + "x"
        )


class TestCipher:
    """Tests for encrypt and decrypt."""

    def test_encrypt_decrypt(self):
        """Test a value survives encryption."""
        key = derive_vault_key(uuid4(), uuid4(), SECRET)
        ciphertext = encrypt("correct horse battery staple", key)

        assert ciphertext != "correct horse battery staple"
        assert decrypt(ciphertext, key) == "correct horse battery staple"

    def test_nonce_is_random(self):
        """Test encrypting twice gives different ciphertexts."""
        key = derive_vault_key(uuid4(), uuid4(), SECRET)
        assert encrypt("same", key) != encrypt("same", key)

    def test_empty_values_stay_empty(self):
        """Test empty strings are not encrypted."""
        key = derive_vault_key(uuid4(), uuid4(), SECRET)
        assert encrypt("", key) == ""
        assert decrypt("", key) == ""

    def test_wrong_key_fails(self):
        """Test decrypting with another vault's key raises DecryptionError."""
        ciphertext = encrypt("secret", derive_vault_key(uuid4(), uuid4(), SECRET))

        with pytest.raises(DecryptionError):
            decrypt(ciphertext, derive_vault_key(uuid4(), uuid4(), SECRET))

    def test_tampered_ciphertext_fails(self):
        """Test a modified ciphertext is rejected."""
        key = derive_vault_key(uuid4(), uuid4(), SECRET)
        ciphertext = encrypt("secret", key)
        tampered = ciphertext[:-4] + ("AAAA" if not ciphertext.endswith("AAAA") else "BBBB")

        with pytest.raises(DecryptionError):
            decrypt(tampered, key)

    def test_garbage_fails(self):
        """Test input that is not base64 raises DecryptionError."""
        key = derive_vault_key(uuid4(), uuid4(), SECRET)
        with pytest.raises(DecryptionError):
            decrypt("not base64 at all!", key)

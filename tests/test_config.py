"""
Tests for vaultshare.config module.
"""

import pytest
from pydantic import ValidationError

from vaultshare.config import VaultShareConfig, load_config

URL = "https://test.supabase.co"
KEY = "test-key-12345678901234567890"
SECRET = "server-secret-0123456789"


class TestVaultShareConfig:
    """Tests for VaultShareConfig class."""

    def test_config_creation_with_kwargs(self):
        """Test creating config with keyword arguments."""
        config = VaultShareConfig(supabase_url=URL, supabase_key=KEY, encryption_secret=SECRET)

        assert config.supabase_url == URL
        assert config.supabase_key == KEY
        assert config.db_schema == "public"
        assert config.invite_expiry_days == 7
        assert config.restore_window_days == 30
        assert config.document_bucket == "vault-documents"
        assert config.presigned_url_ttl == 3600
        assert config.auto_migrate is False
        assert config.enable_audit_log is True
        assert config.app_base_url is None

    def test_config_with_all_options(self):
        """Test creating config with all options."""
        config = VaultShareConfig(
            supabase_url=URL,
            supabase_key=KEY,
            encryption_secret=SECRET,
            schema="vaults",
            invite_expiry_days=14,
            app_base_url="https://app.example.com/",
            restore_window_days=60,
            document_bucket="docs",
            presigned_url_ttl=120,
            auto_migrate=True,
            enable_audit_log=False,
            debug=True,
        )

        assert config.db_schema == "vaults"
        assert config.invite_expiry_days == 14
        assert config.app_base_url == "https://app.example.com"
        assert config.restore_window_days == 60
        assert config.document_bucket == "docs"
        assert config.presigned_url_ttl == 120
        assert config.auto_migrate is True
        assert config.enable_audit_log is False
        assert config.debug is True

    def test_config_url_strips_trailing_slash(self):
        """Test the Supabase URL loses its trailing slash."""
        config = VaultShareConfig(
            supabase_url="https://test.supabase.co/", supabase_key=KEY, encryption_secret=SECRET
        )
        assert config.supabase_url == URL

    @pytest.mark.parametrize("url", ["http://test.supabase.co", "test.supabase.co"])
    def test_config_url_validation_invalid(self, url):
        """Test URL validation with invalid URLs."""
        with pytest.raises(ValidationError):
            VaultShareConfig(supabase_url=url, supabase_key=KEY, encryption_secret=SECRET)

    def test_config_key_validation_invalid(self):
        """Test key validation with a short key."""
        with pytest.raises(ValidationError):
            VaultShareConfig(supabase_url=URL, supabase_key="short", encryption_secret=SECRET)

    def test_config_encryption_secret_too_short(self):
        """Test a short encryption secret is refused."""
        with pytest.raises(ValidationError):
            VaultShareConfig(supabase_url=URL, supabase_key=KEY, encryption_secret="tooshort")

    @pytest.mark.parametrize("days", [0, 31])
    def test_config_invite_expiry_bounds(self, days):
        """Test invite expiry must stay within 1..30 days."""
        with pytest.raises(ValidationError):
            VaultShareConfig(
                supabase_url=URL, supabase_key=KEY, encryption_secret=SECRET, invite_expiry_days=days
            )

    def test_config_from_environment(self, monkeypatch):
        """Test loading config from VAULTSHARE_* variables."""
        monkeypatch.setenv("VAULTSHARE_SUPABASE_URL", URL)
        monkeypatch.setenv("VAULTSHARE_SUPABASE_KEY", KEY)
        monkeypatch.setenv("VAULTSHARE_ENCRYPTION_SECRET", SECRET)
        monkeypatch.setenv("VAULTSHARE_RESTORE_WINDOW_DAYS", "10")

        config = load_config()

        assert config.supabase_url == URL
        assert config.encryption_secret == SECRET
        assert config.restore_window_days == 10

    def test_load_config_overrides(self, monkeypatch):
        """Test keyword arguments override the environment."""
        monkeypatch.setenv("VAULTSHARE_SUPABASE_URL", "https://env.supabase.co")
        monkeypatch.setenv("VAULTSHARE_SUPABASE_KEY", KEY)
        monkeypatch.setenv("VAULTSHARE_ENCRYPTION_SECRET", SECRET)

        config = load_config(supabase_url=URL)

        assert config.supabase_url == URL

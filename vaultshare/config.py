"""
Vaultshare configuration management.

Loads configuration from environment variables or .env file.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class VaultShareConfig(BaseSettings):
    """
    Vaultshare configuration settings.

    Can be loaded from:
    1. Environment variables (VAULTSHARE_SUPABASE_URL, VAULTSHARE_ENCRYPTION_SECRET, etc.)
    2. .env file in project root
    3. Direct instantiation with kwargs

    Example:
        ```python
        # From environment
        config = VaultShareConfig()

        # Direct instantiation
        config = VaultShareConfig(
            supabase_url="https://xxx.supabase.co",
            supabase_key="your-key",
            encryption_secret="long-random-server-secret",
        )
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULTSHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase connection
    supabase_url: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)",
    )

    supabase_key: str = Field(
        ...,
        description="Supabase service role key (for admin operations)",
    )

    db_schema: str = Field(
        default="public",
        description="PostgreSQL schema where vaultshare tables live",
        alias="schema",
    )

    # Server-side secret mixed into every per-vault key
    encryption_secret: str = Field(
        ...,
        description="Server secret used to derive per-vault encryption keys",
    )

    # Invitations
    invite_expiry_days: int = Field(
        default=7,
        ge=1,
        le=30,
        description="Days until a new or resent invitation expires",
    )

    app_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the web app, used to build invite accept links",
    )

    # Soft delete
    restore_window_days: int = Field(
        default=30,
        ge=1,
        description="Days during which soft-deleted vaults and items can be restored",
    )

    # Documents
    document_bucket: str = Field(
        default="vault-documents",
        description="Supabase Storage bucket holding document blobs",
    )

    presigned_url_ttl: int = Field(
        default=3600,
        ge=60,
        description="Lifetime in seconds of document download URLs",
    )

    # Feature flags
    auto_migrate: bool = Field(
        default=False,
        description="Automatically run migrations on client initialization",
    )

    enable_audit_log: bool = Field(
        default=True,
        description="Record vault activity in the audit log",
    )

    # Debug
    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Ensure Supabase URL is valid."""
        if not v.startswith("https://"):
            raise ValueError("supabase_url must start with https://")
        return v.rstrip("/")

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Ensure Supabase key is not empty."""
        if not v or len(v) < 10:
            raise ValueError("supabase_key appears invalid (too short)")
        return v

    @field_validator("encryption_secret")
    @classmethod
    def validate_encryption_secret(cls, v: str) -> str:
        """Refuse secrets too short to be worth deriving keys from."""
        if not v or len(v) < 16:
            raise ValueError("encryption_secret must be at least 16 characters")
        return v

    @field_validator("app_base_url")
    @classmethod
    def validate_app_base_url(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v


def load_config(**kwargs) -> VaultShareConfig:
    """
    Load Vaultshare configuration.

    Priority order:
    1. Keyword arguments
    2. Environment variables (VAULTSHARE_*)
    3. .env file

    Args:
        **kwargs: Override configuration values

    Returns:
        VaultShareConfig instance

    Raises:
        ValidationError: If required fields are missing or invalid
    """
    return VaultShareConfig(**kwargs)

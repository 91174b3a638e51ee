"""
Tests for vaultshare.utils module.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest

from vaultshare.utils.retention import (
    ActiveState,
    DeletedState,
    can_restore,
    soft_delete_state,
)
from vaultshare.utils.supabase import VaultShareSupabaseClient
from vaultshare.utils.timeutils import as_utc, to_iso

DELETED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestVaultShareSupabaseClient:
    """Tests for VaultShareSupabaseClient class."""

    @pytest.mark.asyncio
    async def test_create_client(self, config):
        """Test creating a VaultShareSupabaseClient."""
        with patch("vaultshare.utils.supabase.acreate_client", new_callable=AsyncMock) as mock_create:
            mock_client = Mock()
            mock_create.return_value = mock_client

            client = await VaultShareSupabaseClient.create(config)

            assert client.config == config
            assert client._client == mock_client
            mock_create.assert_awaited_once()
            assert mock_create.call_args.kwargs["supabase_url"] == config.supabase_url

    def test_table_method(self, supabase_client, fake_db):
        """Test table method delegates to the wrapped client."""
        query = supabase_client.table("vaultshare_vaults")
        assert query.table_name == "vaultshare_vaults"

    def test_storage_and_auth_properties(self, supabase_client, fake_db):
        """Test storage and auth expose the wrapped client's APIs."""
        assert supabase_client.storage is fake_db.storage
        assert supabase_client.auth is fake_db.auth

    def test_rpc_defaults_params(self, supabase_client, fake_db):
        """Test rpc passes an empty dict when no params are given."""
        supabase_client.rpc("exec_sql")
        assert fake_db.rpc_calls == [("exec_sql", {})]

    @pytest.mark.asyncio
    async def test_close_client(self, supabase_client):
        """Test closing client."""
        await supabase_client.close()


class TestTimeUtils:
    """Tests for timestamp helpers."""

    def test_as_utc_naive(self):
        """Test naive datetimes are taken as UTC."""
        assert as_utc(datetime(2024, 1, 1)) == DELETED_AT

    def test_as_utc_converts_offsets(self):
        """Test aware datetimes are converted to UTC."""
        paris = timezone(timedelta(hours=1))
        assert as_utc(datetime(2024, 1, 1, 1, 0, tzinfo=paris)) == DELETED_AT

    def test_to_iso(self):
        """Test serialization for PostgREST."""
        assert to_iso(DELETED_AT) == "2024-01-01T00:00:00+00:00"
        assert to_iso(None) is None


class TestRetention:
    """Tests for soft-delete state and restore windows."""

    def test_active_state(self):
        """Test active rows map to ActiveState."""
        assert isinstance(soft_delete_state("active", None), ActiveState)

    def test_deleted_state(self):
        """Test deleted rows carry their deletion time."""
        state = soft_delete_state("deleted", DELETED_AT)
        assert isinstance(state, DeletedState)
        assert state.deleted_at == DELETED_AT

    def test_deleted_without_timestamp(self):
        """Test a deleted row without deleted_at is rejected."""
        with pytest.raises(ValueError):
            soft_delete_state("deleted", None)

    def test_active_cannot_restore(self):
        """Test active entities have nothing to restore."""
        assert can_restore(ActiveState(), DELETED_AT) is False

    def test_restore_at_window_edge(self):
        """Test restore is allowed exactly at the end of the window."""
        state = DeletedState(deleted_at=DELETED_AT)
        assert can_restore(state, DELETED_AT + timedelta(days=30)) is True

    def test_restore_after_window(self):
        """Test restore is refused once the window has passed."""
        state = DeletedState(deleted_at=DELETED_AT)
        assert can_restore(state, DELETED_AT + timedelta(days=31)) is False

    def test_restore_custom_window(self):
        """Test a shorter window."""
        state = DeletedState(deleted_at=DELETED_AT)
        assert can_restore(state, DELETED_AT + timedelta(days=8), timedelta(days=7)) is False

"""
Pytest configuration and fixtures for vaultshare tests.

Provides an in-memory stand-in for the Supabase client, so manager tests run
real flows against tables held in dicts, and a clock tests can move forward.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from vaultshare.client import VaultShare
from vaultshare.config import VaultShareConfig
from vaultshare.identity.models import AccountUser
from vaultshare.utils.supabase import VaultShareSupabaseClient

START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

# parent table -> [(child table, foreign key column)], mirroring ON DELETE CASCADE
CASCADES = {
    "vaultshare_vaults": [
        ("vaultshare_vault_policies", "vault_id"),
        ("vaultshare_vault_members", "vault_id"),
        ("vaultshare_vault_invites", "vault_id"),
        ("vaultshare_vault_items", "vault_id"),
        ("vaultshare_vault_logs", "vault_id"),
        ("vaultshare_notifications", "vault_id"),
    ],
    "vaultshare_vault_items": [
        ("vaultshare_vault_passwords", "item_id"),
        ("vaultshare_vault_notes", "item_id"),
        ("vaultshare_vault_links", "item_id"),
        ("vaultshare_vault_crypto_wallets", "item_id"),
        ("vaultshare_vault_documents", "item_id"),
        ("vaultshare_item_visibilities", "item_id"),
    ],
    "vaultshare_vault_members": [
        ("vaultshare_item_visibilities", "member_id"),
    ],
    "vaultshare_users": [
        ("vaultshare_notifications", "user_id"),
    ],
}


def _normalize(value: Any) -> Any:
    """Make stored and filter values comparable: ids as text, timestamps as datetimes."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and len(value) >= 19 and value[10:11] == "T":
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return value


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable imitation of the PostgREST request builder."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload: Any = None
        self.filters = []
        self.orders = []
        self._limit = None
        self._offset = 0

    # Operations

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self.operation = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, rows) -> "FakeQuery":
        self.operation = "insert"
        self.payload = rows
        return self

    def update(self, values: Dict[str, Any]) -> "FakeQuery":
        self.operation = "update"
        self.payload = values
        return self

    def delete(self) -> "FakeQuery":
        self.operation = "delete"
        return self

    # Filters

    def _filter(self, column: str, test) -> "FakeQuery":
        self.filters.append((column, test))
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        expected = _normalize(value)
        return self._filter(column, lambda v: v == expected)

    def neq(self, column: str, value: Any) -> "FakeQuery":
        expected = _normalize(value)
        return self._filter(column, lambda v: v != expected)

    def in_(self, column: str, values) -> "FakeQuery":
        expected = [_normalize(v) for v in values]
        return self._filter(column, lambda v: v in expected)

    def is_(self, column: str, value: Any) -> "FakeQuery":
        if value in (None, "null"):
            return self._filter(column, lambda v: v is None)
        return self._filter(column, lambda v: v == value)

    def lt(self, column: str, value: Any) -> "FakeQuery":
        bound = _normalize(value)
        return self._filter(column, lambda v: v is not None and v < bound)

    def lte(self, column: str, value: Any) -> "FakeQuery":
        bound = _normalize(value)
        return self._filter(column, lambda v: v is not None and v <= bound)

    def gt(self, column: str, value: Any) -> "FakeQuery":
        bound = _normalize(value)
        return self._filter(column, lambda v: v is not None and v > bound)

    def gte(self, column: str, value: Any) -> "FakeQuery":
        bound = _normalize(value)
        return self._filter(column, lambda v: v is not None and v >= bound)

    # Modifiers

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def offset(self, count: int) -> "FakeQuery":
        self._offset = count
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._offset = start
        self._limit = end - start + 1
        return self

    # Execution

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(test(_normalize(row.get(column))) for column, test in self.filters)

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns.strip() == "*":
            return dict(row)
        wanted = [c.strip() for c in self.columns.split(",")]
        return {c: row.get(c) for c in wanted}

    async def execute(self) -> FakeResponse:
        self.db.calls.append((self.table_name, self.operation))
        if (self.table_name, self.operation) in self.db.failures:
            raise RuntimeError(f"{self.operation} on {self.table_name} failed")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for values in payload:
                row = dict(values)
                row.setdefault("id", str(uuid4()))
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])

        if self.operation == "delete":
            for row in matched:
                self.db.remove(self.table_name, row)
            return FakeResponse([dict(row) for row in matched])

        for column, desc in reversed(self.orders):
            present = [r for r in matched if r.get(column) is not None]
            missing = [r for r in matched if r.get(column) is None]
            present.sort(key=lambda r: _normalize(r.get(column)), reverse=desc)
            matched = present + missing

        count = len(matched) if self.count_mode else None
        matched = matched[self._offset:]
        if self._limit is not None:
            matched = matched[: self._limit]

        return FakeResponse([self._project(row) for row in matched], count)


class FakeBucket:
    def __init__(self, objects: Dict[str, bytes]) -> None:
        self.objects = objects
        self.upload = AsyncMock(side_effect=self._upload)
        self.remove = AsyncMock(side_effect=self._remove)
        self.create_signed_url = AsyncMock(side_effect=self._signed_url)

    async def _upload(self, path: str, file: bytes, file_options=None):
        self.objects[path] = file
        return {"Key": path}

    async def _remove(self, paths: List[str]):
        for path in paths:
            self.objects.pop(path, None)
        return [{"name": path} for path in paths]

    async def _signed_url(self, path: str, expires_in: int):
        return {"signedURL": f"https://storage.example.com/{path}?expires={expires_in}"}


class FakeSupabase:
    """
    In-memory Supabase AsyncClient.

    ``tables`` holds rows per table name. Put ``(table, operation)`` into
    ``failures`` to make that call raise.
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures = set()
        self.calls = []
        self.objects: Dict[str, bytes] = {}
        self.bucket = FakeBucket(self.objects)

        self.auth = Mock()
        self.auth.admin = Mock()
        self.auth.admin.invite_user_by_email = AsyncMock(return_value=Mock())
        self.auth.admin.delete_user = AsyncMock(return_value=None)

        self.storage = Mock()
        self.storage.from_ = Mock(return_value=self.bucket)

        self.rpc_calls = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, fn: str, params: Dict[str, Any]):
        self.rpc_calls.append((fn, params))
        call = Mock()
        call.execute = AsyncMock(return_value=FakeResponse([]))
        return call

    def rows(self, table: str, **filters) -> List[Dict[str, Any]]:
        """Rows of a table whose columns equal the given values."""
        wanted = {k: _normalize(v) for k, v in filters.items()}
        return [
            row
            for row in self.tables.get(table, [])
            if all(_normalize(row.get(k)) == v for k, v in wanted.items())
        ]

    def remove(self, table: str, row: Dict[str, Any]) -> None:
        rows = self.tables.get(table, [])
        if row in rows:
            rows.remove(row)
        for child, column in CASCADES.get(table, []):
            for child_row in list(self.rows(child, **{column: row["id"]})):
                self.remove(child, child_row)


class FakeClock:
    """Mutable time source handed to VaultShare."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Create a test VaultShareConfig."""
    return VaultShareConfig(
        supabase_url="https://test.supabase.co",
        supabase_key="test-service-key-12345678901234567890",
        encryption_secret="test-encryption-secret-0123456789",
        app_base_url="https://app.example.com",
    )


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def supabase_client(config, fake_db):
    return VaultShareSupabaseClient(config=config, client=fake_db)


@pytest.fixture
def vaultshare(config, supabase_client, clock):
    """VaultShare wired to the in-memory database and the fake clock."""
    return VaultShare(config=config, client=supabase_client, clock=clock)


@pytest.fixture
def make_user(fake_db, clock):
    """Factory registering an account in vaultshare_users."""

    def _make_user(email: str, verified: bool = True, name: Optional[str] = None) -> AccountUser:
        row = {
            "id": str(uuid4()),
            "email": email.lower(),
            "email_verified": verified,
            "display_name": name,
            "supabase_auth_id": str(uuid4()),
            "status": "active",
            "created_at": clock().isoformat(),
            "updated_at": clock().isoformat(),
        }
        fake_db.tables.setdefault("vaultshare_users", []).append(row)
        return AccountUser(**row)

    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", name="Olivia Owner")


@pytest.fixture
def alice(make_user):
    return make_user("alice@example.com", name="Alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob@example.com", name="Bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol@example.com")

"""
Migration manager for the vaultshare database schema.

Applies the SQL files in migrations/versions through a ``exec_sql`` Postgres
function exposed over PostgREST, and records applied versions in the
vaultshare_migrations table.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..utils.supabase import VaultShareSupabaseClient
from ..utils.timeutils import to_iso, utcnow

logger = logging.getLogger(__name__)

# Create once in the Supabase SQL editor:
#   create function exec_sql(query text) returns void
#   language plpgsql security definer as $$ begin execute query; end $$;
EXEC_SQL_FUNCTION = "exec_sql"


class Migration:
    """Represents a single database migration."""

    def __init__(self, version: str, name: str, path: Path) -> None:
        """
        Initialize a migration.

        Args:
            version: Migration version (e.g., "001")
            name: Migration name (e.g., "initial_schema")
            path: Path to the SQL file
        """
        self.version = version
        self.name = name
        self.path = path

    @classmethod
    def from_file(cls, path: Path) -> "Migration":
        """
        Create a Migration from a file path.

        Args:
            path: Path to migration file (e.g., "001_initial_schema.sql")

        Returns:
            Migration instance

        Raises:
            ValueError: If the file name is not ``<version>_<name>.sql``
        """
        parts = path.stem.split("_", 1)

        if len(parts) != 2 or not parts[0].isdigit():
            raise ValueError(
                f"Invalid migration filename: {path.name}. Expected format: 001_name.sql"
            )

        version, name = parts
        return cls(version=version, name=name, path=path)

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")

    def __repr__(self) -> str:
        return f"Migration(version={self.version}, name={self.name})"


class MigrationManager:
    """
    Manages database migrations for vaultshare.

    Example:
        ```python
        manager = MigrationManager(client)
        applied = await manager.migrate()
        for migration, is_applied in await manager.status():
            print(migration.version, is_applied)
        ```
    """

    def __init__(
        self,
        client: VaultShareSupabaseClient,
        migrations_dir: Optional[Path] = None,
    ) -> None:
        """
        Initialize the migration manager.

        Args:
            client: Vaultshare Supabase client
            migrations_dir: Directory holding the SQL files (defaults to the
                bundled versions directory)
        """
        self.client = client
        self.migrations_dir = migrations_dir or Path(__file__).parent / "versions"

    def discover_migrations(self) -> List[Migration]:
        """
        Discover all migration files in the versions directory.

        Returns:
            List of Migration objects, sorted by version
        """
        if not self.migrations_dir.exists():
            return []

        migrations = []
        for path in self.migrations_dir.glob("*.sql"):
            try:
                migrations.append(Migration.from_file(path))
            except ValueError as e:
                logger.warning("Skipping invalid migration file: %s", e)

        migrations.sort(key=lambda m: m.version)
        return migrations

    async def get_applied_migrations(self) -> List[str]:
        """
        Get the versions already applied.

        Returns:
            List of applied migration versions; empty when the tracking
            table does not exist yet
        """
        try:
            result = await self.client.table("vaultshare_migrations").select("version").execute()
        except Exception:
            logger.debug("Migration table not readable; assuming a fresh database")
            return []

        return [row["version"] for row in result.data]

    async def apply_migration(self, migration: Migration) -> None:
        """
        Apply a single migration and record it.

        Raises:
            Exception: If the SQL fails; nothing is recorded in that case
        """
        logger.info("Applying migration %s: %s", migration.version, migration.name)

        try:
            await self.client.rpc(EXEC_SQL_FUNCTION, {"query": migration.read_sql()}).execute()
        except Exception:
            logger.exception("Migration %s failed", migration.version)
            raise

        await self.client.table("vaultshare_migrations").insert(
            {
                "version": migration.version,
                "name": migration.name,
                "applied_at": to_iso(utcnow()),
            }
        ).execute()

        logger.info("Migration %s applied", migration.version)

    async def migrate(self, target: Optional[str] = None) -> List[Migration]:
        """
        Run all pending migrations up to the target version.

        Args:
            target: Target migration version (default: latest)

        Returns:
            The migrations applied by this call
        """
        migrations = self.discover_migrations()
        applied = await self.get_applied_migrations()

        pending = [m for m in migrations if m.version not in applied]
        if target:
            pending = [m for m in pending if m.version <= target]

        if not pending:
            logger.info("No pending migrations")
            return []

        for migration in pending:
            await self.apply_migration(migration)

        return pending

    async def status(self) -> List[Tuple[Migration, bool]]:
        """
        Report which migrations are applied.

        Returns:
            List of (migration, applied) pairs, oldest first
        """
        applied = set(await self.get_applied_migrations())
        return [(m, m.version in applied) for m in self.discover_migrations()]

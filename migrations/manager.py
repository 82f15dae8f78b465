"""
Migration Manager - Applies numbered schema migrations to the PERSCOM store

Migrations are Python files named NNN_description.py in this directory. Each
defines:
    DESCRIPTION           one-line summary recorded in schema_versions
    upgrade(conn)         the schema change; must not commit
    DISABLE_FOREIGN_KEYS  optional, run with foreign key enforcement off
    BEST_EFFORT           optional, a failure is logged and start-up continues

Every migration runs in a single transaction together with its
schema_versions row, so a crash leaves the store on the previous version and
the migration is retried on the next start.

Usage:
    python3 -m migrations.manager status          # Check migration status
    python3 -m migrations.manager migrate         # Run pending migrations
    python3 -m migrations.manager pending         # List pending migrations
"""
import hashlib
import importlib.util
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from db import transaction

logger = logging.getLogger(__name__)

RESET_HINT = "delete the store file to force a clean reset"


class MigrationError(Exception):
    """A migration failed and was rolled back."""

    def __init__(self, version: str, cause: Exception):
        super().__init__(f"Migration {version} failed: {cause}")
        self.version = version
        self.cause = cause


class MigrationManager:
    """Applies pending migrations to an open store connection.

    The connection must be in autocommit mode (isolation_level=None); the
    manager issues BEGIN/COMMIT itself.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        migrations_dir: Optional[str] = None,
        backup_dir: Optional[str] = None,
    ):
        self.conn = conn
        self.migrations_dir = Path(migrations_dir) if migrations_dir else Path(__file__).parent
        self.backup_dir = Path(backup_dir) if backup_dir else None

    def init_schema_table(self):
        """Create the schema_versions table if it doesn't exist."""
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_versions (
                id INTEGER PRIMARY KEY,
                version TEXT UNIQUE NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                description TEXT,
                checksum TEXT
            )
        """
        )

    def get_applied_versions(self) -> List[str]:
        """Get list of already applied migration versions."""
        self.init_schema_table()
        cursor = self.conn.execute("SELECT version FROM schema_versions ORDER BY version")
        return [row[0] for row in cursor.fetchall()]

    def get_available_migrations(self) -> List[Tuple[str, Path]]:
        """Get list of available migration files as (version, path), sorted."""
        migrations = []
        for f in self.migrations_dir.glob("[0-9][0-9][0-9]_*.py"):
            version = f.stem.split("_")[0]
            migrations.append((version, f))
        return sorted(migrations, key=lambda x: x[0])

    def get_pending_migrations(self) -> List[Tuple[str, Path]]:
        """Get migrations that haven't been applied yet."""
        applied = set(self.get_applied_versions())
        return [(v, p) for v, p in self.get_available_migrations() if v not in applied]

    def _has_user_data(self) -> bool:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' AND name != 'schema_versions'"
        ).fetchone()
        return row[0] > 0

    def backup_database(self) -> Optional[Path]:
        """Copy the store to the backup directory with the online backup API."""
        if self.backup_dir is None:
            return None
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / f"perscom_{timestamp}.db"
        target = sqlite3.connect(str(backup_path))
        try:
            self.conn.backup(target)
        finally:
            target.close()
        logger.info(f"Database backed up to: {backup_path}")
        return backup_path

    @staticmethod
    def _load(version: str, path: Path):
        spec = importlib.util.spec_from_file_location(f"migration_{version}", str(path))
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        if not hasattr(module, "upgrade"):
            raise ValueError(f"Migration {version} missing 'upgrade' function")
        return module

    def _log_foreign_key_violations(self, version: str):
        violations = self.conn.execute("PRAGMA foreign_key_check").fetchall()
        if violations:
            tables = sorted({row[0] for row in violations})
            logger.warning(
                f"Migration {version}: {len(violations)} foreign key violation(s) "
                f"in {', '.join(tables)}"
            )

    def apply_migration(self, version: str, path: Path) -> bool:
        """Apply a single migration.

        Returns True if it was applied. A best-effort migration that fails is
        rolled back, logged and reported as False; any other failure raises
        MigrationError.
        """
        module = self._load(version, path)
        description = getattr(module, "DESCRIPTION", f"Python Migration {version}")
        disable_fk = getattr(module, "DISABLE_FOREIGN_KEYS", False)
        best_effort = getattr(module, "BEST_EFFORT", False)
        checksum = hashlib.md5(path.read_bytes()).hexdigest()

        # foreign_keys is a no-op inside a transaction, so toggle it outside.
        if disable_fk:
            self.conn.execute("PRAGMA foreign_keys = OFF")
        try:
            with transaction(self.conn):
                module.upgrade(self.conn)
                if disable_fk:
                    self._log_foreign_key_violations(version)
                self.conn.execute(
                    """
                    INSERT INTO schema_versions (version, description, checksum)
                    VALUES (?, ?, ?)
                """,
                    (version, description, checksum),
                )
        except Exception as e:
            if best_effort:
                logger.error(f"Migration {version} ({description}) failed, {RESET_HINT}: {e}")
                return False
            logger.error(f"Migration {version} failed: {e}")
            raise MigrationError(version, e) from e
        finally:
            if disable_fk:
                self.conn.execute("PRAGMA foreign_keys = ON")

        logger.info(f"Applied migration {version}: {description}")
        return True

    def run_pending_migrations(self, backup: bool = True) -> List[str]:
        """Run all pending migrations.

        Args:
            backup: Whether to backup an existing store before migrating

        Returns:
            List of applied migration versions
        """
        pending = self.get_pending_migrations()
        if not pending:
            logger.info("No pending migrations")
            return []

        if backup and self._has_user_data():
            self.backup_database()

        applied = []
        for version, path in pending:
            if self.apply_migration(version, path):
                applied.append(version)
        return applied

    def get_status(self) -> Dict[str, Any]:
        """Get current migration status."""
        applied = self.get_applied_versions()
        pending = self.get_pending_migrations()

        return {
            "applied_count": len(applied),
            "pending_count": len(pending),
            "applied_versions": applied,
            "pending_versions": [v for v, _ in pending],
            "last_applied": applied[-1] if applied else None,
            "is_current": len(pending) == 0,
        }


if __name__ == "__main__":
    import argparse

    from config import get_database_path
    from db import close_db, ensure_ready, get_db

    parser = argparse.ArgumentParser(description="PERSCOM Database Migration Manager")
    parser.add_argument(
        "command", choices=["status", "migrate", "pending"], help="Command to run"
    )
    parser.add_argument("--db", default=None, help="Database path (default: DATABASE_PATH)")
    parser.add_argument("--no-backup", action="store_true", help="Skip database backup")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    db_path = Path(args.db) if args.db else get_database_path()

    if args.command == "migrate":
        ensure_ready(db_path, backup=not args.no_backup)
        print("Database is current")
    else:
        manager = MigrationManager(get_db(db_path), backup_dir=db_path.parent / "backups")
        if args.command == "status":
            status = manager.get_status()
            print(f"\nDatabase: {db_path}")
            print(f"Applied:  {status['applied_count']} migrations")
            print(f"Pending:  {status['pending_count']} migrations")
            if status["pending_versions"]:
                print("\nPending migrations:")
                for version in status["pending_versions"]:
                    print(f"  {version}")
            print(f"\nDatabase is {'current' if status['is_current'] else 'OUT OF DATE'}")
        else:
            pending = manager.get_pending_migrations()
            if pending:
                print("\nPending migrations:")
                for v, p in pending:
                    print(f"  {v}: {p.name}")
            else:
                print("No pending migrations - database is current")

    close_db()

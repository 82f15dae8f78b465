"""
Centralized Database Access Module

Owns the single SQLite store shared by every route handler and bot command.

Features:
    - One shared connection per process, opened lazily
    - WAL journaling and foreign key enforcement on every connection
    - ensure_ready(): migrate and seed before the app starts serving
    - transaction(): explicit BEGIN/COMMIT/ROLLBACK on the autocommit handle
    - db_lock: serializes request threads on the shared handle

Usage:
    from db import db_lock, ensure_ready, get_db

    # Once, at process start
    ensure_ready()

    # Anywhere afterwards
    conn = get_db()
    with db_lock:
        conn.execute("SELECT * FROM personnel WHERE id = ?", (1,)).fetchall()
"""

import atexit
import logging
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

try:
    import sqlite3
except ImportError:
    sys.stderr.write(
        "\n[PERSCOM] ERROR: the sqlite3 module is not available.\n"
        "[PERSCOM] This Python was built without SQLite support; install a build "
        "that includes the _sqlite3 extension.\n\n"
    )
    sys.exit(1)

from config import Config, get_database_path

logger = logging.getLogger(__name__)

# legacy_alter_table is required by the table rebuild migrations.
MIN_SQLITE_VERSION = (3, 25, 0)

# Database configuration
DB_CONFIG = {
    "timeout": 30.0,
    "pragmas": {
        "journal_mode": "WAL",
        "foreign_keys": "ON",
        "busy_timeout": 30000,
        "synchronous": "NORMAL",
    },
}

_db: Optional[sqlite3.Connection] = None
_db_path: Optional[Path] = None
# Guards the shared handle. Held for every statement and for whole
# transactions so request threads never interleave on the connection.
db_lock = threading.RLock()


def check_sqlite_runtime():
    """Exit with a diagnostic if the linked SQLite library is too old."""
    if sqlite3.sqlite_version_info < MIN_SQLITE_VERSION:
        required = ".".join(str(part) for part in MIN_SQLITE_VERSION)
        sys.stderr.write(
            f"\n[PERSCOM] ERROR: SQLite {sqlite3.sqlite_version} is too old.\n"
            f"[PERSCOM] Requires SQLite {required} or later; upgrade Python or its "
            f"SQLite library.\n\n"
        )
        sys.exit(1)


def _connect(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Autocommit: single statements commit on their own, multi-statement
    # work goes through transaction().
    conn = sqlite3.connect(
        str(path),
        timeout=DB_CONFIG["timeout"],
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    for pragma, value in DB_CONFIG["pragmas"].items():
        conn.execute(f"PRAGMA {pragma} = {value}")
    return conn


def get_db(db_path: Optional[Union[str, Path]] = None) -> sqlite3.Connection:
    """Return the shared store handle, opening it on first use.

    Args:
        db_path: Store file. Without it the open handle is returned, or one is
                 opened on the DATABASE_PATH / DATA_DIR config. Asking for a
                 different path closes the current handle.
    """
    global _db, _db_path

    with db_lock:
        if _db is not None and (db_path is None or Path(db_path) == _db_path):
            return _db

        path = Path(db_path) if db_path else get_database_path()
        if _db is not None:
            _db.close()
            _db = None

        check_sqlite_runtime()
        _db = _connect(path)
        _db_path = path
        logger.debug(f"Opened database {path}")

        return _db


def get_db_path() -> Optional[Path]:
    """Path of the currently open store, if any."""
    return _db_path


def close_db():
    """Close the shared handle (no-op if it was never opened)."""
    global _db, _db_path

    with db_lock:
        if _db is not None:
            _db.close()
            logger.debug(f"Closed database {_db_path}")
        _db = None
        _db_path = None


@contextmanager
def transaction(conn: sqlite3.Connection):
    """Run a block in one write transaction on an autocommit connection.

    Holds db_lock from BEGIN to COMMIT/ROLLBACK; the handle is shared by
    every request thread.
    """
    with db_lock:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")


def ensure_ready(
    db_path: Optional[Union[str, Path]] = None, backup: Optional[bool] = None
) -> sqlite3.Connection:
    """Bring the store to the current schema and seed it. Safe to call on every start.

    Args:
        db_path: Store file; defaults to DATABASE_PATH / DATA_DIR config
        backup: Back up an existing store before migrating
                (default: BACKUP_ON_MIGRATE)

    Returns:
        The shared store handle

    Raises:
        MigrationError: a required migration failed; the store is left on the
                        last good version
    """
    from migrations.manager import MigrationManager
    from seed import seed_orbat

    conn = get_db(db_path)
    if backup is None:
        backup = Config.BACKUP_ON_MIGRATE

    with db_lock:
        manager = MigrationManager(conn, backup_dir=_db_path.parent / "backups")
        applied = manager.run_pending_migrations(backup=backup)
        if applied:
            logger.info(f"Applied {len(applied)} migration(s): {', '.join(applied)}")

        seed_orbat(conn)

    logger.info(f"Database initialized: {_db_path}")
    return conn


atexit.register(close_db)

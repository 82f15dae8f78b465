"""
Migration 004: Discord identity on users

Rebuilds the users table so accounts can sign in through Discord:
- username / password_hash become optional (Discord-only accounts)
- role gains 'marine' (read-only unit member)
- discord_id (unique), discord_username, discord_avatar, access/refresh tokens
- personnel_id links a login to its roster entry

Existing rows keep their id, username, password_hash, display_name, role and
created_at; the new columns start out NULL.

Stores from releases without schema_versions may hold a users_old shadow
left by an interrupted rebuild. That is reconciled before anything else.
"""

import logging

from migrations.helpers import rebuild_table, table_columns, table_exists
from schema import LEGACY_USER_COLUMNS, SHADOW_USERS_TABLE, USERS_MARKER_COLUMN, USERS_TABLE_SQL

logger = logging.getLogger(__name__)

DESCRIPTION = "Add Discord identity columns to users"
DISABLE_FOREIGN_KEYS = True


def _recover_shadow(conn):
    """Reconcile a users_old table left behind by an interrupted rebuild."""
    if not table_exists(conn, SHADOW_USERS_TABLE):
        return

    users_count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
    if USERS_MARKER_COLUMN not in table_columns(conn, "users") and users_count == 0:
        # Interrupted right after the rename: the shadow is the only copy and
        # the users table is the empty one the baseline just created.
        logger.warning(f"Restoring users table from {SHADOW_USERS_TABLE}")
        conn.execute("DROP TABLE users")
        conn.execute(f'ALTER TABLE "{SHADOW_USERS_TABLE}" RENAME TO users')
        return

    if USERS_MARKER_COLUMN in table_columns(conn, "users"):
        # Interrupted between create and drop: finish the copy.
        shadow_columns = table_columns(conn, SHADOW_USERS_TABLE)
        columns = ", ".join(c for c in LEGACY_USER_COLUMNS if c in shadow_columns)
        cursor = conn.execute(
            f"INSERT OR IGNORE INTO users ({columns}) SELECT {columns} FROM {SHADOW_USERS_TABLE}"
        )
        logger.warning(
            f"Recovered {cursor.rowcount} row(s) from leftover {SHADOW_USERS_TABLE}"
        )
    else:
        logger.warning(f"Dropping stale {SHADOW_USERS_TABLE} table")

    conn.execute(f'DROP TABLE "{SHADOW_USERS_TABLE}"')


def upgrade(conn):
    """Apply the migration."""
    _recover_shadow(conn)

    if USERS_MARKER_COLUMN in table_columns(conn, "users"):
        return

    rebuild_table(
        conn,
        "users",
        USERS_TABLE_SQL,
        shadow=SHADOW_USERS_TABLE,
        columns=LEGACY_USER_COLUMNS,
    )
    logger.info("Users table migrated for Discord OAuth")

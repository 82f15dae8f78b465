"""
Migration 002: Repair foreign keys pointing at users_old

Releases that rebuilt the users table without legacy_alter_table let SQLite
rewrite "REFERENCES users(id)" in other tables to "REFERENCES users_old(id)".
Once users_old was dropped those tables carried a dangling foreign key baked
into their definition. Each affected table is rebuilt from its own stored
definition with the reference pointed back at users.
"""

import logging

from migrations.helpers import rebuild_table, rename_references
from schema import SHADOW_USERS_TABLE

logger = logging.getLogger(__name__)

DESCRIPTION = "Repair foreign key references to the users_old shadow table"
DISABLE_FOREIGN_KEYS = True
BEST_EFFORT = True


def find_corrupted_tables(conn):
    """(name, sql) of every table whose definition mentions the shadow table."""
    cursor = conn.execute(
        """
        SELECT name, sql FROM sqlite_master
        WHERE type = 'table'
          AND name != ?
          AND name NOT LIKE 'sqlite_%'
          AND instr(sql, ?) > 0
        ORDER BY name
        """,
        (SHADOW_USERS_TABLE, SHADOW_USERS_TABLE),
    )
    return [(row[0], row[1]) for row in cursor.fetchall()]


def upgrade(conn):
    """Apply the migration."""
    corrupted = find_corrupted_tables(conn)
    if not corrupted:
        return

    logger.info(
        f"Repairing {len(corrupted)} table(s) with foreign keys to {SHADOW_USERS_TABLE}..."
    )
    for name, sql in corrupted:
        fixed_sql = rename_references(sql, SHADOW_USERS_TABLE, "users")
        rebuild_table(conn, name, fixed_sql, shadow=f"{name}__repair")
        logger.info(f"  Fixed: {name}")

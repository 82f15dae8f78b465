"""
Schema helpers shared by the numbered migrations.

SQLite can only add columns in place; anything else means rebuilding the
table: rename it to a shadow name, create the new definition, copy the rows
across, drop the shadow. By default SQLite 3.26+ also rewrites every
REFERENCES clause in *other* tables to follow a rename, which points them at
the shadow. legacy_alter_table() turns that off for the duration of a rebuild.
"""

import logging
import re
import sqlite3
from contextlib import contextmanager
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    return row is not None


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    """Live column names of a table, in declaration order ([] if absent)."""
    cursor = conn.execute(f'PRAGMA table_info("{table}")')
    return [row[1] for row in cursor.fetchall()]


def add_column_if_missing(conn: sqlite3.Connection, table: str, column_ddl: str) -> bool:
    """ALTER TABLE ... ADD COLUMN, treating "duplicate column" as already done.

    Returns True if the column was added.
    """
    try:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column_ddl}")
    except sqlite3.OperationalError as e:
        if "duplicate column" in str(e):
            logger.debug(f"{table}: column already present ({column_ddl.split()[0]})")
            return False
        raise
    logger.info(f"{table}: added column {column_ddl.split()[0]}")
    return True


@contextmanager
def legacy_alter_table(conn: sqlite3.Connection):
    """Stop RENAME TABLE from rewriting foreign keys in other tables."""
    conn.execute("PRAGMA legacy_alter_table = ON")
    try:
        yield conn
    finally:
        conn.execute("PRAGMA legacy_alter_table = OFF")


def _index_definitions(conn: sqlite3.Connection, table: str) -> List[str]:
    # Automatic indexes (UNIQUE / PRIMARY KEY) have NULL sql and come back
    # with the CREATE TABLE.
    cursor = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'index' AND tbl_name = ? AND sql IS NOT NULL",
        (table,),
    )
    return [row[0] for row in cursor.fetchall()]


def _sequence_value(conn: sqlite3.Connection, table: str) -> Optional[int]:
    # sqlite_sequence only exists once some AUTOINCREMENT table has been created.
    if not table_exists(conn, "sqlite_sequence"):
        return None
    row = conn.execute("SELECT seq FROM sqlite_sequence WHERE name = ?", (table,)).fetchone()
    return row[0] if row else None


def _carry_sequence(conn: sqlite3.Connection, table: str, seq: int) -> None:
    """Keep an AUTOINCREMENT high-water mark across a rebuild."""
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
    ).fetchone()
    if row is None or "AUTOINCREMENT" not in row[0].upper():
        return
    cursor = conn.execute(
        "UPDATE sqlite_sequence SET seq = MAX(seq, ?) WHERE name = ?", (seq, table)
    )
    if cursor.rowcount == 0:
        conn.execute("INSERT INTO sqlite_sequence (name, seq) VALUES (?, ?)", (table, seq))


def rebuild_table(
    conn: sqlite3.Connection,
    table: str,
    create_sql: str,
    shadow: Optional[str] = None,
    columns: Optional[Iterable[str]] = None,
) -> int:
    """Recreate ``table`` from ``create_sql`` keeping its rows.

    Rows are copied for ``columns`` when given, otherwise for every column
    the old and new definitions share. Explicit indexes are recreated and an
    AUTOINCREMENT sequence never moves backwards.
    Callers must disable foreign key enforcement and run inside a transaction.

    Returns the number of rows copied.
    """
    shadow = shadow or f"{table}__rebuild"
    indexes = _index_definitions(conn, table)

    with legacy_alter_table(conn):
        conn.execute(f'ALTER TABLE "{table}" RENAME TO "{shadow}"')
        conn.execute(create_sql)

        new_columns = table_columns(conn, table)
        old_columns = table_columns(conn, shadow)
        if columns is None:
            copy_columns = [c for c in new_columns if c in old_columns]
        else:
            copy_columns = [c for c in columns if c in old_columns and c in new_columns]

        column_list = ", ".join(f'"{c}"' for c in copy_columns)
        cursor = conn.execute(
            f'INSERT INTO "{table}" ({column_list}) SELECT {column_list} FROM "{shadow}"'
        )
        copied = cursor.rowcount

        # The sequence row followed the rename and goes with the shadow.
        seq = _sequence_value(conn, shadow)
        conn.execute(f'DROP TABLE "{shadow}"')
        if seq is not None:
            _carry_sequence(conn, table, seq)

    for index_sql in indexes:
        conn.execute(index_sql)

    logger.info(f"Rebuilt table {table} ({copied} rows)")
    return copied


def rename_references(sql: str, old: str, new: str) -> str:
    """Replace whole-word occurrences of table name ``old`` in a definition."""
    return re.sub(rf"\b{re.escape(old)}\b", new, sql)

"""
Migration 001: Baseline Schema

Creates every table of the first release if it does not exist yet. Stores
written by earlier releases already have most of these; their data is left
untouched.
"""

from schema import BASELINE_TABLES

DESCRIPTION = "Baseline schema - creates all core tables"


def upgrade(conn):
    """Apply the migration."""
    for create_sql in BASELINE_TABLES.values():
        conn.execute(create_sql)

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_orbat_slots_parent ON orbat_slots(parent_id)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_activity_log_created ON activity_log(created_at DESC)"
    )

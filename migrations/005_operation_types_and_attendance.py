"""
Migration 005: Operation types and attendance

- operations.type: 'Operation' or 'Training'
- attendance: which roster entries attended which operation, and who marked it
"""

from migrations.helpers import add_column_if_missing
from schema import ATTENDANCE_TABLE_SQL

DESCRIPTION = "Add operations.type and the attendance table"


def upgrade(conn):
    """Apply the migration."""
    add_column_if_missing(
        conn,
        "operations",
        "type TEXT NOT NULL DEFAULT 'Operation' CHECK(type IN ('Operation', 'Training'))",
    )

    conn.execute(ATTENDANCE_TABLE_SQL)
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_attendance_personnel ON attendance(personnel_id)"
    )

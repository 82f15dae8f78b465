"""
Migration 003: Roster columns

Columns added to the first release after it shipped:
- personnel.member_status: Active / Leave of Absence / Inactive
- operations.image_url: uploaded briefing image
- personnel.user_id: link from a roster entry to its login
"""

from migrations.helpers import add_column_if_missing

DESCRIPTION = "Add member_status, image_url and personnel.user_id columns"
BEST_EFFORT = True


def upgrade(conn):
    """Apply the migration."""
    add_column_if_missing(conn, "personnel", "member_status TEXT NOT NULL DEFAULT 'Active'")
    add_column_if_missing(conn, "operations", "image_url TEXT")
    add_column_if_missing(
        conn, "personnel", "user_id INTEGER REFERENCES users(id) ON DELETE SET NULL"
    )

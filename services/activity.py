"""
Activity Log

Every mutation a staff member makes is recorded in activity_log for the
event log page.
"""

import logging
import sqlite3
from typing import Optional

from db import db_lock

logger = logging.getLogger(__name__)


def log_activity(
    conn: sqlite3.Connection, action: str, details: str, user_id: Optional[int] = None
) -> int:
    """Record an activity entry and return its id."""
    with db_lock:
        cursor = conn.execute(
            "INSERT INTO activity_log (action, details, user_id) VALUES (?, ?, ?)",
            (action, details, user_id),
        )
    logger.info(f"{action}: {details} (user {user_id})")
    return cursor.lastrowid


def get_recent_activity(conn: sqlite3.Connection, limit: int = 25, action: str = None):
    """Most recent activity entries with the acting user's display name."""
    query = """
        SELECT a.id, a.action, a.details, a.created_at, u.display_name AS user_name
        FROM activity_log a
        LEFT JOIN users u ON a.user_id = u.id
    """
    params = []
    if action:
        query += " WHERE a.action = ?"
        params.append(action)
    query += " ORDER BY a.id DESC LIMIT ?"
    params.append(limit)
    with db_lock:
        rows = conn.execute(query, params).fetchall()
    return [dict(row) for row in rows]

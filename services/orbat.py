"""
ORBAT Service

Reads the seeded order of battle and assigns roster entries to role slots.
The tree shape never changes; the only mutation is setting or clearing
personnel_id on a role slot.

Usage:
    from services.orbat import assign_slot, build_tree, get_slots

    slots = get_slots(conn)
    tree = build_tree(slots)
    assign_slot(conn, "role-sq1-sl", personnel_id=7, user_id=1)
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from db import db_lock, transaction
from services.activity import log_activity

logger = logging.getLogger(__name__)

ASSIGN_ACTION = "ORBAT_ASSIGNED"

_SLOT_QUERY = """
    SELECT
        o.id, o.parent_id, o.name, o.type, o.callsign, o.sort_order,
        o.personnel_id,
        p.name AS personnel_name,
        p.rank AS personnel_rank,
        p.member_status AS personnel_member_status
    FROM orbat_slots o
    LEFT JOIN personnel p ON o.personnel_id = p.id
"""


class OrbatError(Exception):
    """Base class for ORBAT assignment errors."""

    status_code = 400


class SlotNotFound(OrbatError):
    status_code = 404

    def __init__(self, slot_id):
        super().__init__("Slot not found")
        self.slot_id = slot_id


class PersonnelNotFound(OrbatError):
    status_code = 404

    def __init__(self, personnel_id):
        super().__init__("Personnel not found")
        self.personnel_id = personnel_id


class SlotNotAssignable(OrbatError):
    def __init__(self, slot_id):
        super().__init__("Only role slots can be assigned")
        self.slot_id = slot_id


def get_slots(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """All slots with their assigned roster entry, in sort order."""
    with db_lock:
        rows = conn.execute(_SLOT_QUERY + " ORDER BY o.sort_order ASC, o.rowid ASC").fetchall()
    return [dict(row) for row in rows]


def get_slot(conn: sqlite3.Connection, slot_id: str) -> Optional[Dict[str, Any]]:
    with db_lock:
        row = conn.execute(_SLOT_QUERY + " WHERE o.id = ?", (slot_id,)).fetchone()
    return dict(row) if row else None


def build_tree(slots: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Nest flat slot rows under their parents. Returns the root slots."""
    nodes = {slot["id"]: dict(slot, children=[]) for slot in slots}
    roots = []
    for slot in slots:
        node = nodes[slot["id"]]
        parent = nodes.get(slot["parent_id"])
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


def assign_slot(
    conn: sqlite3.Connection,
    slot_id: str,
    personnel_id: Optional[int],
    user_id: Optional[int] = None,
) -> Dict[str, Any]:
    """Put a roster entry in a role slot, or clear it when personnel_id is None.

    Returns:
        The updated slot

    Raises:
        SlotNotFound, SlotNotAssignable, PersonnelNotFound
    """
    # Lookups and the write share one transaction so a concurrent delete
    # cannot slip in between them.
    with transaction(conn):
        slot = conn.execute("SELECT * FROM orbat_slots WHERE id = ?", (slot_id,)).fetchone()
        if slot is None:
            raise SlotNotFound(slot_id)
        if slot["type"] != "role":
            raise SlotNotAssignable(slot_id)

        person = None
        if personnel_id:
            person = conn.execute(
                "SELECT id, name FROM personnel WHERE id = ?", (personnel_id,)
            ).fetchone()
            if person is None:
                raise PersonnelNotFound(personnel_id)

        conn.execute(
            "UPDATE orbat_slots SET personnel_id = ? WHERE id = ?",
            (person["id"] if person else None, slot_id),
        )
        if person:
            details = f"{person['name']} assigned to {slot['name']}"
        else:
            details = f"{slot['name']} slot cleared"
        log_activity(conn, ASSIGN_ACTION, details, user_id)

        return get_slot(conn, slot_id)


def clear_slot(conn: sqlite3.Connection, slot_id: str, user_id: Optional[int] = None) -> None:
    """Remove whoever holds a slot."""
    with transaction(conn):
        slot = conn.execute("SELECT * FROM orbat_slots WHERE id = ?", (slot_id,)).fetchone()
        if slot is None:
            raise SlotNotFound(slot_id)

        conn.execute("UPDATE orbat_slots SET personnel_id = NULL WHERE id = ?", (slot_id,))
        log_activity(conn, ASSIGN_ACTION, f"{slot['name']} slot cleared", user_id)

"""
ORBAT seed data and store reset

The ORBAT (order of battle) is a fixed tree: 26th MEU (SOC) down to the
fireteam role slots of Outlaw Platoon, plus the separate 2nd Marine Air Wing.
It is inserted once, when orbat_slots is empty. After that only the
personnel_id of role slots changes.

Usage:
    python3 -m seed           # Migrate and seed the ORBAT if needed
    python3 -m seed reset     # Wipe all unit data and recreate the staff accounts
"""

import logging
import sqlite3
from typing import Dict, Iterable, List, Optional, Tuple

from werkzeug.security import generate_password_hash

from db import transaction

logger = logging.getLogger(__name__)

SLOT_TYPES = (
    "meu",
    "battalion",
    "company",
    "platoon",
    "command",
    "squad",
    "fireteam",
    "aviation",
    "role",
)

# (id, parent_id, name, type, callsign, sort_order)
# Ids are stable across releases; never renumber them.
ORBAT_TEMPLATE: List[Tuple[str, Optional[str], str, str, Optional[str], int]] = [
    # Top-level hierarchy
    ("meu-1", None, "26th MEU (SOC)", "meu", None, 0),
    ("bat-1", "meu-1", "1st Battalion", "battalion", None, 0),
    ("co-1", "bat-1", "Alpha Company", "company", None, 0),
    ("plt-outlaw", "co-1", "Outlaw Platoon", "platoon", "Outlaw", 0),
    # Platoon command element
    ("cmd-odin", "plt-outlaw", "Odin Command Element", "command", "Odin", 0),
    ("role-odin-1", "cmd-odin", "Platoon Leader", "role", None, 0),
    ("role-odin-2", "cmd-odin", "Platoon Sergeant", "role", None, 1),
    ("role-odin-3", "cmd-odin", "Platoon RTO", "role", None, 2),
    ("role-odin-4", "cmd-odin", "Platoon Corpsman", "role", None, 3),
    # 1st Squad
    ("sq-1", "plt-outlaw", "1st Squad", "squad", None, 1),
    ("role-sq1-sl", "sq-1", "Squad Leader", "role", None, 0),
    ("role-sq1-as", "sq-1", "Asst. Squad Leader", "role", None, 1),
    ("role-sq1-co", "sq-1", "Corpsman", "role", None, 2),
    ("ft-1-1", "sq-1", "1st Fireteam", "fireteam", None, 3),
    ("role-ft11-1", "ft-1-1", "Team Leader", "role", None, 0),
    ("role-ft11-2", "ft-1-1", "Automatic Rifleman", "role", None, 1),
    ("role-ft11-3", "ft-1-1", "Anti-Tank", "role", None, 2),
    ("role-ft11-4", "ft-1-1", "Rifleman", "role", None, 3),
    ("ft-1-2", "sq-1", "2nd Fireteam", "fireteam", None, 4),
    ("role-ft12-1", "ft-1-2", "Team Leader", "role", None, 0),
    ("role-ft12-2", "ft-1-2", "Automatic Rifleman", "role", None, 1),
    ("role-ft12-3", "ft-1-2", "Anti-Tank", "role", None, 2),
    ("role-ft12-4", "ft-1-2", "Rifleman", "role", None, 3),
    ("ft-1-3", "sq-1", "3rd Fireteam", "fireteam", None, 5),
    ("role-ft13-1", "ft-1-3", "Team Leader", "role", None, 0),
    ("role-ft13-2", "ft-1-3", "Automatic Rifleman", "role", None, 1),
    ("role-ft13-3", "ft-1-3", "Anti-Tank", "role", None, 2),
    ("role-ft13-4", "ft-1-3", "Rifleman", "role", None, 3),
    # 2nd Squad
    ("sq-2", "plt-outlaw", "2nd Squad", "squad", None, 2),
    ("role-sq2-sl", "sq-2", "Squad Leader", "role", None, 0),
    ("role-sq2-as", "sq-2", "Asst. Squad Leader", "role", None, 1),
    ("role-sq2-co", "sq-2", "Corpsman", "role", None, 2),
    ("ft-2-1", "sq-2", "1st Fireteam", "fireteam", None, 3),
    ("role-ft21-1", "ft-2-1", "Team Leader", "role", None, 0),
    ("role-ft21-2", "ft-2-1", "Automatic Rifleman", "role", None, 1),
    ("role-ft21-3", "ft-2-1", "Anti-Tank", "role", None, 2),
    ("role-ft21-4", "ft-2-1", "Rifleman", "role", None, 3),
    ("ft-2-2", "sq-2", "2nd Fireteam", "fireteam", None, 4),
    ("role-ft22-1", "ft-2-2", "Team Leader", "role", None, 0),
    ("role-ft22-2", "ft-2-2", "Automatic Rifleman", "role", None, 1),
    ("role-ft22-3", "ft-2-2", "Anti-Tank", "role", None, 2),
    ("role-ft22-4", "ft-2-2", "Rifleman", "role", None, 3),
    ("ft-2-3", "sq-2", "3rd Fireteam", "fireteam", None, 5),
    ("role-ft23-1", "ft-2-3", "Team Leader", "role", None, 0),
    ("role-ft23-2", "ft-2-3", "Automatic Rifleman", "role", None, 1),
    ("role-ft23-3", "ft-2-3", "Anti-Tank", "role", None, 2),
    ("role-ft23-4", "ft-2-3", "Rifleman", "role", None, 3),
    # 2nd Marine Air Wing (aviation element, separate from ground)
    ("avn-maw", None, "2nd Marine Air Wing", "aviation", None, 0),
    ("role-avn-co", "avn-maw", "Commanding Officer", "role", None, 0),
    ("role-avn-xo", "avn-maw", "Flight Executive Officer", "role", None, 1),
    ("role-avn-p1", "avn-maw", "Pilot", "role", None, 2),
    ("role-avn-p2", "avn-maw", "Pilot", "role", None, 3),
    ("role-avn-p3", "avn-maw", "Pilot", "role", None, 4),
    ("role-avn-p4", "avn-maw", "Pilot", "role", None, 5),
    ("role-avn-p5", "avn-maw", "Pilot", "role", None, 6),
    ("role-avn-p6", "avn-maw", "Pilot", "role", None, 7),
]

# Local staff accounts recreated by reset: (username, display_name, role)
STAFF_ACCOUNTS = (
    ("command", "Command Staff", "admin"),
    ("drillsgt", "Drill Instructor", "moderator"),
)

# Child tables first so foreign keys never block a delete.
RESET_TABLES = (
    "activity_log",
    "attendance",
    "evaluations",
    "awards",
    "qualifications",
    "announcements",
    "operations",
    "gear_items",
    "gear_loadouts",
    "documents",
    "personnel",
    "users",
    "settings",
)


def validate_template(template: Iterable[tuple]):
    """Check that a slot template forms a well-formed tree.

    Every parent must be declared before its children, which also rules
    out cycles.

    Raises:
        ValueError: on duplicate ids, unknown types, unknown or forward
                    parents, or a slot nested under a role
    """
    types: Dict[str, str] = {}
    for slot_id, parent_id, name, slot_type, _callsign, _sort_order in template:
        if slot_id in types:
            raise ValueError(f"Duplicate ORBAT slot id: {slot_id}")
        if slot_type not in SLOT_TYPES:
            raise ValueError(f"Slot {slot_id} has unknown type '{slot_type}'")
        if parent_id is not None:
            if parent_id not in types:
                raise ValueError(f"Slot {slot_id} references undeclared parent {parent_id}")
            if types[parent_id] == "role":
                raise ValueError(f"Slot {slot_id} is nested under role slot {parent_id}")
        types[slot_id] = slot_type


def seed_orbat(conn: sqlite3.Connection, template: Optional[List[tuple]] = None) -> int:
    """Insert the ORBAT template if orbat_slots is empty.

    Returns:
        Number of slots inserted (0 if the table was already seeded)
    """
    template = ORBAT_TEMPLATE if template is None else template

    count = conn.execute("SELECT COUNT(*) FROM orbat_slots").fetchone()[0]
    if count:
        return 0

    validate_template(template)
    with transaction(conn):
        cursor = conn.executemany(
            """
            INSERT OR IGNORE INTO orbat_slots (id, parent_id, name, type, callsign, sort_order)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            template,
        )
    inserted = cursor.rowcount
    logger.info(f"ORBAT structure seeded ({inserted} slots)")
    return inserted


def reset_database(
    conn: sqlite3.Connection, admin_password: str, moderator_password: str
) -> List[str]:
    """Wipe all unit data and recreate the local staff accounts.

    The ORBAT tree is kept; only its assignments are cleared.

    Returns:
        Usernames of the recreated accounts
    """
    passwords = {"admin": admin_password, "moderator": moderator_password}

    with transaction(conn):
        for table in RESET_TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.execute("UPDATE orbat_slots SET personnel_id = NULL")

        for username, display_name, role in STAFF_ACCOUNTS:
            conn.execute(
                """
                INSERT INTO users (username, password_hash, display_name, role)
                VALUES (?, ?, ?, ?)
            """,
                (username, generate_password_hash(passwords[role]), display_name, role),
            )

    logger.info("Database reset: all personnel, operations and activity cleared")
    return [username for username, _, _ in STAFF_ACCOUNTS]


if __name__ == "__main__":
    import argparse

    from config import Config, validate_config
    from db import close_db, ensure_ready

    parser = argparse.ArgumentParser(description="PERSCOM seed and reset")
    parser.add_argument("command", nargs="?", default="seed", choices=["seed", "reset"])
    parser.add_argument("--db", default=None, help="Database path (default: DATABASE_PATH)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    validate_config()

    conn = ensure_ready(args.db)

    if args.command == "reset":
        usernames = reset_database(
            conn, Config.PERSCOM_ADMIN_PASSWORD, Config.PERSCOM_MODERATOR_PASSWORD
        )
        print("\nPERSCOM - DATABASE RESET")
        print(f"  Accounts: {', '.join(usernames)}")
        print("  All personnel, operations, awards, evaluations and activity cleared.")
        print("  ORBAT slots reset (structure intact).")
    else:
        total = conn.execute("SELECT COUNT(*) FROM orbat_slots").fetchone()[0]
        print(f"ORBAT slots: {total}")

    close_db()

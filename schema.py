"""
PERSCOM table definitions.

BASELINE_TABLES is the schema the first release shipped and is frozen: later
changes live in numbered migrations under migrations/, never here. Tables are
listed in dependency order so foreign keys always point at an earlier entry.
"""

from collections import OrderedDict

# Shadow name used while the users table is rebuilt. Older releases could
# leave other tables' foreign keys pointing at it.
SHADOW_USERS_TABLE = "users_old"

# Presence of this column means the external-identity migration already ran.
USERS_MARKER_COLUMN = "discord_id"

# Columns that exist in every users table shape, old and new.
LEGACY_USER_COLUMNS = ("id", "username", "password_hash", "display_name", "role", "created_at")

USER_ROLES = ("admin", "moderator", "marine")

BASELINE_TABLES = OrderedDict()

BASELINE_TABLES["users"] = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        display_name TEXT NOT NULL,
        role TEXT NOT NULL CHECK(role IN ('admin', 'moderator')),
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
"""

BASELINE_TABLES["personnel"] = """
    CREATE TABLE IF NOT EXISTS personnel (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'Civilian' CHECK(status IN ('Civilian', 'Marine')),
        member_status TEXT NOT NULL DEFAULT 'Active'
            CHECK(member_status IN ('Active', 'Leave of Absence', 'Inactive')),
        rank TEXT,
        rank_since DATE,
        date_of_entry DATE NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
"""

BASELINE_TABLES["awards"] = """
    CREATE TABLE IF NOT EXISTS awards (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        personnel_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        awarded_at DATE NOT NULL DEFAULT (date('now')),
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE CASCADE
    )
"""

BASELINE_TABLES["qualifications"] = """
    CREATE TABLE IF NOT EXISTS qualifications (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        personnel_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        awarded_at DATE NOT NULL DEFAULT (date('now')),
        awarded_by_name TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE CASCADE
    )
"""

BASELINE_TABLES["operations"] = """
    CREATE TABLE IF NOT EXISTS operations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        image_url TEXT,
        start_date DATE NOT NULL,
        end_date DATE,
        created_by INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (created_by) REFERENCES users(id)
    )
"""

BASELINE_TABLES["evaluations"] = """
    CREATE TABLE IF NOT EXISTS evaluations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        personnel_id INTEGER NOT NULL,
        evaluator_id INTEGER NOT NULL,
        behavior_meets INTEGER NOT NULL DEFAULT 0,
        attendance_met INTEGER NOT NULL DEFAULT 0,
        notes TEXT,
        evaluated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE CASCADE,
        FOREIGN KEY (evaluator_id) REFERENCES users(id)
    )
"""

BASELINE_TABLES["announcements"] = """
    CREATE TABLE IF NOT EXISTS announcements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        message TEXT NOT NULL,
        created_by INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (created_by) REFERENCES users(id)
    )
"""

BASELINE_TABLES["activity_log"] = """
    CREATE TABLE IF NOT EXISTS activity_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        action TEXT NOT NULL,
        details TEXT,
        user_id INTEGER,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
"""

BASELINE_TABLES["orbat_slots"] = """
    CREATE TABLE IF NOT EXISTS orbat_slots (
        id TEXT PRIMARY KEY,
        parent_id TEXT,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        callsign TEXT,
        sort_order INTEGER DEFAULT 0,
        personnel_id INTEGER,
        FOREIGN KEY (parent_id) REFERENCES orbat_slots(id),
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE SET NULL
    )
"""

BASELINE_TABLES["settings"] = """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT
    )
"""

BASELINE_TABLES["documents"] = """
    CREATE TABLE IF NOT EXISTS documents (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        content TEXT NOT NULL DEFAULT '',
        created_by INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (created_by) REFERENCES users(id)
    )
"""

BASELINE_TABLES["gear_loadouts"] = """
    CREATE TABLE IF NOT EXISTS gear_loadouts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT DEFAULT '',
        sort_order INTEGER DEFAULT 0,
        created_by INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (created_by) REFERENCES users(id)
    )
"""

BASELINE_TABLES["gear_items"] = """
    CREATE TABLE IF NOT EXISTS gear_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        loadout_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        description TEXT DEFAULT '',
        sort_order INTEGER DEFAULT 0,
        FOREIGN KEY (loadout_id) REFERENCES gear_loadouts(id) ON DELETE CASCADE
    )
"""

# Current users shape, introduced by migration 004. Local accounts keep a
# unique username; Discord-only accounts have none.
USERS_TABLE_SQL = """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE,
        password_hash TEXT,
        display_name TEXT NOT NULL,
        role TEXT NOT NULL CHECK(role IN ('admin', 'moderator', 'marine')),
        discord_id TEXT UNIQUE,
        discord_username TEXT,
        discord_avatar TEXT,
        discord_access_token TEXT,
        discord_refresh_token TEXT,
        personnel_id INTEGER,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE SET NULL
    )
"""

ATTENDANCE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS attendance (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        operation_id INTEGER NOT NULL,
        personnel_id INTEGER NOT NULL,
        marked_by INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (operation_id, personnel_id),
        FOREIGN KEY (operation_id) REFERENCES operations(id) ON DELETE CASCADE,
        FOREIGN KEY (personnel_id) REFERENCES personnel(id) ON DELETE CASCADE,
        FOREIGN KEY (marked_by) REFERENCES users(id)
    )
"""

# Every table a fully migrated store must contain.
EXPECTED_TABLES = tuple(BASELINE_TABLES) + ("attendance", "schema_versions")

"""Row builders shared by the test modules."""


def add_user(conn, username="command", role="admin", display_name="Command Staff"):
    cursor = conn.execute(
        "INSERT INTO users (username, password_hash, display_name, role) VALUES (?, ?, ?, ?)",
        (username, "hash", display_name, role),
    )
    return cursor.lastrowid


def add_personnel(conn, name="John Doe", rank="Pvt", member_status="Active"):
    cursor = conn.execute(
        "INSERT INTO personnel (name, status, rank, member_status, date_of_entry) "
        "VALUES (?, 'Marine', ?, ?, '2024-01-01')",
        (name, rank, member_status),
    )
    return cursor.lastrowid


# Tables as the first release created them, before any column was added.
FIRST_RELEASE_SQL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    display_name TEXT NOT NULL,
    role TEXT NOT NULL CHECK(role IN ('admin', 'moderator')),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE personnel (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'Civilian',
    rank TEXT,
    rank_since DATE,
    date_of_entry DATE NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE operations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    start_date DATE NOT NULL,
    end_date DATE,
    created_by INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (created_by) REFERENCES users(id)
);
CREATE TABLE activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    action TEXT NOT NULL,
    details TEXT,
    user_id INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
"""

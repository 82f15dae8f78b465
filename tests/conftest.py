"""
Pytest fixtures for PERSCOM tests
"""
import os
import sqlite3
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ["APP_ENV"] = "test"

from config import Config  # noqa: E402
from db import close_db  # noqa: E402
from tests.helpers import FIRST_RELEASE_SQL  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Fresh config and no shared store handle for every test."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    Config.clear_cache()
    close_db()
    yield
    close_db()
    Config.clear_cache()


@pytest.fixture
def db_path(tmp_path):
    """Path of a store that does not exist yet."""
    return tmp_path / "data" / "perscom.db"


@pytest.fixture
def legacy_db(db_path):
    """A store written by the first release: no schema_versions, legacy users."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.executescript(FIRST_RELEASE_SQL)
    conn.execute(
        "INSERT INTO users (username, password_hash, display_name, role) "
        "VALUES ('admin', 'hash1', 'Admin', 'admin')"
    )
    conn.execute(
        "INSERT INTO personnel (name, status, rank, date_of_entry) "
        "VALUES ('John Doe', 'Marine', 'Pvt', '2024-01-01')"
    )
    conn.execute(
        "INSERT INTO operations (title, start_date, created_by) "
        "VALUES ('Op Trident', '2024-02-01', 1)"
    )
    conn.execute(
        "INSERT INTO activity_log (action, details, user_id) "
        "VALUES ('PERSONNEL_ADDED', 'John Doe', 1)"
    )
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture
def ready_db(db_path):
    """A migrated and seeded store handle."""
    from db import ensure_ready

    return ensure_ready(db_path, backup=False)


@pytest.fixture
def app(db_path):
    """Create application for testing."""
    from app import create_app

    flask_app = create_app(db_path)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

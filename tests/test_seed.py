"""
Tests for ORBAT seeding and the store reset.
"""
import pytest
from werkzeug.security import check_password_hash

from seed import ORBAT_TEMPLATE, STAFF_ACCOUNTS, reset_database, seed_orbat, validate_template
from tests.helpers import add_personnel, add_user


class TestOrbatTemplate:
    """Tests for the built-in slot template."""

    def test_template_is_valid(self):
        validate_template(ORBAT_TEMPLATE)

    def test_shape(self):
        assert len(ORBAT_TEMPLATE) == 56
        roots = [slot[0] for slot in ORBAT_TEMPLATE if slot[1] is None]
        assert roots == ["meu-1", "avn-maw"]
        roles = [slot for slot in ORBAT_TEMPLATE if slot[3] == "role"]
        assert len(roles) == 42

    def test_rejects_duplicate_id(self):
        template = [("a", None, "A", "meu", None, 0), ("a", None, "A2", "meu", None, 1)]
        with pytest.raises(ValueError, match="Duplicate"):
            validate_template(template)

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="unknown type"):
            validate_template([("a", None, "A", "division", None, 0)])

    def test_rejects_forward_parent(self):
        template = [("b", "a", "B", "squad", None, 0), ("a", None, "A", "meu", None, 0)]
        with pytest.raises(ValueError, match="undeclared parent"):
            validate_template(template)

    def test_rejects_child_of_role(self):
        template = [("a", None, "A", "role", None, 0), ("b", "a", "B", "role", None, 0)]
        with pytest.raises(ValueError, match="nested under role"):
            validate_template(template)


class TestSeedOrbat:
    """Tests for seed_orbat()."""

    def test_seeded_on_start(self, ready_db):
        rows = ready_db.execute("SELECT id, parent_id FROM orbat_slots").fetchall()
        assert len(rows) == 56
        roots = sorted(row["id"] for row in rows if row["parent_id"] is None)
        assert roots == ["avn-maw", "meu-1"]

    def test_every_parent_exists(self, ready_db):
        orphans = ready_db.execute(
            """
            SELECT c.id FROM orbat_slots c
            LEFT JOIN orbat_slots p ON c.parent_id = p.id
            WHERE c.parent_id IS NOT NULL AND p.id IS NULL
            """
        ).fetchall()
        assert orphans == []

    def test_no_assignments_after_seed(self, ready_db):
        assert (
            ready_db.execute(
                "SELECT COUNT(*) FROM orbat_slots WHERE personnel_id IS NOT NULL"
            ).fetchone()[0]
            == 0
        )

    def test_skips_populated_table(self, ready_db):
        assert seed_orbat(ready_db) == 0
        assert ready_db.execute("SELECT COUNT(*) FROM orbat_slots").fetchone()[0] == 56

    def test_assignments_survive_reseed(self, ready_db):
        person_id = add_personnel(ready_db)
        ready_db.execute(
            "UPDATE orbat_slots SET personnel_id = ? WHERE id = 'role-sq1-sl'", (person_id,)
        )
        seed_orbat(ready_db)
        row = ready_db.execute(
            "SELECT personnel_id FROM orbat_slots WHERE id = 'role-sq1-sl'"
        ).fetchone()
        assert row[0] == person_id

    def test_invalid_template_inserts_nothing(self, ready_db):
        ready_db.execute("DELETE FROM orbat_slots")
        with pytest.raises(ValueError):
            seed_orbat(ready_db, [("a", "missing", "A", "squad", None, 0)])
        assert ready_db.execute("SELECT COUNT(*) FROM orbat_slots").fetchone()[0] == 0

    def test_custom_template(self, ready_db):
        ready_db.execute("DELETE FROM orbat_slots")
        template = [("root", None, "Root", "meu", None, 0), ("r1", "root", "Lead", "role", None, 0)]
        assert seed_orbat(ready_db, template) == 2


class TestResetDatabase:
    """Tests for reset_database()."""

    def test_wipes_unit_data(self, ready_db):
        user_id = add_user(ready_db, username="old")
        person_id = add_personnel(ready_db)
        ready_db.execute(
            "INSERT INTO awards (personnel_id, name) VALUES (?, 'Good Conduct')", (person_id,)
        )
        ready_db.execute(
            "INSERT INTO announcements (title, message, created_by) VALUES ('T', 'M', ?)",
            (user_id,),
        )
        ready_db.execute(
            "INSERT INTO documents (title, content, created_by) VALUES ('SOP', 'x', ?)", (user_id,)
        )
        ready_db.execute("INSERT INTO settings (key, value) VALUES ('motd', 'hi')")
        ready_db.execute(
            "UPDATE orbat_slots SET personnel_id = ? WHERE id = 'role-odin-1'", (person_id,)
        )

        reset_database(ready_db, "Admin@1234", "Mod@1234")

        for table in ("personnel", "awards", "announcements", "documents", "settings"):
            assert ready_db.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0
        assert (
            ready_db.execute(
                "SELECT COUNT(*) FROM orbat_slots WHERE personnel_id IS NOT NULL"
            ).fetchone()[0]
            == 0
        )

    def test_keeps_orbat_structure(self, ready_db):
        reset_database(ready_db, "a", "b")
        assert ready_db.execute("SELECT COUNT(*) FROM orbat_slots").fetchone()[0] == 56

    def test_recreates_staff_accounts(self, ready_db):
        add_user(ready_db, username="command")
        usernames = reset_database(ready_db, "Admin@1234", "Mod@1234")

        assert usernames == [username for username, _, _ in STAFF_ACCOUNTS]
        users = {
            row["username"]: row
            for row in ready_db.execute("SELECT username, password_hash, role FROM users")
        }
        assert set(users) == {"command", "drillsgt"}
        assert users["command"]["role"] == "admin"
        assert users["drillsgt"]["role"] == "moderator"
        assert check_password_hash(users["command"]["password_hash"], "Admin@1234")
        assert check_password_hash(users["drillsgt"]["password_hash"], "Mod@1234")
        assert not check_password_hash(users["command"]["password_hash"], "Mod@1234")

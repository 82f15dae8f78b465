"""
Tests for the ORBAT service and its routes.
"""
import threading

import pytest

from db import get_db
from services.activity import get_recent_activity
from services.orbat import (
    PersonnelNotFound,
    SlotNotAssignable,
    SlotNotFound,
    assign_slot,
    build_tree,
    clear_slot,
    get_slots,
)
from tests.helpers import add_personnel, add_user


@pytest.fixture
def conn(app, db_path):
    return get_db(db_path)


@pytest.fixture
def staff(conn):
    return add_user(conn, username="command", role="admin")


@pytest.fixture
def marine(conn):
    return add_user(conn, username=None, role="marine", display_name="Pvt Snuffy")


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


class TestOrbatService:
    """Tests for the service functions."""

    def test_slots_in_sort_order(self, conn):
        slots = get_slots(conn)
        assert len(slots) == 56
        assert slots[0]["sort_order"] == 0
        assert all(a["sort_order"] <= b["sort_order"] for a, b in zip(slots, slots[1:]))

    def test_tree(self, conn):
        roots = build_tree(get_slots(conn))
        assert sorted(root["id"] for root in roots) == ["avn-maw", "meu-1"]

        aviation = next(root for root in roots if root["id"] == "avn-maw")
        assert len(aviation["children"]) == 8
        assert all(child["type"] == "role" for child in aviation["children"])

    def test_assign(self, conn, staff):
        person_id = add_personnel(conn, name="Jane Roe", rank="Cpl")
        slot = assign_slot(conn, "role-sq1-sl", person_id, staff)

        assert slot["personnel_id"] == person_id
        assert slot["personnel_name"] == "Jane Roe"
        assert slot["personnel_rank"] == "Cpl"
        assert slot["personnel_member_status"] == "Active"

        entry = get_recent_activity(conn, action="ORBAT_ASSIGNED")[0]
        assert entry["details"] == "Jane Roe assigned to Squad Leader"
        assert entry["user_name"] == "Command Staff"

    def test_assign_none_clears(self, conn):
        person_id = add_personnel(conn)
        assign_slot(conn, "role-sq1-sl", person_id)
        slot = assign_slot(conn, "role-sq1-sl", None)

        assert slot["personnel_id"] is None
        assert get_recent_activity(conn)[0]["details"] == "Squad Leader slot cleared"

    def test_unknown_slot(self, conn):
        with pytest.raises(SlotNotFound):
            assign_slot(conn, "role-nope", None)
        with pytest.raises(SlotNotFound):
            clear_slot(conn, "role-nope")

    def test_only_roles_assignable(self, conn):
        person_id = add_personnel(conn)
        with pytest.raises(SlotNotAssignable):
            assign_slot(conn, "sq-1", person_id)

    def test_unknown_personnel(self, conn):
        with pytest.raises(PersonnelNotFound):
            assign_slot(conn, "role-sq1-sl", 999)
        assert get_recent_activity(conn) == []

    def test_deleting_personnel_vacates_slot(self, conn):
        person_id = add_personnel(conn)
        assign_slot(conn, "role-ft11-1", person_id)
        conn.execute("DELETE FROM personnel WHERE id = ?", (person_id,))
        assert conn.execute(
            "SELECT personnel_id FROM orbat_slots WHERE id = 'role-ft11-1'"
        ).fetchone()[0] is None

    def test_concurrent_assignments(self, conn, staff):
        people = [add_personnel(conn, name=f"Marine {i}") for i in range(4)]
        slots = [s["id"] for s in get_slots(conn) if s["type"] == "role"][:8]
        errors = []

        def worker(person_id):
            try:
                for i in range(30):
                    assign_slot(conn, slots[i % len(slots)], person_id, staff)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(p,)) for p in people]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert not conn.in_transaction
        assert conn.execute(
            "SELECT COUNT(*) FROM activity_log WHERE action = 'ORBAT_ASSIGNED'"
        ).fetchone()[0] == 120
        held = {s["personnel_id"] for s in get_slots(conn) if s["id"] in slots}
        assert held <= set(people)


class TestOrbatRoutes:
    """Tests for /api/orbat."""

    def test_requires_session(self, client):
        response = client.get("/api/orbat")
        assert response.status_code == 401

    def test_list(self, client, marine):
        login(client, marine, "marine")
        response = client.get("/api/orbat")
        assert response.status_code == 200
        data = response.get_json()
        assert len(data) == 56
        assert {"id", "parent_id", "personnel_name"} <= set(data[0])

    def test_tree(self, client, marine):
        login(client, marine, "marine")
        data = client.get("/api/orbat?tree=1").get_json()
        assert sorted(node["id"] for node in data) == ["avn-maw", "meu-1"]

    def test_assign(self, client, conn, staff):
        login(client, staff, "admin")
        person_id = add_personnel(conn)

        response = client.post(
            "/api/orbat/assign", json={"slotId": "role-odin-1", "personnelId": person_id}
        )
        assert response.status_code == 200
        assert response.get_json()["personnel_id"] == person_id

    def test_assign_requires_slot(self, client, staff):
        login(client, staff, "admin")
        response = client.post("/api/orbat/assign", json={"personnelId": 1})
        assert response.status_code == 400

    def test_assign_group_slot(self, client, conn, staff):
        login(client, staff, "admin")
        person_id = add_personnel(conn)
        response = client.post(
            "/api/orbat/assign", json={"slotId": "plt-outlaw", "personnelId": person_id}
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Only role slots can be assigned"

    def test_assign_unknown(self, client, staff):
        login(client, staff, "admin")
        response = client.post(
            "/api/orbat/assign", json={"slotId": "role-odin-1", "personnelId": 999}
        )
        assert response.status_code == 404
        response = client.post("/api/orbat/assign", json={"slotId": "nope", "personnelId": None})
        assert response.status_code == 404

    def test_clear(self, client, conn, staff):
        login(client, staff, "admin")
        person_id = add_personnel(conn)
        assign_slot(conn, "role-odin-2", person_id)

        response = client.delete("/api/orbat/assign/role-odin-2")
        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        assert conn.execute(
            "SELECT personnel_id FROM orbat_slots WHERE id = 'role-odin-2'"
        ).fetchone()[0] is None

    def test_marine_is_read_only(self, client, conn, marine):
        login(client, marine, "marine")
        person_id = add_personnel(conn)
        response = client.post(
            "/api/orbat/assign", json={"slotId": "role-odin-1", "personnelId": person_id}
        )
        assert response.status_code == 403
        assert client.delete("/api/orbat/assign/role-odin-1").status_code == 403


class TestHealthRoutes:
    """Tests for /api/health."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json() == {
            "status": "ONLINE",
            "system": "PERSCOM v1.0",
            "unit": "26th MEU (SOC)",
        }

    def test_schema_health(self, client):
        data = client.get("/api/health/schema").get_json()
        assert data["status"] == "healthy"
        assert data["is_current"] is True
        assert data["last_applied"] == "005"
        assert data["pending_versions"] == []
        assert data["tables"] >= 15

"""
Test suite for the assignment workflow.

Tests:
- assign / return / re-assign and the assignment log
- maintenance append rules per role
- history endpoint
- parallel appends to the embedded logs

Run: pytest inventory_api/test_assignment.py -v
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from inventory_api import asset_store
from inventory_api.db import get_db_connection, new_id


def _maintenance(**overrides):
    body = {"date": "2024-05-01", "description": "Battery swap", "cost": 120.5, "performedBy": "IT Support"}
    body.update(overrides)
    return body


class TestAssignReturn:
    """POST /api/assets/{id}/assign and /return"""

    def test_assign_then_return(self, client, admin, employee, make_asset):
        asset = make_asset()

        resp = client.post(f"/api/assets/{asset['id']}/assign", headers=admin["headers"], json={"assignedTo": employee["id"]})
        assert resp.status_code == 200, resp.text
        assert resp.json()["assignedTo"]["id"] == employee["id"]

        resp = client.post(f"/api/assets/{asset['id']}/return", headers=admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["assignedTo"] is None

    def test_return_is_idempotent(self, client, admin, make_asset):
        asset = make_asset()

        first = client.post(f"/api/assets/{asset['id']}/return", headers=admin["headers"])
        second = client.post(f"/api/assets/{asset['id']}/return", headers=admin["headers"])

        assert first.status_code == second.status_code == 200
        assert second.json()["assignedTo"] is None
        history = client.get(f"/api/assets/{asset['id']}/history", headers=admin["headers"]).json()
        assert history["assignmentHistory"] == []

    def test_reassign_overwrites_and_keeps_history(self, client, admin, make_user, make_asset):
        first_user = make_user("employee")
        second_user = make_user("employee")
        asset = make_asset()
        url = f"/api/assets/{asset['id']}"

        client.post(f"{url}/assign", headers=admin["headers"], json={"assignedTo": first_user["id"]})
        before = client.get(f"{url}/history", headers=admin["headers"]).json()["assignmentHistory"]

        resp = client.post(f"{url}/assign", headers=admin["headers"], json={"assignedTo": second_user["id"]})
        assert resp.json()["assignedTo"]["id"] == second_user["id"]

        after = client.get(f"{url}/history", headers=admin["headers"]).json()["assignmentHistory"]
        assert len(after) == 2
        assert after[0] == before[0]
        assert after[0]["userId"] == first_user["id"]
        assert after[1]["action"] == "assigned"
        assert after[1]["userId"] == second_user["id"]
        assert after[1]["performedBy"] == admin["id"]

    def test_return_records_previous_assignee(self, client, admin, employee, make_asset):
        asset = make_asset(assigned_to=employee["id"])
        client.post(f"/api/assets/{asset['id']}/return", headers=admin["headers"])

        events = client.get(f"/api/assets/{asset['id']}/history", headers=admin["headers"]).json()["assignmentHistory"]
        assert [e["action"] for e in events] == ["returned"]
        assert events[0]["userId"] == employee["id"]

    @pytest.mark.parametrize("bad_id", ["not-a-valid-id", new_id()])
    def test_assign_to_invalid_user(self, client, admin, make_asset, bad_id):
        asset = make_asset()
        resp = client.post(f"/api/assets/{asset['id']}/assign", headers=admin["headers"], json={"assignedTo": bad_id})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid user reference"

    def test_assign_missing_asset(self, client, admin, employee):
        resp = client.post(f"/api/assets/{new_id()}/assign", headers=admin["headers"], json={"assignedTo": employee["id"]})
        assert resp.status_code == 404

    def test_manager_assigns_within_department(self, client, manager, employee, make_asset):
        asset = make_asset(location="IT Department")
        resp = client.post(f"/api/assets/{asset['id']}/assign", headers=manager["headers"], json={"assignedTo": employee["id"]})
        assert resp.status_code == 200

    def test_manager_outside_department(self, client, manager, employee, make_asset):
        asset = make_asset(location="Warehouse", assigned_to=employee["id"])
        url = f"/api/assets/{asset['id']}"
        assert client.post(f"{url}/assign", headers=manager["headers"], json={"assignedTo": employee["id"]}).status_code == 403
        assert client.post(f"{url}/return", headers=manager["headers"]).status_code == 403

    def test_employee_cannot_assign_or_return(self, client, employee, make_asset):
        asset = make_asset(assigned_to=employee["id"])
        url = f"/api/assets/{asset['id']}"
        assert client.post(f"{url}/assign", headers=employee["headers"], json={"assignedTo": employee["id"]}).status_code == 403
        assert client.post(f"{url}/return", headers=employee["headers"]).status_code == 403


class TestMaintenance:
    """POST /api/assets/{id}/maintenance"""

    def test_append_grows_history_by_one(self, client, admin, make_asset):
        asset = make_asset()
        url = f"/api/assets/{asset['id']}/maintenance"

        first = client.post(url, headers=admin["headers"], json=_maintenance())
        assert first.status_code == 200, first.text
        prior = first.json()["maintenanceHistory"]

        second = client.post(url, headers=admin["headers"], json=_maintenance(description="Screen", cost=80))
        records = second.json()["maintenanceHistory"]

        assert len(records) == len(prior) + 1
        assert records[: len(prior)] == prior
        assert records[-1]["description"] == "Screen"
        assert records[-1]["performedBy"] == "IT Support"
        assert records[-1]["date"] == "2024-05-01"

    def test_negative_cost_rejected(self, client, admin, make_asset):
        asset = make_asset()
        resp = client.post(f"/api/assets/{asset['id']}/maintenance", headers=admin["headers"], json=_maintenance(cost=-5))
        assert resp.status_code == 400

    def test_missing_fields_rejected(self, client, admin, make_asset):
        asset = make_asset()
        body = _maintenance()
        del body["performedBy"]
        resp = client.post(f"/api/assets/{asset['id']}/maintenance", headers=admin["headers"], json=body)
        assert resp.status_code == 400

    def test_missing_asset(self, client, admin):
        resp = client.post(f"/api/assets/{new_id()}/maintenance", headers=admin["headers"], json=_maintenance())
        assert resp.status_code == 404

    def test_employee_on_own_asset(self, client, employee, make_asset):
        asset = make_asset(assigned_to=employee["id"])
        resp = client.post(f"/api/assets/{asset['id']}/maintenance", headers=employee["headers"], json=_maintenance())
        assert resp.status_code == 200
        assert len(resp.json()["maintenanceHistory"]) == 1

    def test_employee_on_someone_elses_asset(self, client, employee, make_user, make_asset):
        other = make_user("employee")
        asset = make_asset(assigned_to=other["id"])
        resp = client.post(f"/api/assets/{asset['id']}/maintenance", headers=employee["headers"], json=_maintenance())
        assert resp.status_code == 403

    def test_manager_department_rule(self, client, manager, make_asset):
        inside = make_asset(location="IT Department")
        outside = make_asset(location="Warehouse")
        assert client.post(f"/api/assets/{inside['id']}/maintenance", headers=manager["headers"], json=_maintenance()).status_code == 200
        assert client.post(f"/api/assets/{outside['id']}/maintenance", headers=manager["headers"], json=_maintenance()).status_code == 403


class TestHistory:
    """GET /api/assets/{id}/history"""

    def test_history_shape(self, client, admin, employee, make_asset):
        asset = make_asset()
        url = f"/api/assets/{asset['id']}"
        client.post(f"{url}/maintenance", headers=admin["headers"], json=_maintenance())
        client.post(f"{url}/assign", headers=admin["headers"], json={"assignedTo": employee["id"]})

        data = client.get(f"{url}/history", headers=admin["headers"]).json()
        assert data["assetId"] == asset["id"]
        assert data["name"] == asset["name"]
        assert data["assignedTo"]["id"] == employee["id"]
        assert len(data["maintenanceHistory"]) == 1
        assert len(data["assignmentHistory"]) == 1

    def test_history_respects_visibility(self, client, employee, make_user, make_asset):
        other = make_user("employee")
        asset = make_asset(assigned_to=other["id"])
        assert client.get(f"/api/assets/{asset['id']}/history", headers=employee["headers"]).status_code == 404


class TestConcurrentAppends:
    """Log entries are appended inside the UPDATE, so parallel writers never drop each other's records."""

    def test_parallel_maintenance_posts_all_land(self, client, admin, make_asset):
        asset = make_asset()
        url = f"/api/assets/{asset['id']}"

        def post(n):
            return client.post(f"{url}/maintenance", headers=admin["headers"], json=_maintenance(description=f"Job {n}"))

        with ThreadPoolExecutor(max_workers=8) as pool:
            statuses = [resp.status_code for resp in pool.map(post, range(20))]

        assert statuses == [200] * 20
        records = client.get(f"{url}/history", headers=admin["headers"]).json()["maintenanceHistory"]
        assert sorted(r["description"] for r in records) == sorted(f"Job {n}" for n in range(20))

    def test_appends_from_separate_transactions_accumulate(self, admin, employee, make_asset):
        asset = make_asset()
        record = {"date": "2024-05-01", "description": "Check", "cost": 0, "performed_by": "IT"}
        event = {"action": "assigned", "user_id": employee["id"], "performed_by": admin["id"], "at": "2024-05-01T00:00:00.000Z"}

        for _ in range(3):
            with get_db_connection() as conn:
                asset_store.append_maintenance(conn, asset["id"], record)
            with get_db_connection() as conn:
                asset_store.set_assignment(conn, asset["id"], employee["id"], event)

        with get_db_connection() as conn:
            stored = asset_store.get_asset(conn, asset["id"])
        assert stored["maintenance_history"] == [record] * 3
        assert stored["assignment_history"] == [event] * 3
        assert stored["assigned_to"] == employee["id"]

    def test_append_to_missing_asset_returns_none(self):
        with get_db_connection() as conn:
            assert asset_store.append_maintenance(conn, new_id(), {"description": "x"}) is None

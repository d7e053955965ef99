import json

import pytest
from sqlalchemy import select

from bookdesk.extensions import db as database
from bookdesk.models import UserRole


def _json(response):
    return json.loads(response.data)


@pytest.mark.staff
class TestStaff:
    """Test suite for company staff management."""

    def test_owner_adds_staff_member(self, app, client, owner_headers, make_user, company_id):
        user_id = make_user("new.hire@example.com", first_name="Nia", last_name="Hire")

        response = client.post(
            "/api/staff/",
            json={"userId": user_id, "bio": "Colour specialist", "workSchedule": {"mon": "9-17"}},
            headers=owner_headers,
        )
        if response.status_code != 201:
            print(f"\nDEBUG ERROR: {response.data}")

        assert response.status_code == 201
        data = _json(response)["data"]
        assert data["companyId"] == company_id
        assert data["name"] == "Nia Hire"
        assert data["email"] == "new.hire@example.com"
        assert data["workSchedule"] == {"mon": "9-17"}
        assert data["status"] == "Active"
        assert data["joinDate"] is not None

        with app.app_context():
            role = database.session.scalar(
                select(UserRole).where(UserRole.user_id == user_id, UserRole.company_id == company_id)
            )
            assert role.role == 2

    def test_duplicate_staff_member(self, client, owner_headers, staff_user_id, staff_id):
        response = client.post("/api/staff/", json={"userId": staff_user_id}, headers=owner_headers)

        assert response.status_code == 409
        assert _json(response)["success"] is False

    def test_unknown_user(self, client, owner_headers):
        response = client.post("/api/staff/", json={"userId": "missing123"}, headers=owner_headers)

        assert response.status_code == 400
        assert _json(response)["errors"][0]["field"] == "userId"

    def test_staff_cannot_add_staff(self, client, staff_headers, client_user_id):
        response = client.post("/api/staff/", json={"userId": client_user_id}, headers=staff_headers)
        assert response.status_code == 403

    def test_list_and_search(self, client, staff_headers, staff_id):
        listing = _json(client.get("/api/staff/", headers=staff_headers))
        found = _json(client.get("/api/staff/?search=Sam", headers=staff_headers))
        missing = _json(client.get("/api/staff/?search=zzz", headers=staff_headers))

        assert listing["pagination"]["total"] == 1
        assert [s["id"] for s in found["data"]] == [staff_id]
        assert missing["data"] == []

    def test_list_is_company_scoped(self, client, other_owner_headers, staff_id):
        data = _json(client.get("/api/staff/", headers=other_owner_headers))
        assert data["data"] == []

    def test_client_cannot_list_staff(self, client, client_headers):
        assert client.get("/api/staff/", headers=client_headers).status_code == 403

    def test_get_staff_member(self, client, staff_headers, other_owner_headers, staff_id):
        response = client.get(f"/api/staff/{staff_id}", headers=staff_headers)

        assert response.status_code == 200
        assert _json(response)["data"]["firstName"] == "Sam"
        assert client.get(f"/api/staff/{staff_id}", headers=other_owner_headers).status_code == 403

    def test_get_missing_staff_member(self, client, staff_headers):
        response = client.get("/api/staff/nope000000", headers=staff_headers)

        assert response.status_code == 404
        assert _json(response)["message"] == "Staff member not found"

    def test_update_staff_member(self, client, owner_headers, staff_id):
        response = client.put(
            f"/api/staff/{staff_id}", json={"bio": "Senior stylist", "status": "Inactive"}, headers=owner_headers
        )

        assert response.status_code == 200
        data = _json(response)["data"]
        assert data["bio"] == "Senior stylist"
        assert data["status"] == "Inactive"

    def test_update_requires_a_field(self, client, owner_headers, staff_id):
        response = client.put(f"/api/staff/{staff_id}", json={}, headers=owner_headers)
        assert response.status_code == 400

    def test_update_rejects_unknown_status(self, client, owner_headers, staff_id):
        response = client.put(f"/api/staff/{staff_id}", json={"status": "Retired"}, headers=owner_headers)
        assert response.status_code == 400

    def test_delete_staff_member(self, client, owner_headers, staff_id):
        response = client.delete(f"/api/staff/{staff_id}", headers=owner_headers)

        assert response.status_code == 200
        assert client.get(f"/api/staff/{staff_id}", headers=owner_headers).status_code == 404

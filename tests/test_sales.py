import json

import pytest
from sqlalchemy import select

from bookdesk.extensions import db as database
from bookdesk.models import CompanyProductStock, CompanyStaff, CompanyUser, Sale
from bookdesk.repositories.base import transaction
from bookdesk.repositories.sale_repository import SaleRepository


def _json(response):
    return json.loads(response.data)


@pytest.fixture
def sale_payload(client_user_id, service_id, variant_id):
    return {
        "clientId": client_user_id,
        "amount": 62,
        "paymentMethod": "Card",
        "items": [
            {"type": "service", "serviceId": service_id, "name": "Haircut", "quantity": 1, "unitPrice": 50},
            {"type": "product", "variantId": variant_id, "name": "Shampoo", "quantity": 1, "unitPrice": 12},
        ],
        "notes": "Walk-in",
    }


@pytest.fixture
def make_sale(client, staff_headers, sale_payload):
    def _make_sale(client_id=None):
        payload = dict(sale_payload)
        if client_id:
            payload["clientId"] = client_id
        response = client.post("/api/sales/", json=payload, headers=staff_headers)
        assert response.status_code == 201, response.data
        return _json(response)["data"]["id"]

    return _make_sale


def _batches(app, variant_id):
    with app.app_context():
        return [
            b.quantity
            for b in database.session.scalars(
                select(CompanyProductStock)
                .where(CompanyProductStock.variant_id == variant_id)
                .order_by(CompanyProductStock.purchase_date)
            ).all()
        ]


@pytest.mark.sales
class TestCreateSale:
    def test_create_sale(self, app, client, staff_headers, sale_payload, staff_id, company_id, client_user_id, variant_id):
        response = client.post("/api/sales/", json=sale_payload, headers=staff_headers)
        if response.status_code != 201:
            print(f"\nDEBUG ERROR: {response.data}")

        assert response.status_code == 201
        data = _json(response)["data"]
        assert data["companyId"] == company_id
        assert data["userId"] == client_user_id
        assert data["staffId"] == staff_id
        assert data["totalAmount"] == 62.0
        assert data["subtotal"] == 62.0
        assert data["discountAmount"] == 0.0
        assert data["notes"] == "Walk-in"
        assert len(data["items"]) == 2
        assert data["userName"] == "Casey Client"
        assert data["appointmentId"] is None

        assert _batches(app, variant_id) == [2, 10]

        with app.app_context():
            tracking = database.session.scalar(
                select(CompanyUser).where(
                    CompanyUser.company_id == company_id, CompanyUser.user_id == client_user_id
                )
            )
            assert tracking.total_sales == 1
            assert float(tracking.total_spent) == 62.0

    def test_line_discount_is_recorded(self, client, staff_headers, sale_payload):
        sale_payload["items"][1]["discount"] = 50
        sale_payload["amount"] = 56

        data = _json(client.post("/api/sales/", json=sale_payload, headers=staff_headers))["data"]

        assert data["subtotal"] == 62.0
        assert data["discountAmount"] == 6.0
        assert data["totalAmount"] == 56.0
        assert data["productsUsed"][0]["discount"] == 50.0

    def test_seller_without_staff_record_gets_one(self, app, client, owner_headers, owner_id, sale_payload):
        response = client.post("/api/sales/", json=sale_payload, headers=owner_headers)

        assert response.status_code == 201
        staff_id = _json(response)["data"]["staffId"]
        with app.app_context():
            staff = database.session.get(CompanyStaff, staff_id)
            assert staff.user_id == owner_id

    @pytest.mark.parametrize(
        "change,field",
        [
            ({"amount": 0}, "amount"),
            ({"amount": -5}, "amount"),
            ({"clientId": None}, "clientId"),
        ],
    )
    def test_invalid_sale_fields(self, client, staff_headers, sale_payload, change, field):
        sale_payload.update(change)
        response = client.post("/api/sales/", json=sale_payload, headers=staff_headers)

        assert response.status_code == 400
        assert field in [e["field"] for e in _json(response)["errors"]]

    @pytest.mark.parametrize(
        "change,field",
        [
            ({"quantity": 0}, "items.0.quantity"),
            ({"unitPrice": 0}, "items.0.unitPrice"),
            ({"discount": 150}, "items.0.discount"),
            ({"type": "gift"}, "items.0.type"),
        ],
    )
    def test_invalid_item_fields(self, client, staff_headers, sale_payload, change, field):
        sale_payload["items"][0].update(change)
        response = client.post("/api/sales/", json=sale_payload, headers=staff_headers)

        assert response.status_code == 400
        assert field in [e["field"] for e in _json(response)["errors"]]

    def test_unknown_client(self, client, staff_headers, sale_payload):
        sale_payload["clientId"] = "missing123"
        response = client.post("/api/sales/", json=sale_payload, headers=staff_headers)

        assert response.status_code == 400
        assert _json(response)["errors"][0]["field"] == "clientId"

    def test_admin_must_name_company(self, client, admin_headers, sale_payload):
        response = client.post("/api/sales/", json=sale_payload, headers=admin_headers)

        assert response.status_code == 400
        assert _json(response)["errors"][0]["field"] == "companyId"

    def test_client_role_cannot_sell(self, client, client_headers, sale_payload):
        assert client.post("/api/sales/", json=sale_payload, headers=client_headers).status_code == 403

    def test_idempotent_sale(self, app, client, staff_headers, sale_payload, variant_id):
        headers = {**staff_headers, "Idempotency-Key": "sale-123"}
        first = client.post("/api/sales/", json=sale_payload, headers=headers)
        second = client.post("/api/sales/", json=sale_payload, headers=headers)

        assert _json(first)["data"]["id"] == _json(second)["data"]["id"]
        assert second.headers.get("Idempotent-Replay") == "true"
        with app.app_context():
            assert len(database.session.scalars(select(Sale)).all()) == 1
        assert _batches(app, variant_id) == [2, 10]

    def test_sales_are_immutable(self, client, staff_headers, make_sale):
        sale_id = make_sale()

        assert client.put(f"/api/sales/{sale_id}", json={"amount": 1}, headers=staff_headers).status_code == 405
        assert client.delete(f"/api/sales/{sale_id}", headers=staff_headers).status_code == 405


@pytest.mark.sales
class TestReadSales:
    def test_list_sales(self, client, owner_headers, make_sale, other_client_id):
        make_sale()
        make_sale(other_client_id)

        data = _json(client.get("/api/sales/", headers=owner_headers))

        assert data["count"] == 2
        assert "pagination" not in data

    def test_list_sales_paginated(self, client, owner_headers, make_sale, other_client_id):
        make_sale()
        make_sale(other_client_id)

        data = _json(client.get("/api/sales/?page=1&limit=1", headers=owner_headers))

        assert data["count"] == 1
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["totalPages"] == 2

    def test_search_sales(self, client, owner_headers, make_sale, other_client_id):
        make_sale()
        make_sale(other_client_id)

        by_name = _json(
            client.get("/api/sales/", query_string={"search": "Casey Client"}, headers=owner_headers)
        )
        by_email = _json(
            client.get("/api/sales/", query_string={"search": "other.client"}, headers=owner_headers)
        )

        assert [s["userFirstName"] for s in by_name["data"]] == ["Casey"]
        assert [s["userFirstName"] for s in by_email["data"]] == ["Dana"]

    def test_date_filters(self, client, owner_headers, make_sale):
        make_sale()

        since_2000 = _json(client.get("/api/sales/?dateFrom=2000-01-01", headers=owner_headers))
        before_2000 = _json(client.get("/api/sales/?dateTo=2000-01-02", headers=owner_headers))

        assert since_2000["count"] == 1
        assert before_2000["count"] == 0

    def test_enriched_list(self, client, owner_headers, make_sale):
        make_sale()

        data = _json(client.get("/api/sales/?enrich=true", headers=owner_headers))["data"]
        names = sorted(i["name"] for i in data[0]["items"])

        assert names == ["Haircut", "Shampoo - 250ml"]

    def test_client_sees_own_sales(self, client, client_headers, make_sale, other_client_id, client_user_id):
        make_sale()
        make_sale(other_client_id)

        data = _json(client.get("/api/sales/", headers=client_headers))["data"]
        assert [s["userId"] for s in data] == [client_user_id]

    def test_get_sale(self, client, staff_headers, make_sale):
        sale_id = make_sale()

        response = client.get(f"/api/sales/{sale_id}", headers=staff_headers)

        assert response.status_code == 200
        data = _json(response)["data"]
        assert data["companyName"] == "Test Salon"
        assert data["servicesUsed"][0]["name"] == "Haircut"

    def test_get_sale_other_company(self, client, other_owner_headers, make_sale):
        sale_id = make_sale()
        assert client.get(f"/api/sales/{sale_id}", headers=other_owner_headers).status_code == 403

    def test_get_sale_not_found(self, client, staff_headers):
        response = client.get("/api/sales/nope000000", headers=staff_headers)

        assert response.status_code == 404
        assert _json(response)["message"] == "Sale not found"

    def test_customers_from_sales(self, client, staff_headers, make_sale):
        make_sale()

        data = _json(client.get("/api/sales/customers", headers=staff_headers))["data"]
        assert [c["name"] for c in data] == ["Casey Client"]

    def test_customers_fall_back_to_bookings(
        self, client, staff_headers, make_appointment, other_client_id, company_id
    ):
        make_appointment(other_client_id, company_id)

        data = _json(client.get("/api/sales/customers", headers=staff_headers))["data"]
        assert [c["email"] for c in data] == ["other.client@example.com"]


@pytest.mark.sales
class TestStockDeduction:
    def test_oldest_batch_first(self, app, variant_id):
        with app.app_context():
            with transaction("deducting stock"):
                remaining = SaleRepository.deduct_stock(variant_id, 5)

        assert remaining == 0
        assert _batches(app, variant_id) == [0, 8]

    def test_shortfall_is_reported(self, app, variant_id):
        with app.app_context():
            with transaction("deducting stock"):
                remaining = SaleRepository.deduct_stock(variant_id, 20)

        assert remaining == 7
        assert _batches(app, variant_id) == [0, 0]

    def test_inactive_batches_are_skipped(self, app, variant_id):
        with app.app_context():
            oldest = database.session.scalars(
                select(CompanyProductStock)
                .where(CompanyProductStock.variant_id == variant_id)
                .order_by(CompanyProductStock.purchase_date)
            ).first()
            oldest.is_active = False
            database.session.commit()

            with transaction("deducting stock"):
                SaleRepository.deduct_stock(variant_id, 4)

        assert _batches(app, variant_id) == [3, 6]

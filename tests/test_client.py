import httpx
import pytest

from bookdesk.client.services import (
    ApiClient,
    ApiRequestError,
    AppointmentsService,
    AuthService,
    SalesService,
    StaffService,
)
from bookdesk.client.store import Store


@pytest.fixture
def api(app):
    with ApiClient(base_url="http://testserver", transport=httpx.WSGITransport(app=app)) as api_client:
        yield api_client


@pytest.fixture
def staff_api(api, staff_user_id):
    AuthService(api).login("staff@example.com", "password123")
    return api


@pytest.mark.client
class TestApiClient:
    def test_login_stores_token(self, api, owner_id):
        auth = AuthService(api)
        auth.login("owner@example.com", "password123")

        assert api.token
        assert auth.me()["data"]["roleName"] == "Company Owner"

    def test_error_carries_status_and_message(self, api, owner_id):
        with pytest.raises(ApiRequestError) as exc_info:
            AuthService(api).login("owner@example.com", "wrong")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid credentials"
        assert api.token is None

    def test_validation_errors_are_exposed(self, staff_api, client_user_id, company_id):
        with pytest.raises(ApiRequestError) as exc_info:
            AppointmentsService(staff_api).create(
                {"clientId": client_user_id, "companyId": company_id, "time": "10:00", "duration": 60}
            )

        assert exc_info.value.status_code == 400
        assert "date" in [e["field"] for e in exc_info.value.errors]

    def test_create_with_same_key_books_once(self, staff_api, appointment_payload):
        appointments = AppointmentsService(staff_api)
        first = appointments.create(appointment_payload, idempotency_key="retry-1")
        second = appointments.create(appointment_payload, idempotency_key="retry-1")

        assert first["data"]["id"] == second["data"]["id"]
        assert appointments.list()["pagination"]["total"] == 1

    def test_each_create_gets_a_fresh_key(self, staff_api, appointment_payload):
        appointments = AppointmentsService(staff_api)
        appointments.create(appointment_payload)
        appointments.create(appointment_payload)

        assert appointments.list()["pagination"]["total"] == 2

    def test_filters_are_sent_in_camel_case(self, staff_api, make_appointment, client_user_id, company_id):
        make_appointment(client_user_id, company_id, status=1)
        make_appointment(client_user_id, company_id, status=0)

        body = AppointmentsService(staff_api).list(status="confirmed", client_id=client_user_id, limit=5)

        assert body["pagination"]["limit"] == 5
        assert [a["status"] for a in body["data"]] == [1]

    def test_complete_and_fetch_sale(self, staff_api, make_appointment, client_user_id, company_id, service_id):
        appointment_id = make_appointment(client_user_id, company_id, service_id=service_id)
        appointments = AppointmentsService(staff_api)

        result = appointments.update_status(
            appointment_id,
            "completed",
            {"billingItems": [{"type": "service", "serviceId": service_id, "unitPrice": 40}]},
        )
        sale = appointments.sale(appointment_id)["data"]

        assert sale["id"] == result["saleId"]
        assert SalesService(staff_api).get(sale["id"])["data"]["totalAmount"] == 40.0

    def test_staff_service(self, staff_api, staff_id):
        assert StaffService(staff_api).get(staff_id)["data"]["firstName"] == "Sam"


@pytest.mark.client
class TestStore:
    def test_dispatch_success(self, staff_api, make_appointment, client_user_id, company_id):
        make_appointment(client_user_id, company_id)
        store = Store()

        payload = store.dispatch("appointments", AppointmentsService(staff_api).list, limit=5)
        state = store.slice("appointments").snapshot()

        assert payload["success"] is True
        assert len(state["data"]) == 1
        assert state["pagination"]["limit"] == 5
        assert state["loading"] is False
        assert state["error"] is None

    def test_dispatch_failure(self, api):
        store = Store()

        payload = store.dispatch("appointments", AppointmentsService(api).list)
        state = store.slice("appointments").snapshot()

        assert payload is None
        assert state["loading"] is False
        assert state["error"]["status"] == 401
        assert store.notifications[-1] == {
            "type": "error",
            "resource": "appointments",
            "message": "Access token required",
        }

    def test_success_message_is_queued(self, staff_api, appointment_payload):
        store = Store()

        store.dispatch(
            "appointments",
            AppointmentsService(staff_api).create,
            appointment_payload,
            success_message="Appointment booked",
        )

        assert store.notifications == [
            {"type": "success", "resource": "appointments", "message": "Appointment booked"}
        ]

    def test_stale_response_is_ignored(self):
        store = Store()
        older = store.begin("sales")
        newer = store.begin("sales")

        assert store.resolve("sales", newer, {"data": ["new"]}) is True
        assert store.resolve("sales", older, {"data": ["old"]}) is False
        assert store.slice("sales").data == ["new"]

    def test_stale_failure_is_ignored(self):
        store = Store()
        older = store.begin("staff")
        newer = store.begin("staff")

        assert store.reject("staff", older, ApiRequestError(500, "boom")) is False
        assert store.slice("staff").loading is True
        assert store.notifications == []

        store.resolve("staff", newer, [])
        assert store.slice("staff").snapshot()["loading"] is False

    def test_slices_are_independent(self):
        store = Store()
        seq = store.begin("sales")
        store.begin("staff")

        assert store.resolve("sales", seq, {"data": [1], "pagination": {"page": 1}}) is True
        assert store.slice("sales").pagination == {"page": 1}
        assert store.slice("staff").loading is True

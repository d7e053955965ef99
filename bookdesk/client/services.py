"""HTTP client for the Bookdesk API, one service object per resource."""

import uuid

import httpx


class ApiRequestError(Exception):
    def __init__(self, status_code, message, errors=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


def new_idempotency_key():
    return uuid.uuid4().hex


def _camel(name):
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _params(filters):
    return {_camel(k): v for k, v in filters.items() if v is not None}


class ApiClient:
    def __init__(self, base_url="http://localhost:5000", token=None, transport=None, timeout=10.0):
        self.token = token
        self._http = httpx.Client(base_url=base_url, transport=transport, timeout=timeout)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def request(self, method, path, json=None, params=None, headers=None):
        request_headers = {"Accept": "application/json"}
        if self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"
        if headers:
            request_headers.update(headers)

        try:
            response = self._http.request(
                method, path, json=json, params=params, headers=request_headers
            )
        except httpx.HTTPError as e:
            raise ApiRequestError(0, f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {"success": False, "message": response.text or response.reason_phrase}

        if response.is_error:
            raise ApiRequestError(
                response.status_code,
                body.get("message", "Request failed"),
                body.get("errors"),
            )
        return body


class _Service:
    path = ""

    def __init__(self, client: ApiClient):
        self.client = client

    def _url(self, suffix=""):
        return f"{self.path}{suffix}"

    def _create(self, payload, idempotency_key=None, suffix="/"):
        headers = {"Idempotency-Key": idempotency_key or new_idempotency_key()}
        return self.client.request("POST", self._url(suffix), json=payload, headers=headers)


class AuthService(_Service):
    path = "/api/auth"

    def signup(self, payload, idempotency_key=None):
        return self._create(payload, idempotency_key, suffix="/signup")

    def login(self, email, password, role_id=None):
        payload = {"email": email, "password": password}
        if role_id is not None:
            payload["roleId"] = role_id
        body = self.client.request("POST", self._url("/login"), json=payload)
        self.client.token = body["data"]["token"]
        return body

    def me(self):
        return self.client.request("GET", self._url("/me"))


class AppointmentsService(_Service):
    path = "/api/appointments"

    def list(self, **filters):
        return self.client.request("GET", self._url("/"), params=_params(filters))

    def get(self, appointment_id):
        return self.client.request("GET", self._url(f"/{appointment_id}"))

    def create(self, payload, idempotency_key=None):
        return self._create(payload, idempotency_key)

    def update(self, appointment_id, payload):
        return self.client.request("PUT", self._url(f"/{appointment_id}"), json=payload)

    def delete(self, appointment_id):
        return self.client.request("DELETE", self._url(f"/{appointment_id}"))

    def update_status(self, appointment_id, status, completion_data=None):
        payload = {"status": status}
        if completion_data is not None:
            payload["completionData"] = completion_data
        return self.client.request("PATCH", self._url(f"/{appointment_id}/status"), json=payload)

    def update_payment(self, appointment_id, payment_status, payment_method=None):
        payload = {"paymentStatus": payment_status}
        if payment_method:
            payload["paymentMethod"] = payment_method
        return self.client.request("PATCH", self._url(f"/{appointment_id}/payment"), json=payload)

    def sale(self, appointment_id):
        return self.client.request("GET", self._url(f"/{appointment_id}/sale"))

    def stats(self):
        return self.client.request("GET", self._url("/stats/overview"))

    def in_range(self, start_date, end_date):
        return self.client.request("GET", self._url(f"/range/{start_date}/{end_date}"))

    def for_user(self, user_id, status=None, limit=None):
        params = _params({"status": status, "limit": limit})
        return self.client.request("GET", self._url(f"/user/{user_id}"), params=params)

    def today(self):
        return self.client.request("GET", self._url("/today/list"))

    def upcoming(self, limit=None):
        return self.client.request("GET", self._url("/upcoming/list"), params=_params({"limit": limit}))


class SalesService(_Service):
    path = "/api/sales"

    def list(self, **filters):
        return self.client.request("GET", self._url("/"), params=_params(filters))

    def get(self, sale_id):
        return self.client.request("GET", self._url(f"/{sale_id}"))

    def create(self, payload, idempotency_key=None):
        return self._create(payload, idempotency_key)

    def customers(self):
        return self.client.request("GET", self._url("/customers"))


class StaffService(_Service):
    path = "/api/staff"

    def list(self, **filters):
        return self.client.request("GET", self._url("/"), params=_params(filters))

    def get(self, staff_id):
        return self.client.request("GET", self._url(f"/{staff_id}"))

    def create(self, payload):
        return self.client.request("POST", self._url("/"), json=payload)

    def update(self, staff_id, payload):
        return self.client.request("PUT", self._url(f"/{staff_id}"), json=payload)

    def delete(self, staff_id):
        return self.client.request("DELETE", self._url(f"/{staff_id}"))

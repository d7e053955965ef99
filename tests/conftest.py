"""
Pytest configuration and shared fixtures for the Bookdesk API tests.
"""

import datetime
import os
import sys
from pathlib import Path

import bcrypt
import pytest
from dotenv import load_dotenv

test_env_path = Path(__file__).parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)
    print(f" Loaded test environment from: {test_env_path}")

os.environ["TESTING"] = "True"

from bookdesk.config import engine_options, is_production_database  # noqa: E402
from bookdesk.constants.user_roles import (  # noqa: E402
    COMPANY_OWNER,
    STAFF_MEMBER,
    SYSTEM_ADMIN,
    USER,
)
from bookdesk.extensions import db as database  # noqa: E402
from bookdesk.models import (  # noqa: E402
    Appointment,
    Base,
    Company,
    CompanyProduct,
    CompanyProductStock,
    CompanyProductVariant,
    CompanyService,
    CompanySpace,
    CompanyStaff,
    User,
    UserRole,
)
from main import create_app  # noqa: E402

PASSWORD = "password123"


@pytest.fixture
def app():
    """Fresh app and schema for every test."""
    test_db_url = os.environ.get("MYSQL_TEST_URL", "sqlite://")
    if is_production_database(test_db_url):
        print(f" DANGER: Database URL appears to be production: {test_db_url}")
        sys.exit(1)

    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": test_db_url,
            "SQLALCHEMY_ENGINE_OPTIONS": engine_options(test_db_url),
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "BCRYPT_LOG_ROUNDS": 4,
        }
    )

    with app.app_context():
        Base.metadata.drop_all(bind=database.engine)
        Base.metadata.create_all(bind=database.engine)

    yield app

    with app.app_context():
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user with one role; returns the user id."""

    def _make_user(email, role=USER, company_id=None, first_name="Test", last_name="User", **extra):
        with app.app_context():
            user = User(
                email=email,
                password_hash=bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(4)).decode(
                    "utf-8"
                ),
                first_name=first_name,
                last_name=last_name,
                **extra,
            )
            database.session.add(user)
            database.session.flush()
            database.session.add(
                UserRole(user_id=user.id, company_id=company_id, role=role, is_default=True)
            )
            database.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""

    def _login(email, password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.data
        token = response.get_json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


def _add(app, obj):
    with app.app_context():
        database.session.add(obj)
        database.session.commit()
        return obj.id


@pytest.fixture
def company_id(app):
    return _add(app, Company(name="Test Salon", email="salon@example.com"))


@pytest.fixture
def other_company_id(app):
    return _add(app, Company(name="Other Salon"))


@pytest.fixture
def owner_id(make_user, company_id):
    return make_user("owner@example.com", COMPANY_OWNER, company_id, "Olive", "Owner")


@pytest.fixture
def staff_user_id(make_user, company_id):
    return make_user("staff@example.com", STAFF_MEMBER, company_id, "Sam", "Staff")


@pytest.fixture
def staff_id(app, staff_user_id, company_id):
    """company_staff row for the staff user."""
    return _add(app, CompanyStaff(company_id=company_id, user_id=staff_user_id, status="Active"))


@pytest.fixture
def client_user_id(make_user):
    return make_user("client@example.com", USER, None, "Casey", "Client", phone="555-0101")


@pytest.fixture
def other_client_id(make_user):
    return make_user("other.client@example.com", USER, None, "Dana", "Other", phone="555-0202")


@pytest.fixture
def admin_id(make_user):
    return make_user("admin@example.com", SYSTEM_ADMIN, None, "Ada", "Admin")


@pytest.fixture
def other_owner_id(make_user, other_company_id):
    return make_user("other.owner@example.com", COMPANY_OWNER, other_company_id, "Omar", "Other")


@pytest.fixture
def owner_headers(login, owner_id):
    return login("owner@example.com")


@pytest.fixture
def staff_headers(login, staff_user_id):
    return login("staff@example.com")


@pytest.fixture
def client_headers(login, client_user_id):
    return login("client@example.com")


@pytest.fixture
def admin_headers(login, admin_id):
    return login("admin@example.com")


@pytest.fixture
def other_owner_headers(login, other_owner_id):
    return login("other.owner@example.com")


@pytest.fixture
def service_id(app, company_id):
    return _add(
        app,
        CompanyService(
            company_id=company_id,
            name="Haircut",
            category="Hair",
            duration=60,
            price=50,
            image_url="https://cdn.example.com/haircut.png",
        ),
    )


@pytest.fixture
def space_id(app, company_id):
    return _add(app, CompanySpace(company_id=company_id, name="Chair 1", capacity=1))


@pytest.fixture
def variant_id(app, company_id):
    """Product variant with two stock batches: 3 units bought first, then 10."""
    with app.app_context():
        product = CompanyProduct(company_id=company_id, name="Shampoo")
        database.session.add(product)
        database.session.flush()
        variant = CompanyProductVariant(product_id=product.id, name="250ml", price=12)
        database.session.add(variant)
        database.session.flush()
        database.session.add_all(
            [
                CompanyProductStock(
                    variant_id=variant.id,
                    quantity=3,
                    purchase_date=datetime.date(2024, 1, 1),
                ),
                CompanyProductStock(
                    variant_id=variant.id,
                    quantity=10,
                    purchase_date=datetime.date(2024, 6, 1),
                ),
            ]
        )
        database.session.commit()
        return variant.id


@pytest.fixture
def make_appointment(app):
    """Insert an appointment row directly; returns its id."""

    def _make_appointment(client_id, company_id, **fields):
        values = {
            "date": datetime.date(2030, 5, 1),
            "time": datetime.time(10, 0),
            "duration": 60,
            "status": 0,
        }
        values.update(fields)
        return _add(app, Appointment(client_id=client_id, company_id=company_id, **values))

    return _make_appointment


@pytest.fixture
def appointment_payload(client_user_id, company_id, service_id):
    return {
        "clientId": client_user_id,
        "companyId": company_id,
        "serviceId": service_id,
        "date": "2030-05-01",
        "time": "10:00",
        "duration": 60,
    }

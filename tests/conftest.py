"""Shared fixtures: an app on in-memory SQLite plus seeded users and a company."""

import pytest

from config import Config
from esg_portal import create_app, db
from esg_portal.models import Company, User, ROLE_ADMIN, ROLE_AUDITOR, ROLE_USER

PASSWORD = "password123"

# Scenario data reused across API tests
ENV_ENERGY_FIELDS = {
    "electricityKwh": 50000,
    "fuelLitres": 5000,
    "scope1Emissions": 10,
    "scope2Emissions": 5,
}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    ADMIN_EMAIL = "admin@test.local"
    ADMIN_PASSWORD = "adminpass1"
    ADMIN_PLAN_OVERRIDES = {}


@pytest.fixture
def app(tmp_path):
    config = type("Cfg", (TestingConfig,), {"UPLOAD_FOLDER": str(tmp_path / "evidence")})
    app = create_app(config)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(app, email, role=ROLE_USER, company_id=None, plan="starter"):
    """Insert a user; returns (user_id, bearer headers)."""
    with app.app_context():
        user = User(email=email, name=email.split("@")[0], role=role, plan=plan, company_id=company_id)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id, {"Authorization": f"Bearer {user.generate_token()}"}


@pytest.fixture
def owner(app):
    return create_user(app, "owner@test.local")


@pytest.fixture
def auth_headers(owner):
    return owner[1]


@pytest.fixture
def company(app, owner):
    """Company owned by `owner`; returns its id."""
    with app.app_context():
        c = Company(name="Acme Textiles", industry="Manufacturing", user_id=owner[0], plan="starter")
        db.session.add(c)
        db.session.flush()
        db.session.get(User, owner[0]).company_id = c.id
        db.session.commit()
        return c.id


@pytest.fixture
def other_headers(app):
    return create_user(app, "outsider@test.local")[1]


@pytest.fixture
def auditor_headers(app, company):
    return create_user(app, "auditor@test.local", role=ROLE_AUDITOR, company_id=company)[1]


@pytest.fixture
def admin_headers(app):
    return create_user(app, "root@test.local", role=ROLE_ADMIN, plan="enterprise")[1]


@pytest.fixture
def submit(client, auth_headers):
    """POST a pillar record for the fixture owner."""
    def _submit(slug, company_id, period, headers=None, **fields):
        return client.post(
            f"/api/metrics/{slug}",
            json={"companyId": company_id, "period": period, **fields},
            headers=headers or auth_headers,
        )
    return _submit

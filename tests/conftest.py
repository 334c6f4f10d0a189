"""
Pytest fixtures for the inventrack test suite.

Provides:
- an app on a throwaway SQLite file with the scheduler disabled
- an app context for service level tests
- helpers to register users and get a logged-in test client per user
"""

from datetime import datetime

import pytest

from inventrack import create_app, db
from inventrack import identity


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "SCHEDULER_ENABLED": False,
        "ADMIN_USERNAME": "admin",
        "ADMIN_PASSWORD": "admin-pw",
        "SECRET_KEY": "test",
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def make_user(ctx):
    def _make(username, role, password="pw"):
        return identity.register(username, password, role)
    return _make


@pytest.fixture
def login(app):
    """Return a test client logged in as (username, role)."""
    def _login(username, role, password="pw", register=True):
        client = app.test_client()
        if register:
            resp = client.post("/auth/register", json={"username": username, "password": password, "role": role})
            assert resp.status_code in (201, 409)
        resp = client.post("/auth/login", json={"username": username, "password": password, "role": role})
        assert resp.status_code == 200, resp.get_json()
        return client
    return _login


@pytest.fixture
def t0():
    return datetime(2024, 1, 10, 9, 0, 0)


def item_payload(**overrides):
    data = {
        "name": "Laptop",
        "brand": "Dell",
        "serialNumber": "SN1",
        "date_added": "2024-01-01",
    }
    data.update(overrides)
    return data


def spec_payload(**overrides):
    data = item_payload(
        hasSpecs=True,
        model="Latitude 5440",
        warranty_expiration="2027-01-01",
        cpu="i5-1345U",
        ram="16GB",
        storage="512GB SSD",
    )
    data.update(overrides)
    return data

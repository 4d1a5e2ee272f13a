import os

os.environ.setdefault("APP_ENV", "testing")

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.user import Role  # noqa: E402

AUTH = "/api/v1/auth"
PASSWORD = "longenough1"


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'auth.db'}"})
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


@pytest.fixture
def credentials(app):
    with app.app_context():
        yield app.extensions["credential_store"]


@pytest.fixture
def ledger(app):
    with app.app_context():
        yield app.extensions["session_ledger"]


@pytest.fixture
def audit(app):
    with app.app_context():
        yield app.extensions["audit_trail"]


@pytest.fixture
def make_user(app):
    """Create a user straight in the store; returns its id."""

    def _make(email="user@example.com", password=PASSWORD, role=Role.STUDENT, must_change_password=False):
        with app.app_context():
            user = app.extensions["credential_store"].create(
                email, password, "First", "Last", role, must_change_password=must_change_password
            )
            return user.id

    return _make


def set_cookies(response):
    """Map cookie name -> raw Set-Cookie header for a response."""
    cookies = {}
    for header in response.headers.getlist("Set-Cookie"):
        name = header.split("=", 1)[0]
        cookies[name] = header
    return cookies


def cookie_value(response, name):
    header = set_cookies(response)[name]
    return header.split(";", 1)[0].split("=", 1)[1]


def login(client, email="user@example.com", password=PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


def refresh_with(app, refresh_token):
    """POST /refresh from a cookie-less client carrying only the given refresh token."""
    fresh = app.test_client(use_cookies=False)
    return fresh.post(f"{AUTH}/refresh", headers={"Cookie": f"refresh_token={refresh_token}"})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}

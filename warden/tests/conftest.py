import sys
from pathlib import Path

import pytest
from werkzeug.test import EnvironBuilder

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from warden import create_app
from warden.core.auth.users import InMemoryUserLookupService, UserDetails
from warden.core.pipeline import PendingCookies
from warden.extensions import db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")


@pytest.fixture()
def app():
    """Per-test app on an in-memory database."""
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def users():
    """Lookup service with precomputed hashes; remember-me only uses them as signing material."""
    return InMemoryUserLookupService(
        [
            UserDetails("marissa", "hash-marissa", ("ROLE_USER",)),
            UserDetails("sam", "hash-sam", ("ROLE_USER",)),
            UserDetails("disabled", "hash-disabled", ("ROLE_USER",), enabled=False),
        ]
    )


@pytest.fixture()
def cookies():
    return PendingCookies()


def _make_request(cookies=None, data=None, json=None, path="/", method=None, secure=False):
    """Build a Werkzeug request carrying the given cookies and parameters."""
    headers = {}
    if cookies:
        headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in cookies.items())
    builder = EnvironBuilder(
        path=path,
        method=method or ("POST" if data is not None or json is not None else "GET"),
        base_url="https://localhost/" if secure else "http://localhost/",
        headers=headers,
        data=data,
        json=json,
    )
    return builder.get_request()


@pytest.fixture()
def make_request():
    return _make_request

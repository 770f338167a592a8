import base64

import pytest

from warden import create_app
from warden.config import TestingConfig
from warden.core.pipeline import ConfigurationError
from warden.core.rememberme import (
    InMemoryTokenStore,
    PersistentTokenBasedRememberMeServices,
    SqlAlchemyTokenStore,
    TokenBasedRememberMeServices,
)
from warden.extensions import db

pytestmark = pytest.mark.integration

CREDENTIALS = {"username": "marissa", "password": "wombat"}


def _login(client, remember=True, **extra):
    payload = {**CREDENTIALS, **extra}
    if remember:
        payload["remember-me"] = True
    return client.post("/login", json=payload)


def _remember_cookie(client):
    cookie = client.get_cookie("remember-me")
    return cookie.value if cookie is not None else None


@pytest.fixture(params=["memory", "sqlalchemy"])
def persistent_app(request, monkeypatch):
    """App whose remember-me cookies are backed by a token store."""
    monkeypatch.setattr(TestingConfig, "REMEMBER_ME_TOKEN_STORE", request.param)
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


def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}


def test_login_without_remember_me_sets_no_cookie(client):
    response = _login(client, remember=False)

    assert response.status_code == 200
    assert response.get_json()["user"] == {"username": "marissa", "authorities": ["ROLE_USER"], "remembered": False}
    assert _remember_cookie(client) is None
    assert client.get("/me").status_code == 401


def test_login_validation_errors(client):
    response = client.post("/login", json={"username": "  ", "password": "wombat"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "bad_request"


def test_remembered_user_is_recognised_on_a_later_request(client):
    response = _login(client)
    assert response.status_code == 200
    assert _remember_cookie(client)

    me = client.get("/me")

    assert me.status_code == 200
    assert me.get_json()["user"] == {"username": "marissa", "authorities": ["ROLE_USER"], "remembered": True}


def test_remember_me_cookie_is_http_only(client):
    response = _login(client)

    set_cookie = response.headers.get("Set-Cookie")
    assert set_cookie.startswith("remember-me=")
    assert "HttpOnly" in set_cookie
    assert "Secure" not in set_cookie


def test_failed_login_cancels_existing_cookie(client):
    _login(client)
    assert _remember_cookie(client)

    response = client.post("/login", json={"username": "marissa", "password": "wrong"})

    assert response.status_code == 401
    assert response.get_json()["error"] == "invalid_credentials"
    assert _remember_cookie(client) is None


def test_tampered_cookie_is_rejected_and_cleared(client):
    _login(client)
    value = _remember_cookie(client)
    client.set_cookie("remember-me", value[:-2] + ("AA" if value[-2:] != "AA" else "BB"))

    assert client.get("/me").status_code == 401
    assert _remember_cookie(client) is None


def test_logout_clears_remember_me_cookie(client):
    _login(client)

    response = client.post("/logout")

    assert response.get_json() == {"ok": True}
    assert _remember_cookie(client) is None
    assert client.get("/me").status_code == 401


def test_stateless_mechanism_is_the_default(app):
    remember_me = app.extensions["warden.remember_me"]

    assert type(remember_me.resolve_mechanism(None)) is TokenBasedRememberMeServices
    assert remember_me.get_key() == "testing-remember-me-key"


def test_persistent_store_is_selected_from_config(persistent_app):
    mechanism = persistent_app.extensions["warden.remember_me"].resolve_mechanism(None)

    assert isinstance(mechanism, PersistentTokenBasedRememberMeServices)
    expected = InMemoryTokenStore if persistent_app.config["REMEMBER_ME_TOKEN_STORE"] == "memory" else SqlAlchemyTokenStore
    assert isinstance(mechanism.token_store, expected)


def test_persistent_cookie_rotates_on_each_use(persistent_app):
    client = persistent_app.test_client()
    _login(client)
    first = _remember_cookie(client)

    assert client.get("/me").get_json()["user"]["remembered"] is True
    second = _remember_cookie(client)

    assert second and second != first


def test_replayed_persistent_cookie_logs_everyone_out_of_the_series(persistent_app):
    client = persistent_app.test_client()
    _login(client)
    stolen = _remember_cookie(client)
    client.get("/me")
    rotated = _remember_cookie(client)

    attacker = persistent_app.test_client()
    attacker.set_cookie("remember-me", stolen)
    assert attacker.get("/me").status_code == 401

    assert client.get("/me").status_code == 401
    assert rotated


def test_persistent_logout_removes_stored_series(persistent_app):
    client = persistent_app.test_client()
    _login(client)
    old = _remember_cookie(client)

    client.post("/logout")

    assert _remember_cookie(client) is None
    replay = persistent_app.test_client()
    replay.set_cookie("remember-me", old)
    assert replay.get("/me").status_code == 401


def test_secure_cookie_setting_is_applied(monkeypatch):
    monkeypatch.setattr(TestingConfig, "REMEMBER_ME_USE_SECURE_COOKIE", True)
    app = create_app("testing")

    response = _login(app.test_client())

    assert "Secure" in response.headers.get("Set-Cookie")


def test_unknown_token_store_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(TestingConfig, "REMEMBER_ME_TOKEN_STORE", "redis")

    with pytest.raises(ConfigurationError):
        create_app("testing")


def test_non_ascii_cookie_field_is_a_plain_rejection(client):
    value = base64.urlsafe_b64encode(b"marissa:99999999999999:%C3%A9").decode("ascii").rstrip("=")
    client.set_cookie("remember-me", value)

    assert client.get("/me").status_code == 401
    assert _remember_cookie(client) is None

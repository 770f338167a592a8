import base64
from datetime import datetime, timedelta

import pytest

from warden.core.auth.authentication import RememberMeAuthentication, UsernamePasswordAuthentication
from warden.core.pipeline import PendingCookies
from warden.core.rememberme import (
    InMemoryTokenStore,
    PersistentRememberMeToken,
    PersistentTokenBasedRememberMeServices,
    TokenStoreError,
)

pytestmark = pytest.mark.unit

NOW = 1_700_000_000.0
KEY = "persistent-key"


@pytest.fixture()
def store():
    return InMemoryTokenStore()


@pytest.fixture()
def services(users, store):
    services = PersistentTokenBasedRememberMeServices(KEY, users, store)
    services.clock = lambda: NOW
    return services


def _login(services, make_request, username="marissa"):
    cookies = PendingCookies()
    authentication = UsernamePasswordAuthentication(principal=username, authenticated=True)
    services.login_success(make_request(data={"remember-me": "true"}), cookies, authentication)
    return cookies.get("remember-me").value


def _auto_login(services, make_request, value):
    cookies = PendingCookies()
    authentication = services.auto_login(make_request(cookies={"remember-me": value}), cookies)
    return authentication, cookies.get("remember-me")


def _series(services, value):
    return services.decode_cookie(value)[0]


def test_login_creates_series_and_cookie(services, store, make_request):
    value = _login(services, make_request)

    series, token_value = services.decode_cookie(value)
    stored = store.get_token_for_series(series)
    assert stored.username == "marissa"
    assert stored.token_value == token_value
    assert stored.last_used == datetime(2023, 11, 14, 22, 13, 20)
    assert len(store) == 1


def test_each_login_gets_its_own_series(services, store, make_request):
    first = _series(services, _login(services, make_request))
    second = _series(services, _login(services, make_request))

    assert first != second
    assert len(store) == 2


def test_login_without_remember_request_creates_nothing(services, store, make_request):
    cookies = PendingCookies()
    services.login_success(make_request(data={}), cookies, UsernamePasswordAuthentication(principal="marissa"))

    assert len(store) == 0
    assert cookies.get("remember-me") is None


def test_use_rotates_token_within_series(services, store, make_request):
    value = _login(services, make_request)
    series, old_token = services.decode_cookie(value)

    services.clock = lambda: NOW + 30
    authentication, write = _auto_login(services, make_request, value)

    assert isinstance(authentication, RememberMeAuthentication)
    assert authentication.name == "marissa"
    new_series, new_token = services.decode_cookie(write.value)
    assert new_series == series
    assert new_token != old_token
    stored = store.get_token_for_series(series)
    assert stored.token_value == new_token
    assert stored.last_used == datetime(2023, 11, 14, 22, 13, 50)


def test_rotated_cookie_keeps_working(services, make_request):
    value = _login(services, make_request)
    for _ in range(3):
        authentication, write = _auto_login(services, make_request, value)
        assert authentication is not None
        value = write.value


def test_replayed_token_is_treated_as_theft(services, store, make_request):
    stolen = _login(services, make_request)
    series = _series(services, stolen)

    _, write = _auto_login(services, make_request, stolen)
    rotated = write.value

    authentication, cancelled = _auto_login(services, make_request, stolen)
    assert authentication is None
    assert cancelled.deleted
    assert store.get_token_for_series(series) is None

    # The legitimate holder of the rotated cookie is logged out as well.
    authentication, _ = _auto_login(services, make_request, rotated)
    assert authentication is None


def test_theft_only_removes_the_affected_series(services, store, make_request):
    stolen = _login(services, make_request)
    other = _login(services, make_request)
    _auto_login(services, make_request, stolen)

    _auto_login(services, make_request, stolen)

    assert store.get_token_for_series(_series(services, other)) is not None


def test_unknown_series_is_rejected(services, store, make_request):
    value = services.encode_cookie(["no-such-series", "token"])

    authentication, write = _auto_login(services, make_request, value)

    assert authentication is None
    assert write.deleted


@pytest.mark.parametrize("tokens", [["only-one"], ["a", "b", "c"]])
def test_wrong_token_count_is_rejected(services, make_request, tokens):
    authentication, write = _auto_login(services, make_request, services.encode_cookie(tokens))

    assert authentication is None
    assert write.deleted


def test_expired_series_is_rejected(services, store, make_request):
    services.token_validity_seconds = 60
    value = _login(services, make_request)

    services.clock = lambda: NOW + 61
    authentication, write = _auto_login(services, make_request, value)

    assert authentication is None
    assert write.deleted


def test_negative_validity_never_expires_and_sets_session_cookie(services, make_request):
    services.token_validity_seconds = -1
    value = _login(services, make_request)

    services.clock = lambda: NOW + timedelta(days=400).total_seconds()
    authentication, write = _auto_login(services, make_request, value)

    assert authentication is not None
    assert write.max_age is None


def test_disabled_user_is_rejected_after_rotation(services, make_request):
    value = _login(services, make_request, username="disabled")

    authentication, write = _auto_login(services, make_request, value)

    assert authentication is None
    assert write.deleted


def test_logout_removes_all_user_series(services, store, make_request):
    first = _login(services, make_request)
    _login(services, make_request)
    sams = _login(services, make_request, username="sam")

    cookies = PendingCookies()
    authentication, _ = _auto_login(services, make_request, first)
    services.logout(make_request(), cookies, authentication)

    assert cookies.get("remember-me").deleted
    assert len(store) == 1
    assert store.get_token_for_series(_series(services, sams)) is not None
    authentication, _ = _auto_login(services, make_request, first)
    assert authentication is None


def test_anonymous_logout_only_cancels_cookie(services, store, make_request):
    _login(services, make_request)
    cookies = PendingCookies()

    services.logout(make_request(), cookies, None)

    assert cookies.get("remember-me").deleted
    assert len(store) == 1


def test_lost_rotation_race_invalidates_series(users, make_request):
    class RacingStore(InMemoryTokenStore):
        """Lets another request rotate the token between the read and the update."""

        def update_token(self, series, token_value, last_used, expected_token=None):
            super().update_token(series, "rotated-elsewhere", last_used)
            return super().update_token(series, token_value, last_used, expected_token=expected_token)

    store = RacingStore()
    services = PersistentTokenBasedRememberMeServices(KEY, users, store)
    value = _login(services, make_request)

    authentication, write = _auto_login(services, make_request, value)

    assert authentication is None
    assert write.deleted
    assert len(store) == 0


def test_store_failure_on_login_is_logged_and_skipped(users, make_request, caplog):
    class FailingStore(InMemoryTokenStore):
        def create_new_token(self, token):
            raise TokenStoreError("database unavailable")

    services = PersistentTokenBasedRememberMeServices(KEY, users, FailingStore())
    cookies = PendingCookies()

    services.login_success(
        make_request(data={"remember-me": "true"}),
        cookies,
        UsernamePasswordAuthentication(principal="marissa", authenticated=True),
    )

    assert cookies.get("remember-me") is None
    assert "Failed to save persistent token for user marissa" in caplog.text


def test_generated_values_are_random_and_url_safe(services):
    values = {services.generate_series_data() for _ in range(20)} | {services.generate_token_data() for _ in range(20)}

    assert len(values) == 40
    assert all(set(v) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_") for v in values)


def test_stored_token_round_trips_through_store(store):
    token = PersistentRememberMeToken("marissa", "series", "value", datetime(2024, 1, 1))
    store.create_new_token(token)

    assert store.get_token_for_series("series") == token


def test_non_ascii_token_counts_as_theft_not_error(services, store, make_request):
    store.create_new_token(PersistentRememberMeToken("marissa", "S1", "token-value", datetime(2023, 11, 14, 22, 13, 20)))
    value = base64.urlsafe_b64encode(b"S1:%C3%A9").decode("ascii").rstrip("=")

    authentication, write = _auto_login(services, make_request, value)

    assert authentication is None
    assert write.deleted
    assert store.get_token_for_series("S1") is None

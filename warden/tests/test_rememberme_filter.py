import pytest
from flask import request

from warden.core.auth.authentication import Authentication, UsernamePasswordAuthentication
from warden.core.auth.context import get_authentication, set_authentication
from warden.core.auth.dispatcher import AuthenticationDispatcher, RememberMeAuthenticationProvider
from warden.core.pipeline import PendingCookies, pending_cookies
from warden.core.rememberme import NullRememberMeServices, RememberMeAuthenticationFilter, TokenBasedRememberMeServices

pytestmark = pytest.mark.unit

KEY = "filter-key"


class RecordingServices(NullRememberMeServices):
    def __init__(self):
        self.calls = []

    def auto_login(self, request, response):
        self.calls.append("auto_login")
        return None


@pytest.fixture()
def services(users):
    return TokenBasedRememberMeServices(KEY, users)


@pytest.fixture()
def remember_cookie(services, users, make_request):
    cookies = PendingCookies()
    services.login_success(
        make_request(data={"remember-me": "true"}),
        cookies,
        UsernamePasswordAuthentication(principal=users.load_user_by_username("marissa"), authenticated=True),
    )
    return cookies.get("remember-me").value


def _filter(services, key=KEY):
    return RememberMeAuthenticationFilter(AuthenticationDispatcher([RememberMeAuthenticationProvider(key)]), services)


def test_constructor_requires_collaborators(services):
    with pytest.raises(ValueError):
        RememberMeAuthenticationFilter(None, services)
    with pytest.raises(ValueError):
        RememberMeAuthenticationFilter(AuthenticationDispatcher([]), None)


def test_request_without_cookie_stays_anonymous(app, services):
    with app.test_request_context("/me"):
        assert _filter(services).before_request(request) is None
        assert get_authentication() is None
        assert pending_cookies().writes == []


def test_valid_cookie_authenticates_request(app, services, remember_cookie):
    with app.test_request_context("/me", headers={"Cookie": f"remember-me={remember_cookie}"}):
        assert _filter(services).before_request(request) is None

        authentication = get_authentication()
        assert authentication.name == "marissa"
        assert authentication.authenticated is True
        assert pending_cookies().get("remember-me").value


def test_already_authenticated_request_is_left_alone(app):
    recording = RecordingServices()
    existing = Authentication(principal="sam", authenticated=True)

    with app.test_request_context("/me", headers={"Cookie": "remember-me=anything"}):
        set_authentication(existing)
        assert _filter(recording).before_request(request) is None
        assert get_authentication() is existing

    assert recording.calls == []


def test_rejected_authentication_cancels_cookie(app, services, remember_cookie):
    # The dispatcher only trusts authentications minted with a different key.
    with app.test_request_context("/me", headers={"Cookie": f"remember-me={remember_cookie}"}):
        assert _filter(services, key="another-key").before_request(request) is None

        assert get_authentication() is None
        assert pending_cookies().get("remember-me").deleted


def test_success_handler_response_is_returned(app, services, remember_cookie):
    remember_filter = _filter(services)
    remember_filter.success_handler = lambda req, authentication: f"welcome back {authentication.name}"

    with app.test_request_context("/me", headers={"Cookie": f"remember-me={remember_cookie}"}):
        assert remember_filter.before_request(request) == "welcome back marissa"


def test_filter_runs_first_in_pipeline():
    assert RememberMeAuthenticationFilter.order == 100

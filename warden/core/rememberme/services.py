"""Remember-me mechanism contract and the cookie handling shared by both token variants."""

from __future__ import annotations

import base64
import binascii
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
from urllib.parse import quote, unquote

from warden.core.auth.authentication import Authentication, RememberMeAuthentication
from warden.core.auth.exceptions import (
    AuthenticationError,
    CookieTheftError,
    DisabledAccountError,
    InvalidCookieError,
)
from warden.core.auth.logout import LogoutHandler
from warden.core.auth.users import UserDetails, UserLookupService
from warden.core.pipeline.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER = "remember-me"
DEFAULT_COOKIE_NAME = "remember-me"
TWO_WEEKS_S = 1209600

_DELIMITER = ":"
_TRUE_VALUES = ("true", "on", "yes", "1")


class RememberMeServices(ABC):
    """Issues and honours remember-me cookies.

    ``response`` arguments only need ``set_cookie`` and ``delete_cookie``; a
    Werkzeug response or a PendingCookies collector both qualify.
    """

    key: Optional[str] = None

    @abstractmethod
    def auto_login(self, request, response) -> Optional[Authentication]:
        """Return an authentication from the request's cookie, or None."""

    @abstractmethod
    def login_fail(self, request, response) -> None:
        ...

    @abstractmethod
    def login_success(self, request, response, authentication: Authentication) -> None:
        ...

    def logout_handler(self) -> Optional[LogoutHandler]:
        """The cleanup step to run on logout, if this mechanism keeps any remember-me state."""
        return None


class AbstractRememberMeServices(RememberMeServices, LogoutHandler):
    def __init__(self, key: str, user_lookup_service: UserLookupService):
        if not key:
            raise ConfigurationError("key cannot be empty")
        if user_lookup_service is None:
            raise ConfigurationError("user_lookup_service cannot be None")
        self.key = key
        self.user_lookup_service = user_lookup_service
        self.parameter = DEFAULT_PARAMETER
        self.cookie_name = DEFAULT_COOKIE_NAME
        self.cookie_path = "/"
        self.token_validity_seconds = TWO_WEEKS_S
        self.use_secure_cookie: Optional[bool] = None
        self.always_remember = False
        self.clock: Callable[[], float] = time.time

    def logout_handler(self) -> Optional[LogoutHandler]:
        return self

    def auto_login(self, request, response) -> Optional[Authentication]:
        cookie_value = request.cookies.get(self.cookie_name)
        if cookie_value is None:
            return None
        if not cookie_value:
            logger.debug("Cancelling empty remember-me cookie")
            self.cancel_cookie(request, response)
            return None

        try:
            tokens = self.decode_cookie(cookie_value)
            user = self.process_auto_login_cookie(tokens, request, response)
            self.check_user(user)
            logger.debug("Remember-me cookie accepted for %s", user.username)
            return self.create_successful_authentication(request, user)
        except CookieTheftError as exc:
            logger.warning("Remember-me cookie theft suspected: %s", exc)
        except AuthenticationError as exc:
            logger.debug("Remember-me cookie rejected: %s", exc)

        self.cancel_cookie(request, response)
        return None

    def login_fail(self, request, response) -> None:
        logger.debug("Interactive login failed; cancelling remember-me cookie")
        self.cancel_cookie(request, response)
        self.on_login_fail(request, response)

    def login_success(self, request, response, authentication: Authentication) -> None:
        if not self.remember_me_requested(request, self.parameter):
            logger.debug("Remember-me login not requested")
            return
        self.on_login_success(request, response, authentication)

    def logout(self, request, response, authentication: Optional[Authentication]) -> None:
        logger.debug("Logout of %s; cancelling remember-me cookie", authentication.name if authentication else None)
        self.cancel_cookie(request, response)

    @abstractmethod
    def process_auto_login_cookie(self, cookie_tokens: List[str], request, response) -> UserDetails:
        """Validate decoded cookie fields and return the remembered user, or raise."""

    @abstractmethod
    def on_login_success(self, request, response, authentication: Authentication) -> None:
        ...

    def on_login_fail(self, request, response) -> None:
        pass

    def check_user(self, user: UserDetails) -> None:
        if not user.enabled:
            raise DisabledAccountError(f"User {user.username!r} is disabled")

    def create_successful_authentication(self, request, user: UserDetails) -> RememberMeAuthentication:
        return RememberMeAuthentication.for_user(self.key, user)

    def remember_me_requested(self, request, parameter: str) -> bool:
        if self.always_remember:
            return True
        value = request_parameter(request, parameter)
        return value is not None and str(value).strip().lower() in _TRUE_VALUES

    def now(self) -> float:
        return self.clock()

    # --- cookie encoding ---

    def encode_cookie(self, cookie_tokens: List[str]) -> str:
        joined = _DELIMITER.join(quote(token, safe="") for token in cookie_tokens)
        return base64.urlsafe_b64encode(joined.encode("utf-8")).decode("ascii").rstrip("=")

    def decode_cookie(self, cookie_value: str) -> List[str]:
        padded = cookie_value + "=" * (-len(cookie_value) % 4)
        try:
            raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
            decoded = raw.decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError):
            raise InvalidCookieError("Cookie token was not Base64 encoded") from None
        # Reject non-canonical encodings so every character of the cookie is significant.
        if base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=") != cookie_value:
            raise InvalidCookieError("Cookie token was not canonically encoded")
        return [unquote(token) for token in decoded.split(_DELIMITER)]

    def set_cookie(self, cookie_tokens: List[str], max_age: Optional[int], request, response) -> None:
        response.set_cookie(
            self.cookie_name,
            self.encode_cookie(cookie_tokens),
            max_age=max_age,
            path=self.cookie_path,
            secure=self._secure(request),
            httponly=True,
        )

    def cancel_cookie(self, request, response) -> None:
        response.delete_cookie(self.cookie_name, path=self.cookie_path, secure=self._secure(request), httponly=True)

    def cookie_max_age(self) -> Optional[int]:
        # Negative validity keeps the cookie for the browser session only.
        return self.token_validity_seconds if self.token_validity_seconds >= 0 else None

    def _secure(self, request) -> bool:
        if self.use_secure_cookie is None:
            return bool(request.is_secure)
        return self.use_secure_cookie


class NullRememberMeServices(RememberMeServices):
    """Stand-in used when remember-me is not configured."""

    def auto_login(self, request, response) -> Optional[Authentication]:
        return None

    def login_fail(self, request, response) -> None:
        pass

    def login_success(self, request, response, authentication: Authentication) -> None:
        pass


def request_parameter(request, name: str) -> Optional[str]:
    """Read a parameter from the query string/form, falling back to a JSON body."""
    value = request.values.get(name)
    if value is not None:
        return value
    payload = request.get_json(silent=True) if request.is_json else None
    if isinstance(payload, dict) and name in payload:
        return str(payload[name])
    return None


__all__ = [
    "DEFAULT_PARAMETER",
    "DEFAULT_COOKIE_NAME",
    "TWO_WEEKS_S",
    "RememberMeServices",
    "AbstractRememberMeServices",
    "NullRememberMeServices",
    "request_parameter",
]

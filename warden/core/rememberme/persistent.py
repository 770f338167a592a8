"""Remember-me tokens backed by a persistent store.

Each login creates a *series*; every successful use of the cookie rotates the
token within that series. Presenting a token the series no longer holds means
the cookie was copied, so the series is removed.
"""

from __future__ import annotations

import base64
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from warden.core.auth.authentication import Authentication
from warden.core.auth.exceptions import (
    CookieTheftError,
    InvalidCookieError,
    RememberMeAuthenticationError,
)
from warden.core.auth.users import UserDetails, UserLookupService
from warden.core.rememberme.services import AbstractRememberMeServices
from warden.core.rememberme.token_store import (
    PersistentRememberMeToken,
    PersistentTokenStore,
    TokenStoreError,
)

logger = logging.getLogger(__name__)

DEFAULT_SERIES_LENGTH = 16
DEFAULT_TOKEN_LENGTH = 16


class PersistentTokenBasedRememberMeServices(AbstractRememberMeServices):
    def __init__(self, key: str, user_lookup_service: UserLookupService, token_store: PersistentTokenStore):
        super().__init__(key, user_lookup_service)
        self.token_store = token_store
        self.series_length = DEFAULT_SERIES_LENGTH
        self.token_length = DEFAULT_TOKEN_LENGTH

    def process_auto_login_cookie(self, cookie_tokens: List[str], request, response) -> UserDetails:
        if len(cookie_tokens) != 2:
            raise InvalidCookieError(f"Cookie token did not contain 2 tokens, but contained {len(cookie_tokens)}")

        series, presented_token = cookie_tokens
        token = self.token_store.get_token_for_series(series)
        if token is None:
            raise RememberMeAuthenticationError(f"No persistent token found for series id {series!r}")

        if not hmac.compare_digest(presented_token.encode("utf-8"), token.token_value.encode("utf-8")):
            self.token_store.remove_series(series)
            raise CookieTheftError(f"Invalid remember-me token for series {series!r}; series invalidated")

        if self._is_expired(token):
            raise RememberMeAuthenticationError("Remember-me login has expired")

        logger.debug("Refreshing persistent login token for user %s, series %s", token.username, series)
        new_token = self.generate_token_data()
        rotated = self.token_store.update_token(
            series,
            new_token,
            self._utc_now(),
            expected_token=token.token_value,
        )
        if not rotated:
            # Another request rotated this token first.
            self.token_store.remove_series(series)
            raise CookieTheftError(f"Remember-me token for series {series!r} was used concurrently; series invalidated")

        self.set_cookie([series, new_token], self.cookie_max_age(), request, response)
        return self.user_lookup_service.load_user_by_username(token.username)

    def on_login_success(self, request, response, authentication: Authentication) -> None:
        username = authentication.name
        logger.debug("Creating new persistent login for user %s", username)
        token = PersistentRememberMeToken(
            username=username,
            series=self.generate_series_data(),
            token_value=self.generate_token_data(),
            last_used=self._utc_now(),
        )
        try:
            self.token_store.create_new_token(token)
        except TokenStoreError:
            logger.error("Failed to save persistent token for user %s", username, exc_info=True)
            return
        self.set_cookie([token.series, token.token_value], self.cookie_max_age(), request, response)

    def logout(self, request, response, authentication: Optional[Authentication]) -> None:
        super().logout(request, response, authentication)
        if authentication is not None:
            self.token_store.remove_user_tokens(authentication.name)

    def generate_series_data(self) -> str:
        return _random_token(self.series_length)

    def generate_token_data(self) -> str:
        return _random_token(self.token_length)

    def _is_expired(self, token: PersistentRememberMeToken) -> bool:
        if self.token_validity_seconds < 0:
            return False
        age = (self._utc_now() - token.last_used).total_seconds()
        return age > self.token_validity_seconds

    def _utc_now(self) -> datetime:
        # Naive UTC, matching what the SQL store round-trips.
        return datetime.fromtimestamp(self.now(), tz=timezone.utc).replace(tzinfo=None)


def _random_token(length: int) -> str:
    return base64.urlsafe_b64encode(secrets.token_bytes(length)).decode("ascii").rstrip("=")


__all__ = ["PersistentTokenBasedRememberMeServices", "DEFAULT_SERIES_LENGTH", "DEFAULT_TOKEN_LENGTH"]

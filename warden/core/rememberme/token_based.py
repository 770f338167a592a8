"""Stateless remember-me tokens signed with the application key.

Cookie format (before base64): ``username:expiry_ms:signature`` where
``signature = HMAC-SHA256(key, "username:expiry_ms:password_hash")``.
Changing the user's password therefore invalidates every outstanding cookie.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import List

from warden.core.auth.authentication import Authentication
from warden.core.auth.exceptions import InvalidCookieError
from warden.core.auth.users import UserDetails
from warden.core.rememberme.services import AbstractRememberMeServices

logger = logging.getLogger(__name__)

# Embedded expiry for session-only cookies (negative validity).
_TWENTY_YEARS_S = 20 * 365 * 24 * 60 * 60


class TokenBasedRememberMeServices(AbstractRememberMeServices):
    refresh_on_use = True

    def process_auto_login_cookie(self, cookie_tokens: List[str], request, response) -> UserDetails:
        if len(cookie_tokens) != 3:
            raise InvalidCookieError(f"Cookie token did not contain 3 tokens, but contained {len(cookie_tokens)}")

        username, expiry_raw, signature = cookie_tokens
        try:
            expiry_ms = int(expiry_raw)
        except ValueError:
            raise InvalidCookieError(f"Cookie token[1] did not contain a valid number ({expiry_raw!r})") from None

        if self._is_expired(expiry_ms):
            raise InvalidCookieError("Cookie token[1] has expired")

        user = self.user_lookup_service.load_user_by_username(username)
        expected = self.make_token_signature(expiry_ms, user.username, user.password_hash)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            raise InvalidCookieError("Cookie token[2] contained an invalid signature")

        if self.refresh_on_use:
            self._issue_cookie(user, request, response)
        return user

    def on_login_success(self, request, response, authentication: Authentication) -> None:
        user = self._resolve_user(authentication)
        if user is None:
            logger.debug("Unable to resolve the user for %r; not setting a remember-me cookie", authentication)
            return
        self._issue_cookie(user, request, response)
        logger.debug("Added remember-me cookie for user %s", user.username)

    def make_token_signature(self, expiry_ms: int, username: str, password_hash: str) -> str:
        message = f"{username}:{expiry_ms}:{password_hash}"
        return hmac.new(self.key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()

    def _issue_cookie(self, user: UserDetails, request, response) -> None:
        lifetime = self.token_validity_seconds if self.token_validity_seconds >= 0 else _TWENTY_YEARS_S
        expiry_ms = int((self.now() + lifetime) * 1000)
        signature = self.make_token_signature(expiry_ms, user.username, user.password_hash)
        self.set_cookie([user.username, str(expiry_ms), signature], self.cookie_max_age(), request, response)

    def _is_expired(self, expiry_ms: int) -> bool:
        return expiry_ms < self.now() * 1000

    def _resolve_user(self, authentication: Authentication):
        if isinstance(authentication.principal, UserDetails):
            return authentication.principal
        username = authentication.name
        if not username:
            return None
        return self.user_lookup_service.load_user_by_username(username)


__all__ = ["TokenBasedRememberMeServices"]

"""Authentication dispatcher and the providers it delegates to."""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Type

from warden.core.auth.authentication import (
    Authentication,
    RememberMeAuthentication,
    UsernamePasswordAuthentication,
    hash_key,
)
from warden.core.auth.exceptions import (
    AuthenticationError,
    BadCredentialsError,
    DisabledAccountError,
    ProviderNotFoundError,
    UsernameNotFoundError,
)
from warden.core.auth.password import verify_password
from warden.core.auth.users import UserLookupService

logger = logging.getLogger(__name__)


class AuthenticationProvider(ABC):
    @abstractmethod
    def supports(self, authentication_type: Type[Authentication]) -> bool:
        ...

    @abstractmethod
    def authenticate(self, authentication: Authentication) -> Optional[Authentication]:
        """Return an authenticated result, None to defer to the next provider, or raise."""


class DaoAuthenticationProvider(AuthenticationProvider):
    """Checks a username/password pair against a user lookup service."""

    def __init__(self, user_lookup_service: UserLookupService):
        self.user_lookup_service = user_lookup_service

    def supports(self, authentication_type: Type[Authentication]) -> bool:
        return issubclass(authentication_type, UsernamePasswordAuthentication)

    def authenticate(self, authentication: Authentication) -> Optional[Authentication]:
        try:
            user = self.user_lookup_service.load_user_by_username(authentication.name)
        except UsernameNotFoundError:
            # Same outcome as a wrong password so usernames cannot be probed.
            raise BadCredentialsError("Bad credentials") from None
        if not authentication.credentials or not verify_password(authentication.credentials, user.password_hash):
            raise BadCredentialsError("Bad credentials")
        if not user.enabled:
            raise DisabledAccountError("User is disabled")
        return UsernamePasswordAuthentication(
            principal=user,
            authorities=user.authorities,
            authenticated=True,
        )


class RememberMeAuthenticationProvider(AuthenticationProvider):
    """Accepts remember-me authentications minted with the same key."""

    def __init__(self, key: str):
        if not key:
            raise ValueError("key is required")
        self.key = key
        self._key_hash = hash_key(key)

    def supports(self, authentication_type: Type[Authentication]) -> bool:
        return issubclass(authentication_type, RememberMeAuthentication)

    def authenticate(self, authentication: Authentication) -> Optional[Authentication]:
        key_hash = getattr(authentication, "key_hash", "")
        if not hmac.compare_digest(self._key_hash, key_hash):
            raise BadCredentialsError("The presented remember-me authentication was not issued with the expected key")
        return authentication


class AuthenticationDispatcher:
    """Tries each provider supporting the authentication type until one answers."""

    def __init__(self, providers: Iterable[AuthenticationProvider]):
        self.providers: List[AuthenticationProvider] = list(providers)

    def authenticate(self, authentication: Authentication) -> Authentication:
        last_error: Optional[AuthenticationError] = None
        for provider in self.providers:
            if not provider.supports(type(authentication)):
                continue
            try:
                result = provider.authenticate(authentication)
            except AuthenticationError as exc:
                last_error = exc
                continue
            if result is not None:
                return result
        if last_error is not None:
            raise last_error
        logger.debug("No provider for %s", type(authentication).__name__)
        raise ProviderNotFoundError(f"No provider found for {type(authentication).__name__}")


__all__ = [
    "AuthenticationProvider",
    "DaoAuthenticationProvider",
    "RememberMeAuthenticationProvider",
    "AuthenticationDispatcher",
]

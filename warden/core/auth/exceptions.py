"""Per-request authentication failures."""

from __future__ import annotations


class AuthenticationError(Exception):
    """The request could not be authenticated."""


class BadCredentialsError(AuthenticationError):
    pass


class UsernameNotFoundError(AuthenticationError):
    pass


class DisabledAccountError(AuthenticationError):
    pass


class ProviderNotFoundError(AuthenticationError):
    """No registered provider supports the authentication type."""


class RememberMeAuthenticationError(AuthenticationError):
    """A remember-me cookie was presented but could not be honoured."""


class InvalidCookieError(RememberMeAuthenticationError):
    """The cookie is malformed, expired or carries a bad signature."""


class CookieTheftError(RememberMeAuthenticationError):
    """A persistent token was reused after rotation; the series has been invalidated."""


__all__ = [
    "AuthenticationError",
    "BadCredentialsError",
    "UsernameNotFoundError",
    "DisabledAccountError",
    "ProviderNotFoundError",
    "RememberMeAuthenticationError",
    "InvalidCookieError",
    "CookieTheftError",
]

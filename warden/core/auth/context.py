"""Request-scoped security context kept on flask.g."""

from __future__ import annotations

from typing import Optional

from flask import g

from warden.core.auth.authentication import Authentication

_AUTHENTICATION_KEY = "warden_authentication"


def get_authentication() -> Optional[Authentication]:
    return g.get(_AUTHENTICATION_KEY)


def set_authentication(authentication: Authentication) -> None:
    setattr(g, _AUTHENTICATION_KEY, authentication)


def clear_authentication() -> None:
    g.pop(_AUTHENTICATION_KEY, None)


__all__ = ["get_authentication", "set_authentication", "clear_authentication"]

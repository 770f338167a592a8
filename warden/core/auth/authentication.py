"""Authentication request/result value types."""

from __future__ import annotations

from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Optional, Tuple

from warden.core.auth.users import UserDetails


@dataclass(frozen=True)
class Authentication:
    principal: Any
    credentials: Optional[str] = None
    authorities: Tuple[str, ...] = ()
    authenticated: bool = False

    @property
    def name(self) -> str:
        if isinstance(self.principal, UserDetails):
            return self.principal.username
        return str(self.principal)


@dataclass(frozen=True)
class UsernamePasswordAuthentication(Authentication):
    pass


@dataclass(frozen=True)
class RememberMeAuthentication(Authentication):
    key_hash: str = ""

    @classmethod
    def for_user(cls, key: str, user: UserDetails) -> "RememberMeAuthentication":
        return cls(
            principal=user,
            authorities=user.authorities,
            authenticated=True,
            key_hash=hash_key(key),
        )


def hash_key(key: str) -> str:
    """Digest of a remember-me key, so authentications never carry the key itself."""
    return sha256(key.encode("utf-8")).hexdigest()


__all__ = [
    "Authentication",
    "UsernamePasswordAuthentication",
    "RememberMeAuthentication",
    "hash_key",
]

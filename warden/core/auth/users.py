"""User lookup contract and an in-memory implementation."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Protocol, Tuple

from warden.core.auth.exceptions import UsernameNotFoundError
from warden.core.auth.password import hash_password


@dataclass(frozen=True)
class UserDetails:
    username: str
    password_hash: str
    authorities: Tuple[str, ...] = ()
    enabled: bool = True


class UserLookupService(Protocol):
    def load_user_by_username(self, username: str) -> UserDetails:
        """Return the user or raise UsernameNotFoundError."""
        ...


class InMemoryUserLookupService:
    """Dict-backed user lookup for small deployments and tests."""

    def __init__(self, users: Iterable[UserDetails] = ()):
        self._lock = threading.Lock()
        self._users: Dict[str, UserDetails] = {}
        for user in users:
            self.create_user(user)

    def create_user(self, user: UserDetails) -> None:
        with self._lock:
            if user.username in self._users:
                raise ValueError("username_already_exists")
            self._users[user.username] = user

    def with_user(self, username: str, password: str, *roles: str) -> InMemoryUserLookupService:
        authorities = tuple(f"ROLE_{role}" for role in (roles or ("USER",)))
        self.create_user(UserDetails(username, hash_password(password), authorities))
        return self

    def delete_user(self, username: str) -> None:
        with self._lock:
            self._users.pop(username, None)

    def load_user_by_username(self, username: str) -> UserDetails:
        with self._lock:
            user = self._users.get(username)
        if user is None:
            raise UsernameNotFoundError(f"Unknown user {username!r}")
        return user


__all__ = ["UserDetails", "UserLookupService", "InMemoryUserLookupService"]

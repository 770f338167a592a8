"""Storage for persistent remember-me tokens.

Implementations must make ``update_token`` a compare-and-swap when
``expected_token`` is given, so that two requests presenting the same token
produce exactly one rotation.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from warden.core.rememberme.models import RememberMeToken
from warden.extensions import db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistentRememberMeToken:
    username: str
    series: str
    token_value: str
    last_used: datetime


class TokenStoreError(Exception):
    """The backing store could not complete an operation."""


class PersistentTokenStore(ABC):
    @abstractmethod
    def create_new_token(self, token: PersistentRememberMeToken) -> None:
        ...

    @abstractmethod
    def get_token_for_series(self, series: str) -> Optional[PersistentRememberMeToken]:
        ...

    @abstractmethod
    def update_token(
        self,
        series: str,
        token_value: str,
        last_used: datetime,
        expected_token: Optional[str] = None,
    ) -> bool:
        """Replace the token of a series; False when the series is gone or no longer holds expected_token."""

    @abstractmethod
    def remove_series(self, series: str) -> None:
        ...

    @abstractmethod
    def remove_user_tokens(self, username: str) -> None:
        ...


class InMemoryTokenStore(PersistentTokenStore):
    """Process-local store; suitable for a single worker and for tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._series: Dict[str, PersistentRememberMeToken] = {}

    def create_new_token(self, token: PersistentRememberMeToken) -> None:
        with self._lock:
            if token.series in self._series:
                raise TokenStoreError(f"Series id {token.series!r} already exists")
            self._series[token.series] = token

    def get_token_for_series(self, series: str) -> Optional[PersistentRememberMeToken]:
        with self._lock:
            return self._series.get(series)

    def update_token(
        self,
        series: str,
        token_value: str,
        last_used: datetime,
        expected_token: Optional[str] = None,
    ) -> bool:
        with self._lock:
            current = self._series.get(series)
            if current is None:
                return False
            if expected_token is not None and current.token_value != expected_token:
                return False
            self._series[series] = replace(current, token_value=token_value, last_used=last_used)
            return True

    def remove_series(self, series: str) -> None:
        with self._lock:
            self._series.pop(series, None)

    def remove_user_tokens(self, username: str) -> None:
        with self._lock:
            for series in [s for s, token in self._series.items() if token.username == username]:
                del self._series[series]

    def __len__(self) -> int:
        with self._lock:
            return len(self._series)


class SqlAlchemyTokenStore(PersistentTokenStore):
    """Token store on the ``persistent_logins`` table; every write commits."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def create_new_token(self, token: PersistentRememberMeToken) -> None:
        self._write(
            lambda: self.session.add(
                RememberMeToken(
                    series=token.series,
                    username=token.username,
                    token_value=token.token_value,
                    last_used=token.last_used,
                )
            ),
            "create token",
        )

    def get_token_for_series(self, series: str) -> Optional[PersistentRememberMeToken]:
        try:
            row = self.session.get(RememberMeToken, series, populate_existing=True)
        except SQLAlchemyError as exc:
            logger.exception("Database error while loading remember-me series")
            raise TokenStoreError("Failed to load token") from exc
        if row is None:
            return None
        return PersistentRememberMeToken(
            username=row.username,
            series=row.series,
            token_value=row.token_value,
            last_used=row.last_used,
        )

    def update_token(
        self,
        series: str,
        token_value: str,
        last_used: datetime,
        expected_token: Optional[str] = None,
    ) -> bool:
        query = self.session.query(RememberMeToken).filter(RememberMeToken.series == series)
        if expected_token is not None:
            query = query.filter(RememberMeToken.token_value == expected_token)
        updated = self._write(
            lambda: query.update(
                {RememberMeToken.token_value: token_value, RememberMeToken.last_used: last_used}
            ),
            "update token",
        )
        return bool(updated)

    def remove_series(self, series: str) -> None:
        self._write(
            lambda: self.session.query(RememberMeToken)
            .filter(RememberMeToken.series == series)
            .delete(),
            "remove series",
        )

    def remove_user_tokens(self, username: str) -> None:
        self._write(
            lambda: self.session.query(RememberMeToken)
            .filter(RememberMeToken.username == username)
            .delete(),
            "remove user tokens",
        )

    def _write(self, operation, description: str):
        try:
            result = operation()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Database error while trying to %s", description)
            raise TokenStoreError(f"Failed to {description}") from exc
        return result


__all__ = [
    "PersistentRememberMeToken",
    "TokenStoreError",
    "PersistentTokenStore",
    "InMemoryTokenStore",
    "SqlAlchemyTokenStore",
]

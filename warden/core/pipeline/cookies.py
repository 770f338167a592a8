"""Request-scoped cookie writes collected by filters before a response exists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from flask import g

_PENDING_COOKIES_KEY = "warden_pending_cookies"


@dataclass
class CookieWrite:
    key: str
    value: str = ""
    max_age: Optional[int] = None
    path: str = "/"
    secure: bool = False
    httponly: bool = False
    deleted: bool = False


class PendingCookies:
    """Records set_cookie/delete_cookie calls and replays them onto a response."""

    def __init__(self) -> None:
        self.writes: List[CookieWrite] = []

    def set_cookie(
        self,
        key: str,
        value: str = "",
        max_age: Optional[int] = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = False,
    ) -> None:
        self.writes.append(CookieWrite(key, value, max_age, path, secure, httponly))

    def delete_cookie(self, key: str, path: str = "/", secure: bool = False, httponly: bool = False) -> None:
        self.writes.append(CookieWrite(key, "", 0, path, secure, httponly, deleted=True))

    def get(self, key: str) -> Optional[CookieWrite]:
        """Return the last write for a cookie name."""
        for write in reversed(self.writes):
            if write.key == key:
                return write
        return None

    def apply(self, response) -> None:
        for write in self.writes:
            if write.deleted:
                response.delete_cookie(write.key, path=write.path, secure=write.secure, httponly=write.httponly)
            else:
                response.set_cookie(
                    write.key,
                    write.value,
                    max_age=write.max_age,
                    path=write.path,
                    secure=write.secure,
                    httponly=write.httponly,
                )
        self.writes.clear()


def pending_cookies() -> PendingCookies:
    """Return the PendingCookies of the current request, creating it on first use."""
    cookies = g.get(_PENDING_COOKIES_KEY)
    if cookies is None:
        cookies = PendingCookies()
        setattr(g, _PENDING_COOKIES_KEY, cookies)
    return cookies


def reset_pending_cookies() -> None:
    g.pop(_PENDING_COOKIES_KEY, None)


__all__ = ["CookieWrite", "PendingCookies", "pending_cookies", "reset_pending_cookies"]

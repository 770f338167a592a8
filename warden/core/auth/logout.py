"""Logout coordination: handlers run when the logout URL is posted."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional, Sequence

from flask import jsonify, redirect

from warden.core.auth.authentication import Authentication
from warden.core.auth.context import clear_authentication, get_authentication
from warden.core.pipeline.configurator import SecurityConfigurator
from warden.core.pipeline.cookies import pending_cookies
from warden.core.pipeline.filters import LOGOUT_FILTER_ORDER, SecurityFilter
from warden.core.pipeline.registry import LOGOUT_COORDINATOR

if TYPE_CHECKING:
    from warden.core.pipeline.builder import SecurityPipelineBuilder

logger = logging.getLogger(__name__)


class LogoutHandler(ABC):
    @abstractmethod
    def logout(self, request, response, authentication: Optional[Authentication]) -> None:
        ...


class SecurityContextLogoutHandler(LogoutHandler):
    def logout(self, request, response, authentication: Optional[Authentication]) -> None:
        clear_authentication()


class LogoutFilter(SecurityFilter):
    order = LOGOUT_FILTER_ORDER

    def __init__(self, logout_url: str, handlers: Sequence[LogoutHandler], success_url: Optional[str] = None):
        self.logout_url = logout_url
        self.handlers = tuple(handlers)
        self.success_url = success_url

    def before_request(self, request):
        if request.method != "POST" or request.path != self.logout_url:
            return None

        authentication = get_authentication()
        cookies = pending_cookies()
        for handler in self.handlers:
            handler.logout(request, cookies, authentication)
        logger.info("Logged out %s", authentication.name if authentication else "anonymous request")

        if self.success_url:
            return redirect(self.success_url)
        return jsonify({"ok": True})


class LogoutConfigurator(SecurityConfigurator):
    """Publishes itself as the logout coordinator so other configurators can add cleanup steps."""

    def __init__(self, logout_url: str = "/logout"):
        self.logout_url = logout_url
        self.success_url: Optional[str] = None
        self._handlers: List[LogoutHandler] = []

    def set_logout_url(self, logout_url: str) -> LogoutConfigurator:
        self.logout_url = logout_url
        return self

    def set_success_url(self, success_url: str) -> LogoutConfigurator:
        self.success_url = success_url
        return self

    def add_logout_handler(self, handler: LogoutHandler) -> LogoutConfigurator:
        self._handlers.append(handler)
        return self

    @property
    def handlers(self) -> List[LogoutHandler]:
        return list(self._handlers)

    def on_apply(self, builder: SecurityPipelineBuilder) -> None:
        builder.set_shared_object(LOGOUT_COORDINATOR, self)

    def configure(self, builder: SecurityPipelineBuilder) -> None:
        handlers = [*self._handlers, SecurityContextLogoutHandler()]
        builder.add_filter(LogoutFilter(self.logout_url, handlers, self.success_url))


__all__ = [
    "LogoutHandler",
    "SecurityContextLogoutHandler",
    "LogoutFilter",
    "LogoutConfigurator",
]

"""Request filter contract and the ordered pipeline installed on a Flask app."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from flask import Flask, request

from warden.core.auth.context import clear_authentication
from warden.core.pipeline.cookies import pending_cookies, reset_pending_cookies

logger = logging.getLogger(__name__)

# Filter positions; lower runs first.
REMEMBER_ME_FILTER_ORDER = 100
USERNAME_PASSWORD_FILTER_ORDER = 200
LOGOUT_FILTER_ORDER = 300


class SecurityFilter:
    """One step of the pipeline. Returning a response from before_request ends the request early."""

    order: int = 1000

    def before_request(self, request):
        return None


class SecurityPipeline:
    def __init__(self, filters: Iterable[SecurityFilter]):
        self.filters: Tuple[SecurityFilter, ...] = tuple(sorted(filters, key=lambda f: f.order))

    def dispatch(self, request):
        """Run filters in order; return the first response a filter produces."""
        for security_filter in self.filters:
            response = security_filter.before_request(request)
            if response is not None:
                logger.debug("Request to %s answered by %s", request.path, type(security_filter).__name__)
                return response
        return None

    def init_app(self, app: Flask) -> None:
        app.before_request(self._before_request)
        app.after_request(self._after_request)
        app.extensions["warden.pipeline"] = self

    def _before_request(self) -> Optional[object]:
        # g outlives the request when an outer app context is already pushed.
        reset_pending_cookies()
        clear_authentication()
        return self.dispatch(request)

    def _after_request(self, response):
        pending_cookies().apply(response)
        return response


__all__ = [
    "SecurityFilter",
    "SecurityPipeline",
    "REMEMBER_ME_FILTER_ORDER",
    "USERNAME_PASSWORD_FILTER_ORDER",
    "LOGOUT_FILTER_ORDER",
]

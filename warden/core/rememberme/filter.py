"""Request filter that authenticates requests carrying a remember-me cookie."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from warden.core.auth.authentication import Authentication
from warden.core.auth.context import get_authentication, set_authentication
from warden.core.auth.dispatcher import AuthenticationDispatcher
from warden.core.auth.exceptions import AuthenticationError
from warden.core.pipeline.cookies import pending_cookies
from warden.core.pipeline.filters import REMEMBER_ME_FILTER_ORDER, SecurityFilter
from warden.core.rememberme.services import RememberMeServices

logger = logging.getLogger(__name__)

SuccessHandler = Callable[[object, Authentication], object]


class RememberMeAuthenticationFilter(SecurityFilter):
    order = REMEMBER_ME_FILTER_ORDER

    def __init__(self, dispatcher: AuthenticationDispatcher, remember_me_services: RememberMeServices):
        if dispatcher is None:
            raise ValueError("dispatcher is required")
        if remember_me_services is None:
            raise ValueError("remember_me_services is required")
        self.dispatcher = dispatcher
        self.remember_me_services = remember_me_services
        self.success_handler: Optional[SuccessHandler] = None

    def before_request(self, request):
        if get_authentication() is not None:
            return None

        cookies = pending_cookies()
        remembered = self.remember_me_services.auto_login(request, cookies)
        if remembered is None:
            return None

        try:
            authentication = self.dispatcher.authenticate(remembered)
        except AuthenticationError as exc:
            logger.debug("Remember-me authentication for %s was rejected: %s", remembered.name, exc)
            self.remember_me_services.login_fail(request, cookies)
            return None

        set_authentication(authentication)
        logger.debug("Request to %s authenticated by remember-me as %s", request.path, authentication.name)
        if self.success_handler is not None:
            return self.success_handler(request, authentication)
        return None


__all__ = ["RememberMeAuthenticationFilter", "SuccessHandler"]

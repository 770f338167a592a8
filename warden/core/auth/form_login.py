"""Username/password login that hands successful logins to the remember-me mechanism."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import jsonify
from pydantic import ValidationError

from warden.core.auth.authentication import UsernamePasswordAuthentication
from warden.core.auth.context import set_authentication
from warden.core.auth.dispatcher import AuthenticationDispatcher
from warden.core.auth.exceptions import AuthenticationError
from warden.core.auth.schemas import LoginRequest, jsonable_errors, serialize_authentication
from warden.core.pipeline.configurator import SecurityConfigurator
from warden.core.pipeline.cookies import pending_cookies
from warden.core.pipeline.exceptions import ConfigurationError
from warden.core.pipeline.filters import USERNAME_PASSWORD_FILTER_ORDER, SecurityFilter
from warden.core.pipeline.registry import REMEMBER_ME_SERVICES
from warden.core.rememberme.services import NullRememberMeServices, RememberMeServices, request_parameter

if TYPE_CHECKING:
    from warden.core.pipeline.builder import SecurityPipelineBuilder

logger = logging.getLogger(__name__)


class UsernamePasswordAuthenticationFilter(SecurityFilter):
    order = USERNAME_PASSWORD_FILTER_ORDER

    def __init__(
        self,
        dispatcher: AuthenticationDispatcher,
        remember_me_services: RememberMeServices,
        login_url: str = "/login",
        username_parameter: str = "username",
        password_parameter: str = "password",
    ):
        self.dispatcher = dispatcher
        self.remember_me_services = remember_me_services
        self.login_url = login_url
        self.username_parameter = username_parameter
        self.password_parameter = password_parameter

    def before_request(self, request):
        if request.method != "POST" or request.path != self.login_url:
            return None

        try:
            data = LoginRequest.model_validate(
                {
                    "username": request_parameter(request, self.username_parameter) or "",
                    "password": request_parameter(request, self.password_parameter) or "",
                }
            )
        except ValidationError as exc:
            return (
                jsonify({"ok": False, "error": "bad_request", "details": jsonable_errors(exc)}),
                400,
            )

        cookies = pending_cookies()
        try:
            authentication = self.dispatcher.authenticate(
                UsernamePasswordAuthentication(principal=data.username, credentials=data.password)
            )
        except AuthenticationError as exc:
            logger.info("Login failed for %s: %s", data.username, exc)
            self.remember_me_services.login_fail(request, cookies)
            return jsonify({"ok": False, "error": "invalid_credentials"}), 401

        set_authentication(authentication)
        self.remember_me_services.login_success(request, cookies, authentication)
        logger.info("Login succeeded for %s", authentication.name)
        return jsonify({"ok": True, "user": serialize_authentication(authentication).model_dump()})


class FormLoginConfigurator(SecurityConfigurator):
    def __init__(self) -> None:
        self.login_url = "/login"
        self.username_parameter = "username"
        self.password_parameter = "password"

    def set_login_url(self, login_url: str) -> FormLoginConfigurator:
        self.login_url = login_url
        return self

    def set_username_parameter(self, name: str) -> FormLoginConfigurator:
        self.username_parameter = name
        return self

    def set_password_parameter(self, name: str) -> FormLoginConfigurator:
        self.password_parameter = name
        return self

    def configure(self, builder: SecurityPipelineBuilder) -> None:
        dispatcher = builder.authentication_dispatcher()
        if dispatcher is None:
            raise ConfigurationError("Form login requires an authentication dispatcher; share a user lookup service first")
        remember_me_services = builder.get_shared_object(REMEMBER_ME_SERVICES) or NullRememberMeServices()
        builder.add_filter(
            UsernamePasswordAuthenticationFilter(
                dispatcher,
                remember_me_services,
                login_url=self.login_url,
                username_parameter=self.username_parameter,
                password_parameter=self.password_parameter,
            )
        )


__all__ = ["UsernamePasswordAuthenticationFilter", "FormLoginConfigurator"]

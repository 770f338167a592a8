"""Remember-me configurator.

Adds remember-me authentication to a security pipeline: the user ticks a
"remember me" box at login and is recognised from a cookie on later visits.

Filters added:
    * ``RememberMeAuthenticationFilter``

Shared objects published:
    * ``REMEMBER_ME_SERVICES``: the resolved mechanism
    * a ``RememberMeAuthenticationProvider`` bound to the key
    * a logout handler on the ``LOGOUT_COORDINATOR``, when one is applied

Shared objects used:
    * the builder's authentication dispatcher
    * ``USER_LOOKUP_SERVICE`` when no user lookup service was set here
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Optional

from warden.core.auth.dispatcher import RememberMeAuthenticationProvider
from warden.core.auth.logout import LogoutHandler
from warden.core.auth.users import UserLookupService
from warden.core.pipeline.configurator import SecurityConfigurator
from warden.core.pipeline.exceptions import ConfigurationError
from warden.core.pipeline.registry import LOGOUT_COORDINATOR, REMEMBER_ME_SERVICES, USER_LOOKUP_SERVICE
from warden.core.rememberme.filter import RememberMeAuthenticationFilter, SuccessHandler
from warden.core.rememberme.persistent import PersistentTokenBasedRememberMeServices
from warden.core.rememberme.services import (
    DEFAULT_COOKIE_NAME,
    DEFAULT_PARAMETER,
    AbstractRememberMeServices,
    RememberMeServices,
)
from warden.core.rememberme.token_based import TokenBasedRememberMeServices
from warden.core.rememberme.token_store import PersistentTokenStore

if TYPE_CHECKING:
    from warden.core.pipeline.builder import SecurityPipelineBuilder

logger = logging.getLogger(__name__)


class RememberMeConfigurator(SecurityConfigurator):
    def __init__(self) -> None:
        self._key: Optional[str] = None
        self._token_validity_seconds: Optional[int] = None
        self._use_secure_cookie: Optional[bool] = None
        self._remember_parameter = DEFAULT_PARAMETER
        self._cookie_name = DEFAULT_COOKIE_NAME
        self._explicit_mechanism: Optional[RememberMeServices] = None
        self._explicit_logout_handler: Optional[LogoutHandler] = None
        self._token_store: Optional[PersistentTokenStore] = None
        self._user_lookup_service: Optional[UserLookupService] = None
        self._success_handler: Optional[SuccessHandler] = None

        self._logout_handler: Optional[LogoutHandler] = None
        self._mechanism: Optional[RememberMeServices] = None
        self._filter: Optional[RememberMeAuthenticationFilter] = None

    # --- settings ---

    def set_token_validity_seconds(self, token_validity_seconds: int) -> RememberMeConfigurator:
        """How long a token stays valid. Negative values make the cookie last for the browser session."""
        self._ensure_mutable()
        self._token_validity_seconds = token_validity_seconds
        return self

    def set_use_secure_cookie(self, use_secure_cookie: bool) -> RememberMeConfigurator:
        """Force the Secure flag on or off. By default it follows whether the request itself was secure."""
        self._ensure_mutable()
        self._use_secure_cookie = use_secure_cookie
        return self

    def set_user_lookup_service(self, user_lookup_service: UserLookupService) -> RememberMeConfigurator:
        """Service used to load the remembered user. Defaults to the shared USER_LOOKUP_SERVICE."""
        self._ensure_mutable()
        self._user_lookup_service = user_lookup_service
        return self

    def set_token_store(self, token_store: PersistentTokenStore) -> RememberMeConfigurator:
        """Use persistent series/token cookies backed by this store instead of signed stateless cookies."""
        self._ensure_mutable()
        self._token_store = token_store
        return self

    def set_key(self, key: str) -> RememberMeConfigurator:
        """Key identifying tokens created for remember-me authentication. Defaults to a random value."""
        self._ensure_mutable()
        self._key = key
        return self

    def set_success_handler(self, success_handler: SuccessHandler) -> RememberMeConfigurator:
        """Called with (request, authentication) after a remembered login; its return value becomes the response."""
        self._ensure_mutable()
        self._success_handler = success_handler
        return self

    def set_explicit_mechanism(self, mechanism: RememberMeServices) -> RememberMeConfigurator:
        """Use this mechanism as-is; token store, lookup service and cookie settings are then ignored."""
        self._ensure_mutable()
        self._explicit_mechanism = mechanism
        self._explicit_logout_handler = mechanism.logout_handler() if mechanism is not None else None
        return self

    def set_remember_parameter(self, parameter: str) -> RememberMeConfigurator:
        self._ensure_mutable()
        self._remember_parameter = parameter
        return self

    def set_cookie_name(self, cookie_name: str) -> RememberMeConfigurator:
        self._ensure_mutable()
        self._cookie_name = cookie_name
        return self

    @property
    def remember_parameter(self) -> str:
        return self._remember_parameter

    @property
    def logout_handler(self) -> Optional[LogoutHandler]:
        return self._logout_handler

    @property
    def filter(self) -> Optional[RememberMeAuthenticationFilter]:
        return self._filter

    # --- two-phase build ---

    def init(self, builder: SecurityPipelineBuilder) -> None:
        mechanism = self.resolve_mechanism(builder)
        builder.set_shared_object(REMEMBER_ME_SERVICES, mechanism)

        logout_coordinator = builder.get_shared_object(LOGOUT_COORDINATOR)
        if logout_coordinator is not None and self._logout_handler is not None:
            logout_coordinator.add_logout_handler(self._logout_handler)

        builder.authentication_provider(RememberMeAuthenticationProvider(self.get_key()))

    def configure(self, builder: SecurityPipelineBuilder) -> None:
        dispatcher = builder.authentication_dispatcher()
        if dispatcher is None:
            raise ConfigurationError(
                "RememberMeConfigurator requires an authentication dispatcher; "
                "configure() must run after the pipeline's init phase has registered providers"
            )
        if self._mechanism is None:
            raise ConfigurationError("RememberMeConfigurator.init() must run before configure()")

        remember_me_filter = RememberMeAuthenticationFilter(dispatcher, self._mechanism)
        if self._success_handler is not None:
            remember_me_filter.success_handler = self._success_handler
        self._filter = remember_me_filter
        builder.add_filter(remember_me_filter)

    def resolve_mechanism(self, builder: SecurityPipelineBuilder) -> RememberMeServices:
        """Resolve the mechanism once; later calls return the same instance."""
        if self._mechanism is not None:
            return self._mechanism

        if self._explicit_mechanism is not None:
            if self._explicit_logout_handler is not None and self._logout_handler is None:
                self._logout_handler = self._explicit_logout_handler
            if self._key is None and self._explicit_mechanism.key:
                self._key = self._explicit_mechanism.key
            self._mechanism = self._explicit_mechanism
            logger.debug("Using explicit remember-me mechanism %s", type(self._mechanism).__name__)
            return self._mechanism

        key = self.get_key()
        user_lookup_service = self._resolve_user_lookup_service(builder)
        mechanism = self._create_mechanism(key, user_lookup_service)
        mechanism.parameter = self._remember_parameter
        mechanism.cookie_name = self._cookie_name
        if self._token_validity_seconds is not None:
            mechanism.token_validity_seconds = self._token_validity_seconds
        if self._use_secure_cookie is not None:
            mechanism.use_secure_cookie = self._use_secure_cookie

        self._logout_handler = mechanism
        self._mechanism = mechanism
        logger.info("Remember-me enabled using %s", type(mechanism).__name__)
        return mechanism

    def get_key(self) -> str:
        """The configured key, or a random one generated on first use and kept for this configurator."""
        if self._key is None:
            self._key = secrets.token_hex(32)
        return self._key

    def _create_mechanism(self, key: str, user_lookup_service: UserLookupService) -> AbstractRememberMeServices:
        if self._token_store is not None:
            return PersistentTokenBasedRememberMeServices(key, user_lookup_service, self._token_store)
        return TokenBasedRememberMeServices(key, user_lookup_service)

    def _resolve_user_lookup_service(self, builder: SecurityPipelineBuilder) -> UserLookupService:
        if self._user_lookup_service is None:
            self._user_lookup_service = builder.get_shared_object(USER_LOOKUP_SERVICE)
        if self._user_lookup_service is None:
            raise ConfigurationError(
                "A user lookup service is required for remember-me. Call "
                "RememberMeConfigurator.set_user_lookup_service() or set_explicit_mechanism(), "
                "or share one with SecurityPipelineBuilder.user_lookup_service()."
            )
        return self._user_lookup_service

    def _ensure_mutable(self) -> None:
        if self._mechanism is not None:
            raise ConfigurationError("Remember-me settings cannot change once the mechanism has been resolved")


__all__ = ["RememberMeConfigurator"]

"""Pipeline builder driving configurators through init and configure."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Type, TypeVar

from warden.core.pipeline.configurator import SecurityConfigurator
from warden.core.pipeline.exceptions import ConfigurationError
from warden.core.pipeline.filters import SecurityFilter, SecurityPipeline
from warden.core.pipeline.registry import USER_LOOKUP_SERVICE, CapabilityKey, SharedRegistry

if TYPE_CHECKING:
    from warden.core.auth.dispatcher import AuthenticationDispatcher, AuthenticationProvider
    from warden.core.auth.form_login import FormLoginConfigurator
    from warden.core.auth.logout import LogoutConfigurator
    from warden.core.auth.users import UserLookupService
    from warden.core.rememberme.configurator import RememberMeConfigurator

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=SecurityConfigurator)
T = TypeVar("T")


class BuildPhase(str, Enum):
    SETUP = "setup"
    INIT = "init"
    CONFIGURE = "configure"
    BUILT = "built"


class SecurityPipelineBuilder:
    """Collects configurators, providers and filters for one pipeline build."""

    def __init__(self, registry: Optional[SharedRegistry] = None):
        self.registry = registry or SharedRegistry()
        self.phase = BuildPhase.SETUP
        self._configurators: List[SecurityConfigurator] = []
        self._providers: List[AuthenticationProvider] = []
        self._filters: List[SecurityFilter] = []
        self._dispatcher: Optional[AuthenticationDispatcher] = None

    # --- configurators ---

    def apply(self, configurator: C) -> C:
        self._expect_phase("apply a configurator", BuildPhase.SETUP)
        if self.get_configurator(type(configurator)) is not None:
            raise ConfigurationError(f"{type(configurator).__name__} is already applied")
        self._configurators.append(configurator)
        configurator.on_apply(self)
        return configurator

    def get_configurator(self, configurator_type: Type[C]) -> Optional[C]:
        for configurator in self._configurators:
            if type(configurator) is configurator_type:
                return configurator  # type: ignore[return-value]
        return None

    def remember_me(self) -> RememberMeConfigurator:
        from warden.core.rememberme.configurator import RememberMeConfigurator  # local import to avoid cycle

        return self.get_configurator(RememberMeConfigurator) or self.apply(RememberMeConfigurator())

    def logout(self) -> LogoutConfigurator:
        from warden.core.auth.logout import LogoutConfigurator

        return self.get_configurator(LogoutConfigurator) or self.apply(LogoutConfigurator())

    def form_login(self) -> FormLoginConfigurator:
        from warden.core.auth.form_login import FormLoginConfigurator

        return self.get_configurator(FormLoginConfigurator) or self.apply(FormLoginConfigurator())

    def user_lookup_service(self, service: UserLookupService) -> SecurityPipelineBuilder:
        """Share a user lookup service and authenticate usernames/passwords against it."""
        from warden.core.auth.dispatcher import DaoAuthenticationProvider

        self.set_shared_object(USER_LOOKUP_SERVICE, service)
        self.authentication_provider(DaoAuthenticationProvider(service))
        return self

    # --- shared objects ---

    def set_shared_object(self, key: CapabilityKey[T], value: T) -> None:
        self.registry.set(key, value)

    def get_shared_object(self, key: CapabilityKey[T]) -> Optional[T]:
        return self.registry.get(key)

    # --- authentication ---

    def authentication_provider(self, provider: AuthenticationProvider) -> SecurityPipelineBuilder:
        self._expect_phase("register an authentication provider", BuildPhase.SETUP, BuildPhase.INIT)
        self._providers.append(provider)
        return self

    def authentication_dispatcher(self) -> Optional[AuthenticationDispatcher]:
        """The dispatcher over every registered provider; None until the init phase has completed."""
        return self._dispatcher

    # --- filters ---

    def add_filter(self, security_filter: SecurityFilter) -> SecurityPipelineBuilder:
        self._expect_phase("add a filter", BuildPhase.CONFIGURE)
        self._filters.append(security_filter)
        return self

    def build(self) -> SecurityPipeline:
        from warden.core.auth.dispatcher import AuthenticationDispatcher

        self._expect_phase("build", BuildPhase.SETUP)

        self.phase = BuildPhase.INIT
        for configurator in self._configurators:
            configurator.init(self)

        if self._providers:
            self._dispatcher = AuthenticationDispatcher(self._providers)

        self.phase = BuildPhase.CONFIGURE
        for configurator in self._configurators:
            configurator.configure(self)

        self.phase = BuildPhase.BUILT
        pipeline = SecurityPipeline(self._filters)
        logger.info(
            "Security pipeline built: %s",
            ", ".join(type(f).__name__ for f in pipeline.filters) or "no filters",
        )
        return pipeline

    def _expect_phase(self, action: str, *phases: BuildPhase) -> None:
        if self.phase not in phases:
            raise ConfigurationError(f"Cannot {action} during the {self.phase.value} phase")


__all__ = ["BuildPhase", "SecurityPipelineBuilder"]

"""Security pipeline assembly: shared registry, two-phase builder and request filters."""

from warden.core.pipeline.builder import BuildPhase, SecurityPipelineBuilder
from warden.core.pipeline.configurator import SecurityConfigurator
from warden.core.pipeline.cookies import PendingCookies, pending_cookies
from warden.core.pipeline.exceptions import ConfigurationError, DuplicateSharedObjectError
from warden.core.pipeline.filters import SecurityFilter, SecurityPipeline
from warden.core.pipeline.registry import (
    LOGOUT_COORDINATOR,
    REMEMBER_ME_SERVICES,
    USER_LOOKUP_SERVICE,
    CapabilityKey,
    SharedRegistry,
)

__all__ = [
    "BuildPhase",
    "SecurityPipelineBuilder",
    "SecurityConfigurator",
    "PendingCookies",
    "pending_cookies",
    "ConfigurationError",
    "DuplicateSharedObjectError",
    "SecurityFilter",
    "SecurityPipeline",
    "CapabilityKey",
    "SharedRegistry",
    "USER_LOOKUP_SERVICE",
    "REMEMBER_ME_SERVICES",
    "LOGOUT_COORDINATOR",
]

"""Shared registry used by configurators of one pipeline build to publish and discover collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Generic, Optional, TypeVar

from warden.core.pipeline.exceptions import ConfigurationError, DuplicateSharedObjectError

if TYPE_CHECKING:
    from warden.core.auth.logout import LogoutConfigurator
    from warden.core.auth.users import UserLookupService
    from warden.core.rememberme.services import RememberMeServices

T = TypeVar("T")


@dataclass(frozen=True)
class CapabilityKey(Generic[T]):
    """Typed key naming one capability in a SharedRegistry."""

    name: str

    def __repr__(self) -> str:
        return f"CapabilityKey({self.name!r})"


class SharedRegistry:
    """Key -> object map scoped to a single pipeline build session."""

    def __init__(self) -> None:
        self._objects: Dict[CapabilityKey, object] = {}

    def set(self, key: CapabilityKey[T], value: T) -> None:
        if key in self._objects:
            raise DuplicateSharedObjectError(f"{key.name} is already registered for this build")
        self._objects[key] = value

    def get(self, key: CapabilityKey[T]) -> Optional[T]:
        return self._objects.get(key)  # type: ignore[return-value]

    def require(self, key: CapabilityKey[T]) -> T:
        value = self.get(key)
        if value is None:
            raise ConfigurationError(f"{key.name} has not been registered for this build")
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._objects


USER_LOOKUP_SERVICE: CapabilityKey[UserLookupService] = CapabilityKey("user_lookup_service")
REMEMBER_ME_SERVICES: CapabilityKey[RememberMeServices] = CapabilityKey("remember_me_services")
LOGOUT_COORDINATOR: CapabilityKey[LogoutConfigurator] = CapabilityKey("logout_coordinator")


__all__ = [
    "CapabilityKey",
    "SharedRegistry",
    "USER_LOOKUP_SERVICE",
    "REMEMBER_ME_SERVICES",
    "LOGOUT_COORDINATOR",
]

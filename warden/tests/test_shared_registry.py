import pytest

from warden.core.pipeline import (
    REMEMBER_ME_SERVICES,
    USER_LOOKUP_SERVICE,
    CapabilityKey,
    ConfigurationError,
    DuplicateSharedObjectError,
    SharedRegistry,
)

pytestmark = pytest.mark.unit


def test_get_returns_none_when_absent():
    registry = SharedRegistry()
    assert registry.get(USER_LOOKUP_SERVICE) is None
    assert USER_LOOKUP_SERVICE not in registry


def test_set_then_get():
    registry = SharedRegistry()
    service = object()
    registry.set(USER_LOOKUP_SERVICE, service)
    assert registry.get(USER_LOOKUP_SERVICE) is service
    assert USER_LOOKUP_SERVICE in registry


def test_second_set_with_same_key_fails_and_keeps_first_value():
    registry = SharedRegistry()
    first, second = object(), object()
    registry.set(REMEMBER_ME_SERVICES, first)

    with pytest.raises(DuplicateSharedObjectError):
        registry.set(REMEMBER_ME_SERVICES, second)
    assert registry.get(REMEMBER_ME_SERVICES) is first


def test_keys_are_compared_by_name():
    registry = SharedRegistry()
    registry.set(CapabilityKey("custom"), 1)
    assert registry.get(CapabilityKey("custom")) == 1


def test_require_raises_configuration_error_when_absent():
    with pytest.raises(ConfigurationError):
        SharedRegistry().require(USER_LOOKUP_SERVICE)

"""
Unit tests for the provider registry and manager construction.
"""

import pytest

from sessiongate.modules.session import (
    ConfigurationError,
    ProviderRegistrationError,
    ProviderRegistry,
    SessionManager,
    UnknownProviderError,
    new_session_manager,
)
from sessiongate.modules.storage import MemoryProvider


def test_register_and_get():
    registry = ProviderRegistry()
    provider = MemoryProvider()

    registry.register("memory", provider)

    assert registry.get("memory") is provider
    assert "memory" in registry
    assert registry.names() == ["memory"]


def test_register_none_provider_is_rejected():
    registry = ProviderRegistry()

    with pytest.raises(ProviderRegistrationError, match="is None"):
        registry.register("memory", None)

    assert "memory" not in registry


def test_register_duplicate_name_is_rejected():
    registry = ProviderRegistry()
    first = MemoryProvider()
    registry.register("memory", first)

    with pytest.raises(ProviderRegistrationError, match="twice"):
        registry.register("memory", MemoryProvider())

    # The original registration stays in place
    assert registry.get("memory") is first


def test_unknown_provider_names_the_backend():
    registry = ProviderRegistry()

    with pytest.raises(UnknownProviderError) as exc_info:
        registry.get("postgres")

    assert exc_info.value.name == "postgres"
    assert "postgres" in str(exc_info.value)
    # Configuration errors are ValueErrors for callers that only know that
    assert isinstance(exc_info.value, ValueError)


def test_new_session_manager_uses_registered_provider():
    registry = ProviderRegistry()
    provider = MemoryProvider()
    registry.register("memory", provider)

    manager = new_session_manager(registry, "memory", "bdpan", 3600)

    assert isinstance(manager, SessionManager)
    assert manager.provider is provider
    assert manager.cookie_name == "bdpan"
    assert manager.max_lifetime == 3600


def test_new_session_manager_unknown_provider():
    registry = ProviderRegistry()
    registry.register("memory", MemoryProvider())

    with pytest.raises(UnknownProviderError):
        new_session_manager(registry, "file", "bdpan", 3600)


@pytest.mark.parametrize("cookie_name,max_lifetime", [("", 3600), ("bdpan", 0), ("bdpan", -5)])
def test_manager_rejects_invalid_settings(cookie_name, max_lifetime):
    with pytest.raises(ConfigurationError):
        SessionManager(MemoryProvider(), cookie_name, max_lifetime)

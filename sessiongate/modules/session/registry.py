"""Named table of session storage providers."""

import logging
from typing import Dict, List

from .errors import ProviderRegistrationError, UnknownProviderError
from .interfaces import Provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Maps backend names to provider instances.

    Populated once at startup by the composition root, before any
    SessionManager is built, and only read afterwards.
    """

    def __init__(self):
        self._providers: Dict[str, Provider] = {}

    def register(self, name: str, provider: Provider) -> None:
        """
        Register a provider under a unique name.

        Raises:
            ProviderRegistrationError: If provider is None or name is taken
        """
        if provider is None:
            raise ProviderRegistrationError("session: register provider is None")
        if name in self._providers:
            raise ProviderRegistrationError(
                f"session: register called twice for provider {name!r}"
            )
        self._providers[name] = provider
        logger.debug(f"Registered session provider {name!r}")

    def get(self, name: str) -> Provider:
        """
        Look up a provider.

        Raises:
            UnknownProviderError: If nothing is registered under name
        """
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(name) from None

    def names(self) -> List[str]:
        return sorted(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

"""Provider registry mapping ecosystems to their provider."""

from typing import Any, Dict, List, Optional

from oss_resolver.coordinate import Coordinate, Ecosystem
from oss_resolver.exceptions import UnsupportedEcosystemError
from oss_resolver.logging_config import logger

from .protocol import Provider


class ProviderRegistry:
    """
    Registry for managing ecosystem providers.

    Exactly one provider serves an ecosystem; registering a second provider
    for the same ecosystem replaces the first.

    Example:
        registry = ProviderRegistry()
        registry.register(NpmProvider(cache))
        registry.register(PyPIProvider(cache))

        provider = registry.get_provider_for(Coordinate.from_purl("pkg:npm/lodash"))
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._providers: Dict[Ecosystem, Provider] = {}

    def register(self, provider: Provider) -> None:
        """
        Register a provider under its ecosystem.

        Args:
            provider: Provider implementation to register
        """
        previous = self._providers.get(provider.ecosystem)
        if previous is not None:
            logger.debug(f"Replacing provider for {provider.ecosystem}: {previous.name} -> {provider.name}")
        self._providers[provider.ecosystem] = provider
        logger.debug(f"Registered provider: {provider.name} ({provider.ecosystem})")

    def get_provider(self, ecosystem: Ecosystem) -> Optional[Provider]:
        return self._providers.get(ecosystem)

    def get_provider_for(self, coordinate: Coordinate) -> Provider:
        """
        Find the provider for a coordinate.

        Raises:
            UnsupportedEcosystemError: If no registered provider supports it
        """
        provider = self._providers.get(coordinate.ecosystem)
        if provider is None or not provider.supports(coordinate):
            raise UnsupportedEcosystemError(coordinate.ecosystem.value, str(coordinate))
        return provider

    @property
    def providers(self) -> List[Provider]:
        return list(self._providers.values())

    def list_providers(self) -> List[Dict[str, Any]]:
        """
        List all registered providers.

        Returns:
            List of dicts with 'name' and 'ecosystem' keys, sorted by ecosystem
        """
        return [
            {"name": p.name, "ecosystem": p.ecosystem.value}
            for p in sorted(self._providers.values(), key=lambda p: p.ecosystem.value)
        ]

    def clear(self) -> None:
        """Remove all registered providers."""
        self._providers.clear()

    def __contains__(self, ecosystem: object) -> bool:
        return ecosystem in self._providers

    def __len__(self) -> int:
        return len(self._providers)

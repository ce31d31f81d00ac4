"""
Provider registry: maps a type tag to a provider constructor.

``ProviderRegistry.create`` is the provider factory the orchestrator
consumes. It is a fast, synchronous lookup that returns a *new* provider
instance on every call, or ``None`` for an unknown tag. Expensive setup
belongs in ``ScrapeProvider.initialize()``.
"""

import logging
from typing import Callable, Dict, List, Optional, Type

from hutwatch.providers.base import ScrapeProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], Optional[ScrapeProvider]]


class ProviderRegistry:
    """
    Registry of available scrape providers.

    Examples:
        >>> registry = ProviderRegistry()
        >>> registry.register("montblanc", MontBlancProvider)
        >>> provider = registry.create("montblanc")
        >>> registry.create("bentral") is None
        True
    """

    def __init__(self):
        self._factories: Dict[str, Callable[[], ScrapeProvider]] = {}

    def register(self, provider_type: str, factory: Callable[[], ScrapeProvider]) -> None:
        """
        Register a provider constructor under a type tag.

        Args:
            provider_type: Type tag used by Target.provider_type
            factory: Zero-argument callable returning a fresh provider (usually the class)
        """
        key = provider_type.strip().lower()
        if key in self._factories:
            logger.warning(f"Provider '{key}' already registered, replacing")
        self._factories[key] = factory
        logger.debug(f"Registered provider: {key}")

    def create(self, provider_type: str) -> Optional[ScrapeProvider]:
        """Create a new provider for the tag, or None if the tag is unknown."""
        factory = self._factories.get(provider_type.strip().lower())
        if factory is None:
            return None
        return factory()

    def get_provider_class(self, provider_type: str) -> Optional[Type[ScrapeProvider]]:
        """Return the registered factory if it is a ScrapeProvider subclass."""
        factory = self._factories.get(provider_type.strip().lower())
        if isinstance(factory, type) and issubclass(factory, ScrapeProvider):
            return factory
        return None

    def available(self) -> List[str]:
        """Sorted list of registered type tags."""
        return sorted(self._factories)

    def __contains__(self, provider_type: str) -> bool:
        return provider_type.strip().lower() in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def _build_default_registry() -> ProviderRegistry:
    from hutwatch.providers.hut_reservation import HutReservationProvider
    from hutwatch.providers.montblanc import MontBlancProvider

    registry = ProviderRegistry()
    registry.register(HutReservationProvider.PROVIDER_NAME, HutReservationProvider)
    registry.register(MontBlancProvider.PROVIDER_NAME, MontBlancProvider)
    return registry


# Global registry with the built-in providers
provider_registry = _build_default_registry()

"""
Availability providers.

Each provider wraps one booking system and returns a normalized
ScrapeResult. Use ``provider_registry.create(type_tag)`` to obtain a fresh
instance.
"""

from hutwatch.providers.base import (
    AvailabilityDate,
    DateRange,
    ScrapeMetadata,
    ScrapeProvider,
    ScrapeRequest,
    ScrapeResult,
    SubResourceAvailability,
)
from hutwatch.providers.exceptions import (
    AuthenticationError,
    NetworkError,
    ParsingError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
)
from hutwatch.providers.hut_reservation import HutReservationProvider
from hutwatch.providers.montblanc import MontBlancProvider
from hutwatch.providers.registry import ProviderRegistry, provider_registry

__all__ = [
    # Base
    "ScrapeProvider",
    "ScrapeRequest",
    "ScrapeResult",
    "ScrapeMetadata",
    "SubResourceAvailability",
    "AvailabilityDate",
    "DateRange",
    # Exceptions
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ProviderTimeoutError",
    "ParsingError",
    "NetworkError",
    # Providers
    "HutReservationProvider",
    "MontBlancProvider",
    # Registry
    "ProviderRegistry",
    "provider_registry",
]

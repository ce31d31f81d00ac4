"""
Custom exceptions for hutwatch.

Orchestration-level errors live here; errors raised inside provider
adapters use the hierarchy in ``hutwatch.providers.exceptions``.
"""

from typing import Optional


class HutWatchException(Exception):
    """Base exception class for all hutwatch exceptions."""

    pass


class ConfigurationException(HutWatchException):
    """Exception raised for configuration errors (settings, target files)."""

    pass


class ProviderNotFoundError(HutWatchException):
    """
    Raised when the provider factory has no provider for a type tag.

    Attributes:
        provider_type: The unknown provider type tag
    """

    def __init__(self, provider_type: str):
        self.provider_type = provider_type
        super().__init__(f"Provider '{provider_type}' not found")


class ScrapeFailedError(HutWatchException):
    """
    Raised when a provider returns a result whose own success flag is false.

    Folds a soft failure reported by the provider into the same retry path
    as an exception raised during the scrape.
    """

    def __init__(self, message: Optional[str], provider_type: Optional[str] = None):
        self.provider_type = provider_type
        self.message = message or "Scrape reported failure without an error message"
        super().__init__(self.message)


class PersistenceException(HutWatchException):
    """Exception raised when a scrape result cannot be stored."""

    pass

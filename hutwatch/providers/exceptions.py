"""
Errors raised by availability providers.

    ProviderError
    ├── RateLimitError        HTTP 429
    ├── AuthenticationError   session handshake or 401/403
    ├── ProviderTimeoutError  request timed out
    ├── ParsingError          payload not understood
    └── NetworkError          connection failure or other HTTP error

The orchestrator retries every one of them the same way. The subclasses
only carry the details that ``log_provider_error`` prints.

Usage:
    >>> raise AuthenticationError("Missing XSRF-TOKEN cookie", provider_name="hut-reservation")
"""

import logging
from typing import Any, Dict, Optional


class ProviderError(Exception):
    """
    Base class for provider errors.

    Attributes:
        message: Error text without the provider prefix
        provider_name: Provider that raised the error, shown as ``[name]``
        original_error: Lower-level exception that caused this one
    """

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.provider_name = provider_name
        self.original_error = original_error
        super().__init__(f"[{provider_name}] {message}" if provider_name else message)

    def details(self) -> Dict[str, Any]:
        """Fields for the log line; subclasses add their own."""
        return {"provider": self.provider_name, "error_type": self.__class__.__name__}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, provider_name={self.provider_name!r})"


class RateLimitError(ProviderError):
    """The booking system throttled us. ``retry_after`` is in seconds, if announced."""

    def __init__(self, message: str, provider_name: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message, provider_name)
        self.retry_after = retry_after

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "retry_after": self.retry_after}


class AuthenticationError(ProviderError):
    """Missing XSRF cookie, or HTTP 401/403 from an API endpoint."""


class ProviderTimeoutError(ProviderError):
    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, provider_name, original_error)
        self.timeout_seconds = timeout_seconds
        self.operation = operation

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "timeout_seconds": self.timeout_seconds, "operation": self.operation}


class ParsingError(ProviderError):
    """An availability payload could not be understood."""

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        payload_excerpt: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, provider_name, original_error)
        self.payload_excerpt = payload_excerpt

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "payload_excerpt": self.payload_excerpt}


class NetworkError(ProviderError):
    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, provider_name, original_error)
        self.status_code = status_code
        self.url = url

    def details(self) -> Dict[str, Any]:
        return {**super().details(), "status_code": self.status_code, "url": self.url}


def log_provider_error(logger: logging.Logger, error: ProviderError) -> None:
    """Log ``error`` with its details, attaching the underlying exception if any."""
    logger.error(
        f"{error.message} | Details: {error.details()}",
        exc_info=error.original_error or False,
    )

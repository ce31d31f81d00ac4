"""
Unit tests for the exception hierarchies.
"""

import logging

import pytest

from hutwatch.exceptions import (
    ConfigurationException,
    HutWatchException,
    PersistenceException,
    ProviderNotFoundError,
    ScrapeFailedError,
)
from hutwatch.providers.exceptions import (
    AuthenticationError,
    NetworkError,
    ParsingError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    log_provider_error,
)


class TestHutWatchExceptions:
    @pytest.mark.parametrize(
        "exc",
        [
            ConfigurationException("bad"),
            PersistenceException("bad"),
            ProviderNotFoundError("bentral"),
            ScrapeFailedError("bad"),
        ],
    )
    def test_hierarchy(self, exc):
        assert isinstance(exc, HutWatchException)

    def test_provider_not_found_message(self):
        error = ProviderNotFoundError("bentral")

        assert str(error) == "Provider 'bentral' not found"
        assert error.provider_type == "bentral"

    def test_scrape_failed_keeps_provider_message(self):
        error = ScrapeFailedError("No bed categories found for hut 42", provider_type="hut-reservation")

        assert str(error) == "No bed categories found for hut 42"
        assert error.provider_type == "hut-reservation"

    def test_scrape_failed_without_message(self):
        assert "without an error message" in str(ScrapeFailedError(None))


class TestProviderErrors:
    """Tests for ProviderError and subclasses."""

    def test_message_prefix(self):
        error = ProviderError("boom", provider_name="montblanc")

        assert str(error) == "[montblanc] boom"
        assert error.message == "boom"

    def test_no_prefix_without_provider(self):
        assert str(ProviderError("boom")) == "boom"

    @pytest.mark.parametrize(
        "error,expected",
        [
            (RateLimitError("slow down", retry_after=60), {"retry_after": 60}),
            (ProviderTimeoutError("timeout", timeout_seconds=15, operation="hutInfo"), {"timeout_seconds": 15}),
            (NetworkError("503", status_code=503, url="https://x"), {"status_code": 503, "url": "https://x"}),
            (ParsingError("garbage", payload_excerpt="<html>"), {"payload_excerpt": "<html>"}),
            (AuthenticationError("no token"), {}),
        ],
    )
    def test_details(self, error, expected):
        details = error.details()

        assert isinstance(error, ProviderError)
        assert details["error_type"] == error.__class__.__name__
        assert expected.items() <= details.items()

    def test_repr(self):
        assert "provider_name='hut-reservation'" in repr(ParsingError("x", provider_name="hut-reservation"))

    def test_log_provider_error_details(self, caplog):
        logger = logging.getLogger("hutwatch.test")
        error = NetworkError("HTTP 503", provider_name="montblanc", status_code=503, url="https://x")

        with caplog.at_level(logging.ERROR, logger="hutwatch.test"):
            log_provider_error(logger, error)

        assert "HTTP 503" in caplog.text
        assert "'status_code': 503" in caplog.text
        assert "'error_type': 'NetworkError'" in caplog.text

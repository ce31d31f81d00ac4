"""
Unit tests for retry module.
"""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from hutwatch.utils.retry import (
    RETRIABLE_EXCEPTIONS,
    api_retry,
    database_retry,
    file_io_retry,
    linear_backoff_ms,
)


class TestLinearBackoff:
    """Tests for the orchestrator backoff formula."""

    def test_default_base(self):
        assert [linear_backoff_ms(a) for a in (1, 2, 3)] == [30000, 60000, 90000]

    def test_custom_base(self):
        assert linear_backoff_ms(4, base_ms=250) == 1000

    def test_zero_base(self):
        assert linear_backoff_ms(5, base_ms=0) == 0

    @pytest.mark.parametrize("attempt", [0, -2])
    def test_rejects_attempts_below_one(self, attempt):
        with pytest.raises(ValueError):
            linear_backoff_ms(attempt)


class TestApiRetry:
    """Tests for api_retry decorator."""

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self):
        mock_func = AsyncMock(side_effect=[httpx.ConnectError("refused"), "ok"])

        @api_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
        async def fetch():
            return await mock_func()

        assert await fetch() == "ok"
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        mock_func = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

        @api_retry(max_attempts=2, min_wait_seconds=0, max_wait_seconds=0)
        async def fetch():
            return await mock_func()

        with pytest.raises(httpx.ReadTimeout):
            await fetch()

        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self):
        mock_func = AsyncMock(side_effect=ValueError("bad payload"))

        @api_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
        async def fetch():
            return await mock_func()

        with pytest.raises(ValueError):
            await fetch()

        assert mock_func.call_count == 1


class TestDatabaseRetry:
    """Tests for database_retry decorator."""

    @pytest.mark.asyncio
    async def test_retries_operational_errors(self):
        mock_func = AsyncMock(side_effect=[OperationalError("SELECT 1", {}, Exception("locked")), 7])

        @database_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
        async def save():
            return await mock_func()

        assert await save() == 7
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_programming_mistakes(self):
        mock_func = AsyncMock(side_effect=KeyError("id"))

        @database_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
        async def save():
            return await mock_func()

        with pytest.raises(KeyError):
            await save()

        assert mock_func.call_count == 1


class TestFileIoRetry:
    """Tests for file_io_retry decorator."""

    def test_retries_os_errors(self):
        mock_func = Mock(side_effect=[OSError("disk busy"), "written"])

        @file_io_retry(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)
        def write():
            return mock_func()

        assert write() == "written"
        assert mock_func.call_count == 2

    def test_reraises_after_max_attempts(self):
        mock_func = Mock(side_effect=PermissionError("read-only"))

        @file_io_retry(max_attempts=2, min_wait_seconds=0, max_wait_seconds=0)
        def write():
            return mock_func()

        with pytest.raises(PermissionError):
            write()

        assert mock_func.call_count == 2


def test_retriable_exceptions():
    assert ConnectionError in RETRIABLE_EXCEPTIONS
    assert TimeoutError in RETRIABLE_EXCEPTIONS
    assert OSError in RETRIABLE_EXCEPTIONS

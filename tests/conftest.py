"""
Pytest configuration and shared fixtures for hutwatch tests.
"""

import os
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from dotenv import load_dotenv

# Load test environment variables before any hutwatch imports
env_file = Path(__file__).parent.parent / ".env.test"
if env_file.exists():
    load_dotenv(env_file, override=True)
else:
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    os.environ.setdefault("SAVE_TO_DATABASE", "False")
    os.environ.setdefault("SAVE_TO_FILE", "False")
    os.environ.setdefault("DEBUG", "False")

from hutwatch.orchestration.types import OrchestrationOptions, ScrapeResults, Target  # noqa: E402
from hutwatch.providers.base import (  # noqa: E402
    AvailabilityDate,
    DateRange,
    ScrapeProvider,
    ScrapeRequest,
    ScrapeResult,
    SubResourceAvailability,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


# ============================================================================
# Fake providers
# ============================================================================

FIXED_RANGE = DateRange(start=date(2026, 7, 1), end=date(2026, 7, 10))


def make_result(request: ScrapeRequest, available_days: int = 2, success: bool = True, error: Optional[str] = None):
    """A ScrapeResult with one sub-resource and ``available_days`` bookable days."""
    dates = [
        AvailabilityDate(day=request.date_range.start + timedelta(days=i), available=True, can_checkin=True)
        for i in range(available_days)
    ]
    dates.append(AvailabilityDate(day=request.date_range.end, available=False))
    return ScrapeResult(
        metadata={
            "success": success,
            "error": error,
            "provider": "fake",
            "target_id": request.target_id,
            "target_name": request.target_name,
            "url": request.url,
        },
        sub_resources=[SubResourceAvailability(name="Dormitory", external_id="1", dates=dates)],
    )


class ScriptedProvider(ScrapeProvider):
    """
    Provider whose per-target behaviour is scripted.

    ``script`` maps a target id to a list of steps, one per attempt. A step
    is ``"ok"``, ``"soft"`` (result with success=False) or an exception
    instance to raise. The last step repeats once the list is exhausted.
    """

    PROVIDER_NAME = "fake"
    PROVIDER_TYPE = "api"

    def __init__(self, script: Dict, calls: Dict[str, List], fail_initialize: bool = False, fail_cleanup: bool = False):
        super().__init__()
        self.script = script
        self.calls = calls
        self.fail_initialize = fail_initialize
        self.fail_cleanup = fail_cleanup

    async def initialize(self) -> None:
        self.calls["initialize"].append(self)
        if self.fail_initialize:
            raise ConnectionError("initialize failed")

    async def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        attempts = self.calls["scrape"]
        attempts.append(request.target_id)
        attempt_no = attempts.count(request.target_id)
        steps = self.script.get(request.target_id, ["ok"])
        step = steps[min(attempt_no, len(steps)) - 1]

        if isinstance(step, BaseException):
            raise step
        if step == "soft":
            return make_result(request, success=False, error="Calendar not loaded")
        return make_result(request)

    async def cleanup(self) -> None:
        self.calls["cleanup"].append(self)
        if self.fail_cleanup:
            raise RuntimeError("cleanup failed")


@pytest.fixture
def provider_calls():
    return {"initialize": [], "scrape": [], "cleanup": []}


@pytest.fixture
def scripted_factory(provider_calls) -> Callable:
    """
    Build a provider factory for the ``fake`` type tag.

    Usage:
        factory = scripted_factory({1: [ConnectionError("x"), "ok"]})
    """

    def build(script: Optional[Dict] = None, **provider_kwargs):
        created = []

        def factory(provider_type: str):
            if provider_type != "fake":
                return None
            provider = ScriptedProvider(script or {}, provider_calls, **provider_kwargs)
            created.append(provider)
            return provider

        factory.created = created
        return factory

    return build


# ============================================================================
# Orchestration fixtures
# ============================================================================

class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_target():
    def build(target_id=1, provider_type: str = "fake", **kwargs) -> Target:
        return Target(
            id=target_id,
            name=kwargs.pop("name", f"Hut {target_id}"),
            provider_type=provider_type,
            url=kwargs.pop("url", f"https://example.org/huts/{target_id}"),
            **kwargs,
        )

    return build


@pytest.fixture
def make_options():
    def build(**overrides) -> OrchestrationOptions:
        values = {
            "concurrency": 3,
            "retries": 3,
            "delay_between_batches_ms": 10000,
            "delay_between_targets_ms": 0,
            "retry_backoff_ms": 30000,
            "save_to_database": False,
            "save_to_file": False,
            "date_range": FIXED_RANGE,
        }
        values.update(overrides)
        return OrchestrationOptions(**values)

    return build


@pytest.fixture
def results():
    return ScrapeResults()


@pytest.fixture
def temp_logs_dir(tmp_path):
    """Create a temporary logs directory for testing."""
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir(exist_ok=True)
    return logs_dir


@pytest.fixture
def result_factory():
    """Expose make_result to tests."""
    return make_result

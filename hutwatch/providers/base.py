"""
Base provider class and the normalized result shape all providers return.

Every booking system (hut-reservation.org, the Mont Blanc for-system
planning, ...) is wrapped in a ScrapeProvider. The orchestrator creates one
fresh provider per attempt and drives it through a fixed lifecycle:

    provider = registry.create("hut-reservation")
    await provider.initialize()
    try:
        result = await provider.scrape(request)
    finally:
        await provider.cleanup()

Providers hold per-session state (HTTP client, auth cookies), so an
instance must never be shared between concurrently running targets.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hutwatch.utils.logging_config import get_logger

TargetId = Union[int, str]


class DateRange(BaseModel):
    """Inclusive window of days a provider should report availability for."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError(f"date range end {self.end} is before start {self.start}")
        return self

    @classmethod
    def upcoming(cls, days: int, today: Optional[date] = None) -> "DateRange":
        """Window from today (inclusive) spanning ``days`` days."""
        start = today or date.today()
        return cls(start=start, end=start + timedelta(days=days))

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


class ScrapeRequest(BaseModel):
    """What the orchestrator asks a provider to scrape for one target."""

    model_config = ConfigDict(frozen=True)

    target_id: TargetId
    target_name: str
    url: str
    date_range: DateRange
    sub_resources: Optional[List[str]] = None


class ScrapeMetadata(BaseModel):
    """Outcome flags and provenance embedded in every ScrapeResult."""

    success: bool
    error: Optional[str] = None
    provider: Optional[str] = None
    target_id: Optional[TargetId] = None
    target_name: Optional[str] = None
    url: Optional[str] = None
    scraped_at: datetime = Field(default_factory=datetime.now)


class AvailabilityDate(BaseModel):
    """Availability of one sub-resource (room type, bed category) on one day."""

    day: date
    available: bool
    can_checkin: bool = False
    can_checkout: bool = False
    free_places: Optional[int] = None


class SubResourceAvailability(BaseModel):
    """Calendar of one sub-resource of a property."""

    name: str
    external_id: Optional[str] = None
    capacity: Optional[int] = None
    dates: List[AvailabilityDate] = Field(default_factory=list)

    @property
    def available_dates(self) -> List[AvailabilityDate]:
        return [d for d in self.dates if d.available]


class ScrapeResult(BaseModel):
    """Normalized output of ScrapeProvider.scrape()."""

    metadata: ScrapeMetadata
    sub_resources: List[SubResourceAvailability] = Field(default_factory=list)

    @property
    def availability_records(self) -> int:
        """Number of available (sub-resource, day) pairs."""
        return sum(len(sub.available_dates) for sub in self.sub_resources)


class ScrapeProvider(ABC):
    """
    Abstract base class for all availability providers.

    Class Attributes:
        PROVIDER_NAME: Registry type tag (e.g. 'hut-reservation')
        PROVIDER_TYPE: 'api' for JSON endpoints, 'web' for browser automation
        DEFAULT_TIMEOUT: Default HTTP timeout in seconds

    Subclasses implement initialize/scrape/cleanup. ``scrape`` may either
    raise or return a result with ``metadata.success = False``; the
    orchestrator treats both as a failed attempt.
    """

    PROVIDER_NAME: str = "base"
    PROVIDER_TYPE: str = "unknown"
    DEFAULT_TIMEOUT: int = 15

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.logger = get_logger(f"{__name__}.{self.PROVIDER_NAME}", {"provider_type": self.PROVIDER_NAME})

    @abstractmethod
    async def initialize(self) -> None:
        """Open sessions, fetch tokens, load static property data."""

    @abstractmethod
    async def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        """Scrape availability for one target."""

    async def cleanup(self) -> None:
        """Release sessions. Must be safe to call after a failed initialize()."""

    @classmethod
    def build_url(cls, target_id: TargetId) -> str:
        """Public URL of a target, used when targets are given as bare ids."""
        raise NotImplementedError(f"{cls.__name__} cannot build URLs from ids")

    def _metadata(self, request: ScrapeRequest, success: bool, error: Optional[str] = None) -> ScrapeMetadata:
        return ScrapeMetadata(
            success=success,
            error=error,
            provider=self.PROVIDER_NAME,
            target_id=request.target_id,
            target_name=request.target_name,
            url=request.url,
        )

    def _failed_result(self, request: ScrapeRequest, error: str) -> ScrapeResult:
        """Soft failure: a result the orchestrator will treat as a failed attempt."""
        return ScrapeResult(metadata=self._metadata(request, success=False, error=error))

    @staticmethod
    def _filter_sub_resources(
        sub_resources: List[SubResourceAvailability],
        wanted: Optional[List[str]],
    ) -> List[SubResourceAvailability]:
        """Keep only the requested sub-resources (case-insensitive), or all if none requested."""
        if not wanted:
            return sub_resources
        wanted_names = {name.strip().lower() for name in wanted}
        return [sub for sub in sub_resources if sub.name.strip().lower() in wanted_names]

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cleanup()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"provider_name={self.PROVIDER_NAME!r}, "
            f"type={self.PROVIDER_TYPE!r}, "
            f"timeout={self.timeout}s)"
        )

"""
Data types shared by the orchestration components.

Targets and options are immutable inputs; ``ScrapeResults`` is the single
mutable accumulator of one scheduler run. All appends to it happen from
coroutines on one event loop, so no lock is needed.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from hutwatch.config import Settings, get_settings
from hutwatch.providers.base import DateRange, ScrapeResult, TargetId


class Target(BaseModel):
    """One property to scrape."""

    model_config = ConfigDict(frozen=True)

    id: TargetId
    name: str
    provider_type: str
    url: str
    sub_resources: Optional[List[str]] = None

    def __str__(self) -> str:
        return f"{self.name} ({self.provider_type}:{self.id})"


class OrchestrationOptions(BaseModel):
    """
    Knobs of one orchestration run.

    Attributes:
        concurrency: Targets per batch, run in parallel
        retries: Maximum attempts per target (total, not additional)
        delay_between_batches_ms: Pause between two batches
        delay_between_targets_ms: Start offset between siblings of a batch
        retry_backoff_ms: Backoff unit; attempt N failing waits N units
        save_to_database: Persist successful results to the database
        save_to_file: Write successful results as JSON files
        date_range: Window handed to providers
    """

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default=3, ge=1)
    retries: int = Field(default=3, ge=1)
    delay_between_batches_ms: int = Field(default=10000, ge=0)
    delay_between_targets_ms: int = Field(default=0, ge=0)
    retry_backoff_ms: int = Field(default=30000, ge=0)
    save_to_database: bool = True
    save_to_file: bool = False
    date_range: DateRange = Field(default_factory=lambda: DateRange.upcoming(days=365))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "OrchestrationOptions":
        """
        Build options from application settings.

        Args:
            settings: Settings instance (defaults to the cached settings)
            **overrides: Field values taking precedence over settings

        Examples:
            >>> options = OrchestrationOptions.from_settings(concurrency=5)
        """
        settings = settings or get_settings()
        values = {
            "concurrency": settings.scrape_concurrency,
            "retries": settings.scrape_retries,
            "delay_between_batches_ms": settings.delay_between_batches_ms,
            "delay_between_targets_ms": settings.delay_between_targets_ms,
            "retry_backoff_ms": settings.retry_backoff_ms,
            "save_to_database": settings.save_to_database,
            "save_to_file": settings.save_to_file,
            "date_range": DateRange.upcoming(days=settings.scrape_window_days),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class TargetOutcome(BaseModel):
    """Final outcome of one target after all attempts."""

    model_config = ConfigDict(frozen=True)

    target_id: TargetId
    target_name: str
    provider_type: str
    url: str
    success: bool
    attempts: int = Field(ge=1)
    duration_ms: float = 0.0
    sub_resources_scraped: int = 0
    availability_records: int = 0
    persisted: bool = False
    error: Optional[str] = None
    result: Optional[ScrapeResult] = Field(default=None, exclude=True)

    @classmethod
    def succeeded(
        cls,
        target: Target,
        attempts: int,
        duration_ms: float,
        result: ScrapeResult,
        persisted: bool,
    ) -> "TargetOutcome":
        return cls(
            target_id=target.id,
            target_name=target.name,
            provider_type=target.provider_type,
            url=target.url,
            success=True,
            attempts=attempts,
            duration_ms=duration_ms,
            sub_resources_scraped=len(result.sub_resources),
            availability_records=result.availability_records,
            persisted=persisted,
            result=result,
        )

    @classmethod
    def failed(cls, target: Target, attempts: int, duration_ms: float, error: str) -> "TargetOutcome":
        return cls(
            target_id=target.id,
            target_name=target.name,
            provider_type=target.provider_type,
            url=target.url,
            success=False,
            attempts=attempts,
            duration_ms=duration_ms,
            error=error,
        )


class ProgressSnapshot(BaseModel):
    """Counters emitted after each batch."""

    model_config = ConfigDict(frozen=True)

    current_batch: int
    total_batches: int
    completed: int
    total: int
    successful: int
    failed: int
    success_rate: float


class ReportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    successful: int
    failed: int
    skipped: int
    success_rate: str
    duration: str
    avg_time_per_target: str
    duration_ms: float
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class OrchestrationReport(BaseModel):
    """Summary plus per-target detail of one run."""

    model_config = ConfigDict(frozen=True)

    summary: ReportSummary
    successful: List[TargetOutcome] = Field(default_factory=list)
    failed: List[TargetOutcome] = Field(default_factory=list)
    skipped: List[Target] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


class ScrapeResults:
    """Mutable accumulator of outcomes for one run."""

    def __init__(self):
        self.successful: List[TargetOutcome] = []
        self.failed: List[TargetOutcome] = []
        self.skipped: List[Target] = []

    def add(self, outcome: TargetOutcome) -> None:
        if outcome.success:
            self.successful.append(outcome)
        else:
            self.failed.append(outcome)

    def skip(self, target: Target) -> None:
        self.skipped.append(target)

    def reset(self) -> None:
        self.successful.clear()
        self.failed.clear()
        self.skipped.clear()

    @property
    def completed(self) -> int:
        return len(self.successful) + len(self.failed)

    def __len__(self) -> int:
        return self.completed + len(self.skipped)

    def __repr__(self) -> str:
        return (
            f"ScrapeResults(successful={len(self.successful)}, "
            f"failed={len(self.failed)}, skipped={len(self.skipped)})"
        )

"""
Batch scrape orchestration.

Runs many targets through their providers with bounded concurrency,
per-target retries with linear backoff, per-batch progress and a final
summary report.
"""

from hutwatch.orchestration.reporting import ProgressReporter, ReportBuilder
from hutwatch.orchestration.runner import RetryableTargetRunner
from hutwatch.orchestration.scheduler import BatchScheduler, create_scheduler
from hutwatch.orchestration.types import (
    OrchestrationOptions,
    OrchestrationReport,
    ProgressSnapshot,
    ReportSummary,
    ScrapeResults,
    Target,
    TargetOutcome,
)

__all__ = [
    "BatchScheduler",
    "create_scheduler",
    "RetryableTargetRunner",
    "ProgressReporter",
    "ReportBuilder",
    "OrchestrationOptions",
    "OrchestrationReport",
    "ProgressSnapshot",
    "ReportSummary",
    "ScrapeResults",
    "Target",
    "TargetOutcome",
]

"""
Progress snapshots and the final run report.

Both components only read the shared ScrapeResults; building a report twice
from the same state yields identical counts.
"""

import logging
from datetime import datetime
from typing import Optional

from hutwatch.orchestration.types import (
    OrchestrationReport,
    ProgressSnapshot,
    ReportSummary,
    ScrapeResults,
)

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Computes and logs per-batch progress."""

    def __init__(self, results: ScrapeResults):
        self.results = results

    def compute_snapshot(self, current_batch: int, total_batches: int, total_targets: int) -> ProgressSnapshot:
        successful = len(self.results.successful)
        failed = len(self.results.failed)
        completed = successful + failed
        success_rate = (successful / completed * 100) if completed else 0.0

        return ProgressSnapshot(
            current_batch=current_batch,
            total_batches=total_batches,
            completed=completed,
            total=total_targets,
            successful=successful,
            failed=failed,
            success_rate=success_rate,
        )

    def log_progress(self, snapshot: ProgressSnapshot) -> None:
        logger.info(
            f"Progress: Batch {snapshot.current_batch}/{snapshot.total_batches} | "
            f"Success: {snapshot.successful} | Failed: {snapshot.failed} | "
            f"Rate: {snapshot.success_rate:.1f}%",
            extra={
                "current_batch": snapshot.current_batch,
                "total_batches": snapshot.total_batches,
                "completed": snapshot.completed,
                "total": snapshot.total,
            },
        )


class ReportBuilder:
    """
    Builds the OrchestrationReport from the accumulator.

    Examples:
        >>> report = ReportBuilder(results).build_report(duration_ms=90000)
        >>> report.summary.duration
        '1.5 minutes'
    """

    def __init__(self, results: ScrapeResults):
        self.results = results

    def build_report(
        self,
        duration_ms: float,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> OrchestrationReport:
        """
        Args:
            duration_ms: Wall-clock duration of the run
            start_time: When the run started, if known
            end_time: When the run ended, if known

        Returns:
            Report whose summary counts match the detail lists
        """
        successful = list(self.results.successful)
        failed = list(self.results.failed)
        skipped = list(self.results.skipped)
        total = len(successful) + len(failed) + len(skipped)

        success_rate = (len(successful) / total * 100) if total else 0.0
        avg_ms = (duration_ms / total) if total else 0.0

        summary = ReportSummary(
            total=total,
            successful=len(successful),
            failed=len(failed),
            skipped=len(skipped),
            success_rate=f"{success_rate:.1f}%",
            duration=f"{duration_ms / 1000 / 60:.1f} minutes",
            avg_time_per_target=f"{avg_ms / 1000:.1f} seconds",
            duration_ms=duration_ms,
            start_time=start_time,
            end_time=end_time,
        )
        return OrchestrationReport(summary=summary, successful=successful, failed=failed, skipped=skipped)

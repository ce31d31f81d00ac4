"""
Batch scheduler: the entry point of an orchestration run.

Targets are split into consecutive batches of ``concurrency`` targets. A
batch runs concurrently and acts as a barrier: the next batch starts only
after every target of the current one has finished all of its attempts.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from hutwatch.orchestration.reporting import ProgressReporter, ReportBuilder
from hutwatch.orchestration.runner import RetryableTargetRunner, SleepFunc
from hutwatch.orchestration.types import (
    OrchestrationOptions,
    OrchestrationReport,
    ProgressSnapshot,
    ScrapeResults,
    Target,
)
from hutwatch.persistence import ResultPersistence
from hutwatch.providers.registry import ProviderFactory, ProviderRegistry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressSnapshot], None]


class BatchScheduler:
    """
    Scrapes a list of targets in fixed-size concurrent batches.

    Examples:
        >>> scheduler = create_scheduler(OrchestrationOptions(concurrency=3))
        >>> report = await scheduler.scrape_all(targets)
        >>> print(report.summary.success_rate)
        80.0%
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        options: Optional[OrchestrationOptions] = None,
        persistence: Optional[ResultPersistence] = None,
        file_persistence: Optional[ResultPersistence] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.options = options or OrchestrationOptions()
        self.sleep = sleep
        self.results = ScrapeResults()
        self.runner = RetryableTargetRunner(
            provider_factory,
            self.options,
            self.results,
            persistence=persistence,
            file_persistence=file_persistence,
            sleep=sleep,
        )
        self.progress = ProgressReporter(self.results)
        self.report_builder = ReportBuilder(self.results)

    @staticmethod
    def create_batches(targets: Sequence[Target], size: int) -> List[List[Target]]:
        """Split targets into consecutive batches of ``size`` (last one may be short)."""
        return [list(targets[i : i + size]) for i in range(0, len(targets), size)]

    async def scrape_all(
        self,
        targets: Sequence[Target],
        on_progress: Optional[ProgressCallback] = None,
    ) -> OrchestrationReport:
        """
        Scrape every target and build the report.

        Args:
            targets: Targets in the order they should be scheduled
            on_progress: Called with a ProgressSnapshot after each batch

        Returns:
            OrchestrationReport covering every target exactly once
        """
        self.results.reset()
        start_time = datetime.now()
        started = time.perf_counter()

        targets = list(targets)
        batches = self.create_batches(targets, self.options.concurrency)
        total_batches = len(batches)

        logger.info(
            f"Starting scrape of {len(targets)} targets in {total_batches} batches "
            f"(concurrency={self.options.concurrency}, retries={self.options.retries})"
        )

        for index, batch in enumerate(batches, start=1):
            logger.info(f"Processing batch {index}/{total_batches} ({len(batch)} targets)")

            await asyncio.gather(
                *(self._run_target(target, position) for position, target in enumerate(batch))
            )

            snapshot = self.progress.compute_snapshot(index, total_batches, len(targets))
            self.progress.log_progress(snapshot)
            self._notify(on_progress, snapshot)

            if index < total_batches and self.options.delay_between_batches_ms > 0:
                logger.debug(f"Waiting {self.options.delay_between_batches_ms}ms before next batch")
                await self.sleep(self.options.delay_between_batches_ms / 1000)

        duration_ms = (time.perf_counter() - started) * 1000
        report = self.report_builder.build_report(duration_ms, start_time=start_time, end_time=datetime.now())

        logger.info(
            f"Scrape finished: {report.summary.successful}/{report.summary.total} successful "
            f"({report.summary.success_rate}) in {report.summary.duration}"
        )
        return report

    async def _run_target(self, target: Target, position: int) -> None:
        delay_ms = position * self.options.delay_between_targets_ms
        if delay_ms > 0:
            await self.sleep(delay_ms / 1000)
        await self.runner.run_with_retry(target)

    def _notify(self, on_progress: Optional[ProgressCallback], snapshot: ProgressSnapshot) -> None:
        if on_progress is None:
            return
        try:
            on_progress(snapshot)
        except Exception as e:
            logger.warning(f"Progress callback raised {e.__class__.__name__}: {e}")


def create_scheduler(
    options: Optional[OrchestrationOptions] = None,
    registry: Optional[ProviderRegistry] = None,
    persistence: Optional[ResultPersistence] = None,
    file_persistence: Optional[ResultPersistence] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> BatchScheduler:
    """
    Build a scheduler wired to the default registry and persistence.

    Database and file persistence are created from settings only when the
    matching save flag is set and none was passed in.
    """
    from hutwatch.config import settings
    from hutwatch.persistence import DatabasePersistence, JsonFilePersistence
    from hutwatch.providers.registry import provider_registry

    options = options or OrchestrationOptions.from_settings()
    if registry is None:
        registry = provider_registry

    if persistence is None and options.save_to_database:
        from hutwatch.database import get_async_session_factory

        persistence = DatabasePersistence(get_async_session_factory())
    if file_persistence is None and options.save_to_file:
        file_persistence = JsonFilePersistence(settings.results_dir)

    return BatchScheduler(
        registry.create,
        options=options,
        persistence=persistence,
        file_persistence=file_persistence,
        sleep=sleep,
    )



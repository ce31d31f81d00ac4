"""
Retry wrapper around a single target.

``RetryableTargetRunner.run_with_retry`` drives one target through up to
``options.retries`` attempts. Each attempt uses a fresh provider from the
factory: initialize, scrape, and always cleanup. Between failed attempts it
waits ``retry_backoff_ms * attempt`` (linear backoff). The final outcome is
appended to the shared ScrapeResults; nothing is returned and no per-target
error escapes.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from hutwatch.exceptions import ProviderNotFoundError, ScrapeFailedError
from hutwatch.orchestration.types import OrchestrationOptions, ScrapeResults, Target, TargetOutcome
from hutwatch.persistence import ResultPersistence
from hutwatch.providers.base import ScrapeProvider, ScrapeRequest, ScrapeResult
from hutwatch.providers.exceptions import ProviderError, log_provider_error
from hutwatch.providers.registry import ProviderFactory
from hutwatch.utils.retry import linear_backoff_ms

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class RetryableTargetRunner:
    """
    Runs one target with bounded retries and linear backoff.

    Examples:
        >>> runner = RetryableTargetRunner(provider_registry.create, options, results)
        >>> await runner.run_with_retry(target)
        >>> results.successful[0].attempts
        1
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        options: OrchestrationOptions,
        results: ScrapeResults,
        persistence: Optional[ResultPersistence] = None,
        file_persistence: Optional[ResultPersistence] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Args:
            provider_factory: Type tag to fresh provider (or None if unknown)
            options: Orchestration options (retries, backoff, save flags)
            results: Shared accumulator the outcome is appended to
            persistence: Database persistence used when save_to_database is set
            file_persistence: File persistence used when save_to_file is set
            sleep: Coroutine used for backoff waits, in seconds
        """
        self.provider_factory = provider_factory
        self.options = options
        self.results = results
        self.persistence = persistence
        self.file_persistence = file_persistence
        self.sleep = sleep

    async def run_with_retry(self, target: Target, attempt: int = 1) -> None:
        """
        Scrape ``target`` starting at ``attempt`` until success or exhaustion.

        Args:
            target: Target to scrape
            attempt: 1-based number of the first attempt to make. At least one
                attempt is made even when it already exceeds ``options.retries``.
        """
        started = time.perf_counter()
        attempt = max(attempt, 1)

        while True:
            log_extra = {
                "target_id": target.id,
                "provider_type": target.provider_type,
                "attempt": attempt,
                "max_attempts": self.options.retries,
            }
            logger.info(
                f"Scraping {target.name} (attempt {attempt}/{self.options.retries})",
                extra=log_extra,
            )

            try:
                result = await self._attempt(target)
            except Exception as e:
                last_error = str(e) or e.__class__.__name__
                if isinstance(e, ProviderError):
                    log_provider_error(logger, e)

                if attempt < self.options.retries:
                    backoff_ms = linear_backoff_ms(attempt, self.options.retry_backoff_ms)
                    logger.warning(
                        f"Attempt {attempt} failed for {target.name}: {last_error}. "
                        f"Retrying in {backoff_ms / 1000:.1f}s",
                        extra={**log_extra, "backoff_ms": backoff_ms},
                    )
                    await self.sleep(backoff_ms / 1000)
                    attempt += 1
                    continue

                logger.error(
                    f"Failed to scrape {target.name} after {attempt} attempts: {last_error}",
                    extra=log_extra,
                )
                self.results.add(
                    TargetOutcome.failed(
                        target,
                        attempts=attempt,
                        duration_ms=_elapsed_ms(started),
                        error=last_error,
                    )
                )
                return

            persisted = await self._persist(target, result)
            outcome = TargetOutcome.succeeded(
                target,
                attempts=attempt,
                duration_ms=_elapsed_ms(started),
                result=result,
                persisted=persisted,
            )
            self.results.add(outcome)
            logger.info(
                f"Scraped {target.name}: {outcome.sub_resources_scraped} sub-resources, "
                f"{outcome.availability_records} available dates",
                extra={**log_extra, "duration_ms": round(outcome.duration_ms, 1)},
            )
            return

    async def _attempt(self, target: Target) -> ScrapeResult:
        provider: Optional[ScrapeProvider] = self.provider_factory(target.provider_type)
        if provider is None:
            raise ProviderNotFoundError(target.provider_type)

        try:
            await provider.initialize()
            request = ScrapeRequest(
                target_id=target.id,
                target_name=target.name,
                url=target.url,
                date_range=self.options.date_range,
                sub_resources=target.sub_resources,
            )
            result = await provider.scrape(request)
        finally:
            await self._cleanup(provider, target)

        if not result.metadata.success:
            raise ScrapeFailedError(result.metadata.error, provider_type=target.provider_type)
        return result

    async def _cleanup(self, provider: ScrapeProvider, target: Target) -> None:
        try:
            await provider.cleanup()
        except Exception as e:
            logger.warning(
                f"Cleanup of {provider!r} failed for {target.name}: {e}",
                extra={"target_id": target.id},
            )

    async def _persist(self, target: Target, result: ScrapeResult) -> bool:
        """Save a successful result; failures are logged and do not fail the target."""
        sinks = []
        if self.options.save_to_database and self.persistence is not None:
            sinks.append(self.persistence)
        if self.options.save_to_file and self.file_persistence is not None:
            sinks.append(self.file_persistence)

        persisted = bool(sinks)
        for sink in sinks:
            try:
                await sink.save_scrape_result(
                    result,
                    target_name=target.name,
                    url=target.url,
                    provider_type=target.provider_type,
                )
            except Exception as e:
                persisted = False
                logger.error(
                    f"Could not save results for {target.name} via {sink.__class__.__name__}: {e}",
                    extra={"target_id": target.id},
                    exc_info=True,
                )
        return persisted


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000

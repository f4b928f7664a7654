"""
Crawl manager.

Reads the target list, drops targets that are already done, splits the
rest into contiguous chunks and fetches each chunk on its own worker
thread. Workers process their chunk one target at a time and never let a
single failure stop the chunk. Only the first target for each raw document
filename is fetched; later ones are reported as collisions.

Per-target protocol: fetch -> write raw document -> append ledger line.
The ledger line is written last so a crash can never mark an untouched
target as done.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, ContextManager, Protocol

from story_pipeline.config import PipelineConfig, load_target_list
from story_pipeline.exceptions import ConfigurationError, FetchFailure
from story_pipeline.logging_utils import log_summary
from story_pipeline.scraper.dedup import (
    compute_pending,
    derive_filename,
    list_raw_filenames,
    partition,
    split_filename_collisions,
)
from story_pipeline.scraper.fetcher import BrowserSession
from story_pipeline.scraper.ledger import FailureLog, FetchLedger
from story_pipeline.scraper.models import (
    CrawlFailure,
    CrawlOptions,
    CrawlSummary,
    FetchResult,
    TargetStatus,
)
from story_pipeline.storage import write_raw_document

logger = logging.getLogger(__name__)


class FetchSession(Protocol):
    """Anything that can load a URL; BrowserSession in production."""

    def fetch(self, url: str) -> FetchResult: ...


SessionFactory = Callable[[PipelineConfig], ContextManager[FetchSession]]


class CrawlManager:
    """Runs one crawl over a target list."""

    def __init__(
        self,
        config: PipelineConfig,
        session_factory: SessionFactory = BrowserSession,
    ):
        """
        Initialize crawl manager.

        Args:
            config: Pipeline settings
            session_factory: Builds one fetch session per worker
        """
        self.config = config
        self.session_factory = session_factory
        self.ledger = FetchLedger(config.ledger_path)
        self.failure_log = FailureLog(config.error_log_path)

    def crawl(self, options: CrawlOptions) -> CrawlSummary:
        """
        Fetch every pending target.

        Args:
            options: force flag, target list path and worker count

        Returns:
            CrawlSummary with counters for this run

        Raises:
            ConfigurationError: If the target list is unreadable or the
                worker count is invalid; raised before any worker starts
        """
        started = time.monotonic()

        if options.worker_count < 1:
            raise ConfigurationError(
                f"worker_count must be at least 1, got {options.worker_count}"
            )

        targets = load_target_list(options.target_list_path)
        ledger = self.ledger.load()
        existing = list_raw_filenames(self.config.raw_dir)
        pending = compute_pending(targets, ledger, existing, force=options.force)

        summary = CrawlSummary(
            total=len(targets),
            already_done=len(targets) - len(pending),
            force=options.force,
        )

        if options.force:
            logger.warning("Force mode: ignoring ledger and existing raw documents")

        logger.info(
            f"Found {summary.total} total URLs. {summary.already_done} already done/exist. "
            f"{len(pending)} pending."
        )

        pending, collisions = split_filename_collisions(pending)
        for url, owner in collisions:
            message = f"Filename collision: {derive_filename(url)} is already claimed by {owner}"
            logger.warning(f"Skipping {url}: {message}")
            self.failure_log.append(url, message)
            summary.failures.append(CrawlFailure(url=url, error=message))

        if not pending:
            logger.info("All URLs processed, nothing to crawl")
            logger.info(log_summary("crawl", item_count=0, **summary.to_dict()))
            return summary

        chunks = [chunk for chunk in partition(pending, options.worker_count) if chunk]
        logger.info(f"Starting crawl with {len(chunks)} workers")

        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            futures = [
                executor.submit(self._process_chunk, chunk, index)
                for index, chunk in enumerate(chunks, start=1)
            ]
            for future in futures:
                statuses, failures = future.result()
                summary.succeeded += sum(1 for s in statuses if s == TargetStatus.COMPLETED)
                summary.failures.extend(failures)

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            log_summary(
                "crawl",
                success=True,
                duration_ms=duration_ms,
                item_count=summary.succeeded,
                **summary.to_dict(),
            )
        )
        return summary

    def _process_chunk(
        self, urls: list[str], worker: int
    ) -> tuple[list[TargetStatus], list[CrawlFailure]]:
        """Fetch one chunk sequentially with a single session."""
        statuses: list[TargetStatus] = []
        failures: list[CrawlFailure] = []
        remaining = list(urls)

        try:
            with self.session_factory(self.config) as session:
                while remaining:
                    url = remaining.pop(0)
                    logger.info(f"[Worker {worker}] Crawling: {url}")
                    failure = self._process_target(session, url, worker)
                    if failure is None:
                        statuses.append(TargetStatus.COMPLETED)
                    else:
                        failures.append(failure)
                        statuses.append(TargetStatus.FAILED)
                    self._pause()
        except Exception as e:
            # Session could not be opened or closed; unvisited targets wait for the next run
            logger.error(f"[Worker {worker}] Fetch session error: {e}")
            for url in remaining:
                failures.append(self._record_failure(url, f"Session unavailable: {e}", worker))
                statuses.append(TargetStatus.FAILED)

        return statuses, failures

    def _process_target(self, session: FetchSession, url: str, worker: int) -> CrawlFailure | None:
        try:
            result = session.fetch(url)
            filename = derive_filename(url)
            write_raw_document(self.config.raw_dir, filename, result.content)
            self.ledger.append(url)
        except FetchFailure as e:
            return self._record_failure(url, e.message, worker)
        except Exception as e:
            return self._record_failure(url, str(e), worker)

        logger.info(f"[Worker {worker}] Success: {filename}")
        return None

    def _record_failure(self, url: str, message: str, worker: int) -> CrawlFailure:
        logger.error(f"[Worker {worker}] Error: {url} | {message}")
        self.failure_log.append(url, message)
        return CrawlFailure(url=url, error=message, worker=worker)

    def _pause(self) -> None:
        if self.config.request_delay_ms > 0:
            time.sleep(self.config.request_delay_ms / 1000.0)


def crawl(
    options: CrawlOptions,
    config: PipelineConfig | None = None,
    session_factory: SessionFactory = BrowserSession,
) -> CrawlSummary:
    """
    Run one crawl.

    Args:
        options: force flag, target list path and worker count
        config: Pipeline settings (defaults from the environment)
        session_factory: Builds one fetch session per worker

    Returns:
        CrawlSummary for this run
    """
    config = config or PipelineConfig.from_env()
    return CrawlManager(config, session_factory=session_factory).crawl(options)

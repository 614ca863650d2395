"""
refresh.py — Runs one full refresh: fetch every category, merge with the
published jobs, dedupe, expire, re-annotate, publish.

Both the scheduler and the manual HTTP trigger go through `trigger_refresh()`.
Only one run can be in flight; a second trigger is rejected rather than queued.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from config import CATEGORY_PLAN, CATEGORY_DELAY_SECONDS, FETCH_WORKERS, MAX_JOB_AGE, NEW_JOB_THRESHOLD
from deduplication import deduplicate_jobs, merge_jobs
from errors import PipelineError, RefreshInProgressError
from freshness import annotate_jobs, remove_expired_jobs, sort_newest_first
from models import CategoryQuery, FetchLogEntry, Job, RefreshResult, utc_now
from monitoring import get_logger, log_pipeline_step, log_run_summary
from normalizer import normalize_job
from pacing import Pacer
from scrapers.base import BaseAPIClient
from snapshot_store import SnapshotStore

logger = get_logger("refresh")


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PUBLISHING = "publishing"


class RefreshOrchestrator:
    def __init__(
        self,
        store: SnapshotStore,
        fetcher: BaseAPIClient,
        plan: tuple[CategoryQuery, ...] = CATEGORY_PLAN,
        pacer: Optional[Pacer] = None,
        fetch_workers: int = FETCH_WORKERS,
        max_age: timedelta = MAX_JOB_AGE,
        new_threshold: timedelta = NEW_JOB_THRESHOLD,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.fetcher = fetcher
        self.plan = plan
        self.pacer = pacer or Pacer(CATEGORY_DELAY_SECONDS)
        self.fetch_workers = max(1, fetch_workers)
        self.max_age = max_age
        self.new_threshold = new_threshold
        self._clock = clock

        self._run_lock = threading.Lock()
        self._state = RefreshState.IDLE
        self._run_errors: list[str] = []

        self.fetcher.on_fetch = self._record_fetch

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def trigger_refresh(self) -> RefreshResult:
        """
        Run one refresh to completion and publish it.
        Raises RefreshInProgressError if a run is already active, and
        PipelineError if any phase of the run fails (nothing is published).
        """
        if not self._run_lock.acquire(blocking=False):
            raise RefreshInProgressError("A refresh is already in progress")
        try:
            return self._run()
        finally:
            self._state = RefreshState.IDLE
            self._run_lock.release()

    def run_scheduled(self):
        """Scheduler entry point: failures are logged, never raised."""
        logger.info("Scheduled refresh triggered")
        try:
            self.trigger_refresh()
        except RefreshInProgressError:
            logger.warning("Scheduled refresh skipped — previous refresh still running")
        except PipelineError as e:
            logger.error(f"Scheduled refresh failed: {e}")

    # --- Phases ---

    def _run(self) -> RefreshResult:
        run_start = time.time()
        self._run_errors = []

        logger.info("=" * 60)
        logger.info(f"REFRESH — Starting run over {len(self.plan)} categories")
        logger.info("=" * 60)

        try:
            self._state = RefreshState.FETCHING
            fresh, fetched = self._fetch_all()
            log_pipeline_step(logger, "Fetch", fetched, len(fresh))

            self._state = RefreshState.MERGING
            now = self._clock()
            previous = self.store.snapshot.jobs

            merged = merge_jobs(previous, fresh)
            unique = deduplicate_jobs(merged)
            log_pipeline_step(logger, "Deduplication", len(merged), len(unique))

            valid = remove_expired_jobs(unique, now, self.max_age)
            log_pipeline_step(logger, "Expiry", len(unique), len(valid))

            final = sort_newest_first(annotate_jobs(valid, now, self.new_threshold))

            self._state = RefreshState.PUBLISHING
            snapshot = self.store.publish(final, fetched)
        except Exception as e:
            logger.exception(f"Refresh aborted, keeping previous snapshot: {e}")
            raise PipelineError(f"Refresh aborted: {type(e).__name__}: {e}") from e

        duration = time.time() - run_start
        errors = list(self._run_errors)
        log_run_summary(
            logger,
            fetched=fetched,
            merged=len(merged),
            published=snapshot.stats.total,
            new=snapshot.stats.new,
            remote=snapshot.stats.remote,
            errors=errors,
            duration=duration,
        )

        return RefreshResult(
            status="success",
            fetched=fetched,
            stats=snapshot.stats,
            last_updated=snapshot.last_updated,
            errors=errors,
            duration_seconds=duration,
        )

    def _fetch_all(self) -> tuple[list[Job], int]:
        """Fetch and normalize every category, in plan order."""
        self.pacer.reset()

        if self.fetch_workers == 1:
            batches = [self._fetch_category(category) for category in self.plan]
        else:
            with ThreadPoolExecutor(max_workers=self.fetch_workers) as executor:
                batches = list(executor.map(self._fetch_category, self.plan))

        jobs: list[Job] = []
        fetched = 0
        for batch, raw_count in batches:
            jobs.extend(batch)
            fetched += raw_count
        return jobs, fetched

    def _fetch_category(self, category: CategoryQuery) -> tuple[list[Job], int]:
        self.pacer.wait()
        try:
            raw_jobs = self.fetcher.fetch(category)
        except Exception as e:
            # Fetchers should swallow their own errors; record it anyway
            logger.error(f"[{category.name}] Fetcher raised {type(e).__name__}: {e}")
            self._record_fetch(FetchLogEntry(
                category=category.name,
                timestamp=self._clock(),
                jobs_found=0,
                status="error",
                error=str(e),
            ))
            return [], 0

        now = self._clock()
        jobs = []
        for raw in raw_jobs:
            try:
                jobs.append(normalize_job(raw, category.name, now))
            except Exception as e:
                logger.warning(f"[{category.name}] Skipping malformed record: {type(e).__name__}: {e}")
        return jobs, len(raw_jobs)

    def _record_fetch(self, entry: FetchLogEntry):
        self.store.record_fetch(entry)
        if entry.status == "error":
            self._run_errors.append(f"{entry.category}: {entry.error}")

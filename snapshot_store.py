"""
snapshot_store.py — Holds the one published Snapshot.

Writers build a new Snapshot and assign it to `_snapshot` under a lock; the
assignment is the only mutation. Readers grab the reference once and work on
that object, so they see either the old snapshot or the new one, never both,
and never wait on a writer.
"""

import math
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional

from config import FETCH_LOG_MAX_ENTRIES
from models import FetchLogEntry, Job, Page, Snapshot, Stats, utc_now
from stats import calculate_stats, category_counts


class SnapshotStore:
    def __init__(
        self,
        max_log_entries: int = FETCH_LOG_MAX_ENTRIES,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.max_log_entries = max_log_entries
        self._clock = clock
        self._write_lock = threading.Lock()
        self._snapshot = Snapshot(server_start_time=clock())

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    # --- Writes ---

    def publish(self, jobs: Iterable[Job], total_fetched: int) -> Snapshot:
        """Swap in a snapshot for a completed refresh. Keeps the fetch log and start time."""
        jobs = tuple(jobs)
        stats = calculate_stats(jobs)
        with self._write_lock:
            new_snapshot = replace(
                self._snapshot,
                jobs=jobs,
                last_updated=self._clock(),
                total_fetched=total_fetched,
                stats=stats,
            )
            self._snapshot = new_snapshot
        return new_snapshot

    def record_fetch(self, entry: FetchLogEntry):
        """Append to the fetch log, dropping the oldest entries past the cap."""
        with self._write_lock:
            log = (*self._snapshot.fetch_log, entry)[-self.max_log_entries:]
            self._snapshot = replace(self._snapshot, fetch_log=log)

    # --- Reads ---

    def current_stats(self) -> Stats:
        return self._snapshot.stats

    def fetch_log(self, limit: Optional[int] = None) -> list[FetchLogEntry]:
        log = self._snapshot.fetch_log
        if limit is None:
            return list(log)
        if limit <= 0:
            return []
        return list(log[-limit:])

    def category_counts(self, categories: Iterable[str]) -> dict[str, int]:
        return category_counts(self._snapshot.jobs, categories)

    def query(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Page:
        """
        Filter and paginate the published jobs.

        `category` is an exact label match ("all" means no filter). `search` is a
        case-insensitive substring matched against title, company, description
        and location; any one field matching is enough. Pages are 1-based.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        snapshot = self._snapshot
        jobs: Iterable[Job] = snapshot.jobs

        if category and category != "all":
            jobs = [job for job in jobs if job.category == category]

        if search:
            needle = search.lower()
            jobs = [job for job in jobs if _matches(job, needle)]

        jobs = list(jobs)
        total = len(jobs)
        start = (page - 1) * limit
        end = start + limit

        return Page(
            jobs=jobs[start:end],
            current_page=page,
            total_jobs=total,
            total_pages=math.ceil(total / limit),
            has_next=end < total,
            has_prev=page > 1,
            stats=snapshot.stats,
            last_updated=snapshot.last_updated,
        )


def _matches(job: Job, needle: str) -> bool:
    return (
        needle in job.title.lower()
        or needle in job.company.lower()
        or needle in job.description.lower()
        or needle in job.location.lower()
    )

"""
models.py — Data models for the cybersecurity jobs aggregator.

Published values are frozen: a refresh builds new objects and swaps them in,
it never edits a job or snapshot that readers may be holding.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with a trailing Z, or None."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CategoryQuery:
    """One entry of the search plan: OR-joined terms scoped to a region."""
    name: str
    terms: tuple[str, ...]
    region: str
    remote: bool = False

    @property
    def search_text(self) -> str:
        return " OR ".join(self.terms)


@dataclass(frozen=True)
class Job:
    """Canonical job record built from one upstream result."""
    id: str
    title: str
    company: str
    description: str
    location: str
    salary: str
    url: str
    created: Optional[datetime]
    category: str
    is_new: bool
    remote: bool
    requirements: str
    source: str
    fetched_at: datetime
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.title.lower(), self.company.lower())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "location": self.location,
            "salary": self.salary,
            "url": self.url,
            "created": to_iso(self.created),
            "category": self.category,
            "isNew": self.is_new,
            "remote": self.remote,
            "requirements": self.requirements,
            "source": self.source,
            "fetchedAt": to_iso(self.fetched_at),
        }


@dataclass(frozen=True)
class Stats:
    total: int = 0
    new: int = 0
    remote: int = 0
    companies: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "new": self.new,
            "remote": self.remote,
            "companies": self.companies,
        }


@dataclass(frozen=True)
class FetchLogEntry:
    """Outcome of one category fetch."""
    category: str
    timestamp: datetime
    jobs_found: int
    status: str  # "success" or "error"
    error: Optional[str] = None

    def to_dict(self) -> dict:
        entry = {
            "category": self.category,
            "timestamp": to_iso(self.timestamp),
            "jobsFound": self.jobs_found,
            "status": self.status,
        }
        if self.error is not None:
            entry["error"] = self.error
        return entry


@dataclass(frozen=True)
class Snapshot:
    """Everything readers see, published as one unit."""
    jobs: tuple[Job, ...] = ()
    last_updated: Optional[datetime] = None
    total_fetched: int = 0
    stats: Stats = field(default_factory=Stats)
    fetch_log: tuple[FetchLogEntry, ...] = ()
    server_start_time: datetime = field(default_factory=utc_now)


@dataclass
class Page:
    """One page of query results plus pagination metadata."""
    jobs: list[Job]
    current_page: int
    total_jobs: int
    total_pages: int
    has_next: bool
    has_prev: bool
    stats: Stats
    last_updated: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "jobs": [job.to_dict() for job in self.jobs],
            "pagination": {
                "currentPage": self.current_page,
                "totalJobs": self.total_jobs,
                "totalPages": self.total_pages,
                "hasNext": self.has_next,
                "hasPrev": self.has_prev,
            },
            "stats": self.stats.to_dict(),
            "lastUpdated": to_iso(self.last_updated),
        }


@dataclass
class RefreshResult:
    """Summary of a completed refresh run."""
    status: str
    fetched: int = 0
    stats: Stats = field(default_factory=Stats)
    last_updated: Optional[datetime] = None
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

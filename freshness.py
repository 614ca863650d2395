"""
freshness.py — Age-based stages of the refresh pipeline.

Expiry drops anything past the retention window. Annotation re-derives the
time- and text-dependent flags against the refresh's own clock, so a job that
was new six hours ago stops being new without being re-fetched.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import MAX_JOB_AGE, NEW_JOB_THRESHOLD
from models import Job, utc_now
from monitoring import get_logger
from normalizer import is_job_expired, is_job_new, is_remote_job

logger = get_logger("freshness")

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def remove_expired_jobs(
    jobs: list[Job],
    now: Optional[datetime] = None,
    max_age: timedelta = MAX_JOB_AGE,
) -> list[Job]:
    now = now or utc_now()
    valid = [job for job in jobs if not is_job_expired(job.created, now, max_age)]

    removed = len(jobs) - len(valid)
    if removed > 0:
        logger.info(f"Removed {removed} expired jobs (older than {max_age.days} days)")

    return valid


def annotate_jobs(
    jobs: list[Job],
    now: Optional[datetime] = None,
    threshold: timedelta = NEW_JOB_THRESHOLD,
) -> list[Job]:
    """Recompute is_new and remote. Returns new Job values; inputs are untouched."""
    now = now or utc_now()
    annotated = []
    for job in jobs:
        is_new = is_job_new(job.created, now, threshold)
        remote = is_remote_job(job.title, job.description, job.location)
        if is_new != job.is_new or remote != job.remote:
            job = replace(job, is_new=is_new, remote=remote)
        annotated.append(job)

    new_count = sum(1 for job in annotated if job.is_new)
    logger.info(f"Marked {new_count} jobs as new")

    return annotated


def sort_newest_first(jobs: list[Job]) -> list[Job]:
    return sorted(jobs, key=lambda job: job.created or _OLDEST, reverse=True)

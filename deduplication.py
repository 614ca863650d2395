"""
deduplication.py — Merges fresh jobs into the published set and collapses
duplicates across overlapping category queries.

Two records are the same posting when title and company match case-insensitively.
The category they were fetched under is ignored, so a posting found by two
queries keeps the label of whichever copy was created last.
"""

from typing import Iterable

from models import Job
from monitoring import get_logger

logger = get_logger("deduplication")


def merge_jobs(previous: Iterable[Job], fresh: Iterable[Job]) -> list[Job]:
    """Previously published jobs first, then this run's jobs."""
    return [*previous, *fresh]


def deduplicate_jobs(jobs: list[Job]) -> list[Job]:
    """
    Keep one job per (title, company), preferring the latest `created`.
    A newer duplicate takes the slot of the one it replaces, so ordering is
    otherwise unchanged. Ties keep the record already retained.
    """
    if not jobs:
        return []

    unique: list[Job] = []
    slot_by_key: dict[tuple[str, str], int] = {}

    for job in jobs:
        key = job.dedup_key
        idx = slot_by_key.get(key)
        if idx is None:
            slot_by_key[key] = len(unique)
            unique.append(job)
            continue

        if _is_newer(job, unique[idx]):
            unique[idx] = job

    removed = len(jobs) - len(unique)
    if removed > 0:
        logger.info(f"Deduplication: {len(jobs)} → {len(unique)} ({removed} duplicates removed)")

    return unique


def _is_newer(candidate: Job, retained: Job) -> bool:
    if candidate.created is None:
        return False
    if retained.created is None:
        return True
    return candidate.created > retained.created

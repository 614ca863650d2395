"""
stats.py — Aggregate counters over a job list. Always recomputed from scratch.
"""

from typing import Iterable

from models import Job, Stats


def calculate_stats(jobs: Iterable[Job]) -> Stats:
    jobs = list(jobs)
    return Stats(
        total=len(jobs),
        new=sum(1 for job in jobs if job.is_new),
        remote=sum(1 for job in jobs if job.remote),
        companies=len({job.company for job in jobs}),
    )


def category_counts(jobs: Iterable[Job], categories: Iterable[str]) -> dict[str, int]:
    """Count jobs per category; every listed category appears, even at zero."""
    counts = {name: 0 for name in categories}
    for job in jobs:
        if job.category in counts:
            counts[job.category] += 1
    return counts

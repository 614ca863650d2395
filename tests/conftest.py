"""Shared fixtures: fixed clock, raw Adzuna records, Job builders, a fake fetcher."""

from datetime import datetime, timedelta, timezone

import pytest

from models import CategoryQuery, FetchLogEntry, Job
from normalizer import normalize_job
from pacing import Pacer
from scrapers.base import BaseAPIClient

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def raw_job(
    title="Security Engineer",
    company="Acme Corp",
    location="New York, NY",
    description="Protect our systems.",
    created=None,
    age=timedelta(hours=1),
    **extra,
) -> dict:
    """A raw record shaped like an Adzuna search result."""
    record = {
        "title": title,
        "company": {"display_name": company} if company is not None else None,
        "location": {"display_name": location} if location is not None else None,
        "description": description,
        "created": created if created is not None else iso(NOW - age),
        "redirect_url": "https://www.adzuna.com/details/1",
    }
    record.update(extra)
    return record


def make_job(now=NOW, category="general", **kwargs) -> Job:
    return normalize_job(raw_job(**kwargs), category, now)


class FakeFetcher(BaseAPIClient):
    """Returns canned results per category name; an Exception value is raised."""

    def __init__(self, results=None):
        super().__init__(name="fake")
        self.results = results or {}
        self.calls = []

    def fetch(self, category: CategoryQuery) -> list[dict]:
        self.calls.append(category.name)
        value = self.results.get(category.name, [])
        if isinstance(value, Exception):
            raise value
        if callable(value):
            value = value()
        if self.on_fetch:
            self.on_fetch(FetchLogEntry(category.name, NOW, len(value), "success"))
        return list(value)


@pytest.fixture
def plan():
    return (
        CategoryQuery("alpha", ("cybersecurity", "infosec"), "us"),
        CategoryQuery("beta", ("IAM", "Okta"), "us"),
        CategoryQuery("gamma", ("security analyst",), "gb"),
    )


@pytest.fixture
def no_pacing():
    return Pacer(0)


class Clock:
    """Settable clock for components that take a `clock` callable."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta: timedelta):
        self.now = self.now + delta


@pytest.fixture
def clock():
    return Clock()

"""
normalizer.py — Turns one raw Adzuna result into a canonical Job.

Everything here is deterministic apart from the `now` used for freshness, which
callers pass in. Keyword rules are plain substring checks on lowercased text.
"""

import hashlib
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from bs4 import BeautifulSoup

from config import MAX_JOB_AGE, NEW_JOB_THRESHOLD
from models import Job, utc_now

SOURCE_NAME = "Adzuna API"

UNTITLED = "Untitled Position"
NO_COMPANY = "Company Not Listed"
NO_LOCATION = "Location not specified"
NO_URL = "#"

CERTIFICATIONS = [
    "CISSP", "CISM", "CISA", "Security+", "GSEC", "CEH",
    "GCIH", "GCFA", "GPEN", "OSCP", "CCSP", "CRISC",
]
DEFAULT_REQUIREMENTS = "Security experience required"
EMPTY_DESCRIPTION_REQUIREMENTS = "See job description"

REMOTE_KEYWORDS = ["remote", "work from home", "wfh", "telecommute", "distributed", "anywhere"]

# Evaluated top to bottom, first hit wins. Identity checks must stay ahead of
# compliance checks, and so on down the list.
CATEGORY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("iam", "identity"), "iam"),
    (("incident", "soc"), "incident-response"),
    (("grc", "compliance"), "grc"),
    (("vulnerability", "penetration"), "vulnerability"),
    (("ciso", "director", "manager"), "leadership"),
    (("cloud", "devsecops", "ai security"), "emerging"),
    (("awareness", "training"), "awareness"),
    (("third party", "vendor risk"), "third-party"),
    (("hipaa", "healthcare"), "hipaa"),
    (("pci",), "pci"),
]

REMOTE_REGION_RULES: list[tuple[str, str]] = [
    ("uk", "uk-remote"),
    ("au", "au-remote"),
]
DEFAULT_REMOTE_CATEGORY = "us-remote"
FALLBACK_CATEGORY = "general"

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: Any) -> str:
    """Strip HTML markup (Adzuna highlights matched terms) and collapse whitespace."""
    if value is None:
        return ""
    text = str(value)
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "html.parser").get_text()
    return _WHITESPACE.sub(" ", text).strip()


def parse_created(value: Any) -> Optional[datetime]:
    """Parse the upstream `created` field into an aware UTC datetime."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def generate_job_id(title: str, company: str, created: Optional[str]) -> str:
    base = f"{title}-{company}-{created or ''}".lower()
    return hashlib.md5(base.encode("utf-8")).hexdigest()


def _amount(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(amount):
        return None
    # Zero means "not disclosed" upstream
    return amount if amount > 0 else None


def _dollars(amount: float) -> str:
    return f"${amount:,.0f}"


def format_salary(salary_min: Any, salary_max: Any) -> str:
    """
    Build the salary display string.
    (90000, 120000) -> "$90,000 - $120,000"; (90000, None) -> "From $90,000".
    """
    low = _amount(salary_min)
    high = _amount(salary_max)
    if low is not None and high is not None:
        return f"{_dollars(low)} - {_dollars(high)}"
    if low is not None:
        return f"From {_dollars(low)}"
    if high is not None:
        return f"Up to {_dollars(high)}"
    return "Salary not disclosed"


def extract_requirements(description: str) -> str:
    """List the certifications mentioned in the description."""
    if not description:
        return EMPTY_DESCRIPTION_REQUIREMENTS
    text = description.lower()
    found = [cert for cert in CERTIFICATIONS if cert.lower() in text]
    return ", ".join(found) if found else DEFAULT_REQUIREMENTS


def categorize_job(title: str, description: str, location: str) -> str:
    """Derive the category label from the posting text."""
    text = f"{title} {description} {location}".lower()
    for keywords, label in CATEGORY_RULES:
        if any(kw in text for kw in keywords):
            return label

    loc = (location or "").lower()
    if "remote" in loc:
        for marker, label in REMOTE_REGION_RULES:
            if marker in loc:
                return label
        return DEFAULT_REMOTE_CATEGORY

    return FALLBACK_CATEGORY


def is_remote_job(title: str, description: str, location: str) -> bool:
    text = f"{title} {description} {location}".lower()
    return any(keyword in text for keyword in REMOTE_KEYWORDS)


def is_job_new(
    created: Optional[datetime],
    now: Optional[datetime] = None,
    threshold: timedelta = NEW_JOB_THRESHOLD,
) -> bool:
    if created is None:
        return False
    now = now or utc_now()
    return (now - created) < threshold


def is_job_expired(
    created: Optional[datetime],
    now: Optional[datetime] = None,
    max_age: timedelta = MAX_JOB_AGE,
) -> bool:
    """Jobs without a creation time count as expired."""
    if created is None:
        return True
    now = now or utc_now()
    return (now - created) > max_age


def _display_name(raw: dict, key: str) -> str:
    nested = raw.get(key)
    if isinstance(nested, dict):
        return clean_text(nested.get("display_name"))
    return ""


def normalize_job(raw: dict, category: str, now: Optional[datetime] = None) -> Job:
    """
    Map one upstream result to a Job.

    `category` is the plan entry the record was fetched under. It is kept for
    logging only; the stored label comes from the posting text so the same
    posting gets the same label whichever query found it.
    """
    now = now or utc_now()

    title = clean_text(raw.get("title")) or UNTITLED
    company = _display_name(raw, "company") or NO_COMPANY
    description = clean_text(raw.get("description"))
    location = _display_name(raw, "location") or NO_LOCATION
    url = raw.get("redirect_url") or raw.get("url") or NO_URL

    raw_created = raw.get("created") if isinstance(raw.get("created"), str) else None
    created = parse_created(raw_created)

    # Rules see the upstream location, not the placeholder
    upstream_location = _display_name(raw, "location")

    return Job(
        id=generate_job_id(title, company, raw_created),
        title=title,
        company=company,
        description=description,
        location=location,
        salary=format_salary(raw.get("salary_min"), raw.get("salary_max")),
        url=str(url),
        created=created,
        category=categorize_job(title, description, upstream_location),
        is_new=is_job_new(created, now),
        remote=is_remote_job(title, description, upstream_location),
        requirements=extract_requirements(description),
        source=SOURCE_NAME,
        fetched_at=now,
        salary_min=_amount(raw.get("salary_min")),
        salary_max=_amount(raw.get("salary_max")),
    )

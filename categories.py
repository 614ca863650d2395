"""
categories.py — Builds and validates the category search plan from settings.
"""

import re
from typing import Any

from errors import ConfigurationError
from models import CategoryQuery

REGION_PATTERN = re.compile(r"^[a-z]{2}$")


def build_category_plan(raw: Any) -> tuple[CategoryQuery, ...]:
    """
    Turn the `categories` mapping from settings.yaml into CategoryQuery entries.
    Order follows the file. Raises ConfigurationError on any malformed entry.
    """
    if not isinstance(raw, dict) or not raw:
        raise ConfigurationError("categories must be a non-empty mapping")

    plan = []
    for name, entry in raw.items():
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"Invalid category name: {name!r}")
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Category '{name}' must be a mapping")

        terms = entry.get("terms")
        if not isinstance(terms, list) or not terms:
            raise ConfigurationError(f"Category '{name}' needs a non-empty list of terms")
        if not all(isinstance(t, str) and t.strip() for t in terms):
            raise ConfigurationError(f"Category '{name}' has an empty or non-string term")

        region = str(entry.get("location", "")).strip().lower()
        if not REGION_PATTERN.match(region):
            raise ConfigurationError(f"Category '{name}' has invalid region code: {region!r}")

        remote = entry.get("remote", False)
        if not isinstance(remote, bool):
            raise ConfigurationError(f"Category '{name}': remote must be true or false")

        plan.append(CategoryQuery(
            name=name.strip(),
            terms=tuple(t.strip() for t in terms),
            region=region,
            remote=remote,
        ))

    return tuple(plan)


def category_names(plan: tuple[CategoryQuery, ...]) -> list[str]:
    return [c.name for c in plan]

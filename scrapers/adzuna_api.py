"""
adzuna_api.py — Adzuna job search, one query per plan category.
Search terms are OR-joined and results are sorted newest first upstream.
"""

from datetime import datetime
from typing import Callable, Optional

import httpx

from config import (
    ADZUNA_APP_ID,
    ADZUNA_APP_KEY,
    ADZUNA_BASE_URL,
    MAX_JOB_AGE_DAYS,
    MAX_PAGES,
    REQUEST_TIMEOUT,
    RESULTS_PER_PAGE,
)
from errors import UpstreamFetchError
from models import CategoryQuery, FetchLogEntry, utc_now
from monitoring import get_logger, log_fetch_failure, log_fetch_success
from scrapers.base import BaseAPIClient

logger = get_logger("scrapers.adzuna_api")


class AdzunaClient(BaseAPIClient):
    """Adzuna search API client with per-category failure isolation."""

    def __init__(
        self,
        app_id: str = ADZUNA_APP_ID,
        app_key: str = ADZUNA_APP_KEY,
        base_url: str = ADZUNA_BASE_URL,
        results_per_page: int = RESULTS_PER_PAGE,
        max_days_old: int = MAX_JOB_AGE_DAYS,
        max_pages: int = MAX_PAGES,
        timeout: float = REQUEST_TIMEOUT,
        on_fetch: Optional[Callable[[FetchLogEntry], None]] = None,
        clock: Callable[[], datetime] = utc_now,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(
            name="Adzuna",
            timeout=timeout,
            max_pages=max_pages,
            on_fetch=on_fetch,
            transport=transport,
        )
        self.app_id = app_id
        self.app_key = app_key
        self.base_url = base_url.rstrip("/")
        self.results_per_page = results_per_page
        self.max_days_old = max_days_old
        self._clock = clock

    def fetch(self, category: CategoryQuery) -> list[dict]:
        """
        Fetch raw results for one category.
        Always records exactly one FetchLogEntry and never raises.
        """
        if not (self.app_id and self.app_key):
            logger.warning(f"[{category.name}] Adzuna credentials not set — request will likely be rejected")

        try:
            results = self._search(category)
        except UpstreamFetchError as e:
            log_fetch_failure(logger, category.name, e)
            self._record(category.name, 0, "error", e.message)
            return []

        log_fetch_success(logger, category.name, len(results))
        self._record(category.name, len(results), "success")
        return results

    def build_params(self, category: CategoryQuery, page: int = 1) -> dict:
        params = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "results_per_page": self.results_per_page,
            "what": category.search_text,
            "where": category.region,
            "page": page,
            "sort_by": "date",
            "max_days_old": self.max_days_old,
        }
        if category.remote:
            params["part_time"] = "0"
            params["permanent"] = "1"
        return params

    def search_url(self, category: CategoryQuery, page: int = 1) -> str:
        return f"{self.base_url}/{category.region}/search/{page}"

    def _search(self, category: CategoryQuery) -> list[dict]:
        """Walk result pages until a short page or max_pages."""
        results: list[dict] = []
        with self._client() as client:
            for page in range(1, max(self.max_pages, 1) + 1):
                batch = self._get_page(client, category, page)
                results.extend(batch)
                if len(batch) < self.results_per_page:
                    break
        return results

    def _get_page(self, client: httpx.Client, category: CategoryQuery, page: int) -> list[dict]:
        try:
            response = client.get(self.search_url(category, page), params=self.build_params(category, page))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamFetchError(
                category.name, f"HTTP {e.response.status_code} from Adzuna"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(category.name, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UpstreamFetchError(category.name, f"Malformed JSON: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamFetchError(category.name, "Unexpected payload: not a JSON object")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise UpstreamFetchError(category.name, "Unexpected payload: 'results' is not a list")

        return [r for r in results if isinstance(r, dict)]

    def _record(self, category: str, count: int, status: str, error: Optional[str] = None):
        if self.on_fetch is None:
            return
        self.on_fetch(FetchLogEntry(
            category=category,
            timestamp=self._clock(),
            jobs_found=count,
            status=status,
            error=error,
        ))

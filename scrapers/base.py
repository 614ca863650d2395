"""
base.py — Base class for job-search API clients.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import httpx

from models import CategoryQuery, FetchLogEntry

USER_AGENT = "cyber-jobs-aggregator/1.0"


class BaseAPIClient(ABC):
    """
    One upstream search API. Subclasses implement `fetch(category)` and must
    never raise from it: a failed category is an empty list.

    Every fetch reports one FetchLogEntry through `on_fetch`; the refresh
    orchestrator attaches itself there.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 30.0,
        max_pages: int = 1,
        on_fetch: Optional[Callable[[FetchLogEntry], None]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.name = name
        self.timeout = timeout
        self.max_pages = max_pages
        self.on_fetch = on_fetch
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            transport=self._transport,
        )

    @abstractmethod
    def fetch(self, category: CategoryQuery) -> list[dict]:
        pass

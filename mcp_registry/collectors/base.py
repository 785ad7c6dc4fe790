"""
Base collector class for package registries.

All registry-specific collectors inherit from BaseCollector and implement
collect(), yielding RawRecord observations.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from itertools import islice
from typing import Any, Callable

import httpx
from loguru import logger
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_chain, wait_fixed

from mcp_registry.config import DATA_SOURCES, settings
from mcp_registry.models import Origin, RateLimitEvent, RawRecord, utcnow
from mcp_registry.utils.http import HTTPError, RateLimitError, fetch_with_retry

# Waits between attempts after a rate limit (seconds)
RATE_LIMIT_BACKOFF = (60, 120, 300)


@dataclass
class CollectorOptions:
    """Per-run collection limits."""

    max_servers: int | None = None
    min_stars: int | None = None
    include_readme: bool = True


class BaseCollector(ABC):
    """
    Abstract base class for registry collectors.

    Subclasses must implement:
    - collect(): Yield raw records for packages found in the registry

    Requests go through get()/get_json(), which retry rate-limited calls
    on the RATE_LIMIT_BACKOFF schedule and record a RateLimitEvent for
    each wait.
    """

    # Class attributes to be set by subclasses
    source: Origin = None

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the collector.

        Args:
            http_client: Optional shared HTTP client
            sleep: Sleep function used between rate-limit retries
        """
        if self.source is None:
            raise ValueError("source must be set in subclass")

        self.source_info = DATA_SOURCES.get(self.source.value, {})
        self.source_name = self.source_info.get("name", self.source.value)
        self.api_url = self.source_info.get("api_url")

        self._http_client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep
        self.rate_limit_events: list[RateLimitEvent] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    @property
    def http_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=settings.collectors.http_timeout,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._http_client

    def get_headers(self) -> dict[str, str]:
        """Extra headers for every request. Subclasses can override."""
        return {}

    # =========================================================================
    # Requests
    # =========================================================================

    def get(self, url: str, params: dict | None = None, headers: dict | None = None) -> httpx.Response:
        """
        GET a URL, waiting out rate limits.

        Raises:
            RateLimitError: When still rate limited after every backoff step
            HTTPError: For other HTTP errors
        """
        retrying = Retrying(
            stop=stop_after_attempt(len(RATE_LIMIT_BACKOFF) + 1),
            wait=wait_chain(*(wait_fixed(delay) for delay in RATE_LIMIT_BACKOFF)),
            retry=retry_if_exception_type(RateLimitError),
            before_sleep=self._record_rate_limit,
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(
            fetch_with_retry,
            url,
            headers={**self.get_headers(), **(headers or {})},
            params=params,
            client=self.http_client,
        )

    def get_json(self, url: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return self.get(url, params=params, headers=headers).json()

    def _record_rate_limit(self, retry_state) -> None:
        delay = int(retry_state.next_action.sleep)
        max_attempts = len(RATE_LIMIT_BACKOFF) + 1
        event = RateLimitEvent(
            source=self.source.value,
            timestamp=utcnow().isoformat(),
            message=(
                f"{self.source_name} rate limited. Waiting {delay}s before retry "
                f"(attempt {retry_state.attempt_number}/{max_attempts})"
            ),
            retry_after=delay,
        )
        self.rate_limit_events.append(event)
        logger.warning(event.message)

    # =========================================================================
    # Collection
    # =========================================================================

    @abstractmethod
    def collect(self, options: CollectorOptions) -> Iterator[RawRecord]:
        """
        Discover packages in the registry.

        Args:
            options: Collection limits

        Yields:
            RawRecord objects, unique within this collector
        """
        pass

    def run(self, options: CollectorOptions) -> list[RawRecord]:
        """Collect up to ``options.max_servers`` records."""
        logger.info(f"Collecting from {self.source_name}...")
        records = list(islice(self.collect(options), options.max_servers))
        logger.info(f"{self.source_name}: Found {len(records)} MCP servers")
        return records


def is_not_found(error: HTTPError) -> bool:
    return error.status_code == 404

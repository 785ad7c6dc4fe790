"""
Registry collectors for MCP server packages.

Each collector queries one registry and yields RawRecord objects.
collect_all() runs the selected collectors concurrently and joins their
output in SOURCE_ORDER, so first-seen merge rules are reproducible.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import httpx
from loguru import logger

from mcp_registry.collectors.base import BaseCollector, CollectorOptions, RATE_LIMIT_BACKOFF
from mcp_registry.collectors.github import GitHubCollector
from mcp_registry.collectors.npm import NpmCollector
from mcp_registry.collectors.pypi import PyPICollector
from mcp_registry.config import SOURCE_ORDER
from mcp_registry.models import RateLimitEvent, RawRecord

# Origin tag -> collector class
COLLECTORS: dict[str, type[BaseCollector]] = {
    "github": GitHubCollector,
    "npm": NpmCollector,
    "pypi": PyPICollector,
}


@dataclass
class CollectionResult:
    """Combined output of every collector in a run."""

    records: list[RawRecord] = field(default_factory=list)
    by_source: dict[str, int] = field(default_factory=dict)
    rate_limit_events: list[RateLimitEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def create_collector(source: str, http_client: httpx.Client | None = None, **kwargs) -> BaseCollector:
    """Instantiate the collector registered for an origin tag."""
    try:
        collector_class = COLLECTORS[source]
    except KeyError:
        raise ValueError(f"Unknown source: {source}. Available: {', '.join(COLLECTORS)}") from None
    return collector_class(http_client=http_client, **kwargs)


def collect_all(
    sources: list[str],
    options: CollectorOptions,
    collectors: dict[str, BaseCollector] | None = None,
    http_client: httpx.Client | None = None,
) -> CollectionResult:
    """
    Run the selected collectors concurrently, one thread per origin.

    A collector that fails is logged and contributes no records.

    Args:
        sources: Origin tags to collect from
        options: Collection limits shared by every collector
        collectors: Pre-built collectors by origin tag (created otherwise)
        http_client: Shared client for collectors created here

    Returns:
        CollectionResult with records concatenated in SOURCE_ORDER
    """
    selected = [source for source in SOURCE_ORDER if source in sources]
    provided = collectors or {}
    instances = {
        source: provided.get(source) or create_collector(source, http_client=http_client)
        for source in selected
    }

    result = CollectionResult()
    if not selected:
        return result

    try:
        with ThreadPoolExecutor(max_workers=len(selected)) as executor:
            futures = {source: executor.submit(instances[source].run, options) for source in selected}

        for source in selected:
            try:
                records = futures[source].result()
            except Exception as e:
                logger.error(f"{source} collector failed: {e}")
                result.errors.append(f"{source}: {e}")
                records = []

            result.records.extend(records)
            result.by_source[source] = len(records)
            result.rate_limit_events.extend(instances[source].rate_limit_events)
    finally:
        for source, collector in instances.items():
            if source not in provided:
                collector.close()

    logger.info(f"Collected {len(result.records)} raw records from {len(selected)} sources")
    return result


__all__ = [
    "BaseCollector",
    "CollectorOptions",
    "RATE_LIMIT_BACKOFF",
    "GitHubCollector",
    "NpmCollector",
    "PyPICollector",
    "COLLECTORS",
    "CollectionResult",
    "create_collector",
    "collect_all",
]

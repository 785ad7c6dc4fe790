"""
HTTP helpers shared by the registry collectors.

Transport failures (timeouts, refused connections) are retried here with
exponential backoff. Rate limits are not: they surface as RateLimitError
so the collector can wait on its own, much longer, schedule.
"""

from typing import Optional

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mcp_registry.config import settings

DEFAULT_HEADERS = {
    "User-Agent": "mcp-registry/0.1 (package metadata collector)",
    "Accept": "application/json, */*",
}

DEFAULT_RETRY_AFTER = 60  # seconds, when Retry-After is absent or unparseable


class HTTPError(Exception):
    """A registry answered with a 4xx/5xx status."""

    def __init__(self, message: str, status_code: int = None, response: httpx.Response = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(HTTPError):
    """A registry refused the request because its quota is used up."""

    def __init__(self, message: str, retry_after: int = DEFAULT_RETRY_AFTER, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


def is_rate_limited(response: httpx.Response) -> bool:
    """429 everywhere, or GitHub's 403 with an exhausted quota."""
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def retry_after_seconds(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
    except ValueError:
        return DEFAULT_RETRY_AFTER


def check_response(response: httpx.Response) -> httpx.Response:
    """
    Raise for rate limits and error statuses, otherwise return the response.

    Raises:
        RateLimitError: 429, or 403 with X-RateLimit-Remaining: 0
        HTTPError: Any other status >= 400
    """
    url = response.request.url
    if is_rate_limited(response):
        retry_after = retry_after_seconds(response)
        raise RateLimitError(
            f"Rate limited by {url.host} (HTTP {response.status_code}), retry after {retry_after}s",
            retry_after=retry_after,
            status_code=response.status_code,
            response=response,
        )
    if response.status_code >= 400:
        raise HTTPError(
            f"HTTP {response.status_code} for {url}: {response.text[:200]}",
            status_code=response.status_code,
            response=response,
        )
    return response


@retry(
    stop=stop_after_attempt(settings.collectors.http_max_retries),
    wait=wait_exponential(multiplier=settings.collectors.http_retry_delay, min=1, max=60),
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
    reraise=True,
)
def fetch_with_retry(
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    client: Optional[httpx.Client] = None,
) -> httpx.Response:
    """
    GET a registry URL, retrying transport failures.

    Args:
        url: URL to fetch
        params: Query parameters
        headers: Headers added to DEFAULT_HEADERS
        client: Client to send with; a short-lived one is used otherwise

    Returns:
        The successful response

    Raises:
        RateLimitError: When rate limited (not retried here)
        HTTPError: For other error statuses
        httpx.TimeoutException: When every attempt timed out
    """
    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    logger.debug(f"GET {url} {params or ''}")

    if client is None:
        with httpx.Client(timeout=settings.collectors.http_timeout, follow_redirects=True) as owned:
            response = owned.get(url, params=params, headers=request_headers)
    else:
        response = client.get(url, params=params, headers=request_headers)

    check_response(response)
    logger.debug(f"{response.status_code} {url} ({len(response.content)} bytes)")
    return response

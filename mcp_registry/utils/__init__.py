"""Utility modules for the registry pipeline."""

from mcp_registry.utils.http import HTTPError, RateLimitError, fetch_with_retry
from mcp_registry.utils.logging import setup_logging
from mcp_registry.utils.text import sanitize_text, truncate_bytes

__all__ = [
    # HTTP utilities
    "fetch_with_retry",
    "HTTPError",
    "RateLimitError",
    # Logging
    "setup_logging",
    # Text utilities
    "sanitize_text",
    "truncate_bytes",
]

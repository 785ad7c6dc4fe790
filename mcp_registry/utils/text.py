"""Text processing utility functions for the registry pipeline."""

import re

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
WHITESPACE = re.compile(r"\s+")


def sanitize_text(text: str | None, max_bytes: int | None = None) -> str:
    """Strip unsafe characters from free text.

    Applies the following transformations:
    - Replaces ASCII control characters with a space
    - Collapses runs of whitespace to a single space
    - Strips leading/trailing whitespace
    - Optionally truncates to ``max_bytes`` of the raw UTF-8 input

    Truncation is measured on the raw text, before cleaning, and the
    cleaned result is not re-checked afterwards.

    Args:
        text: Text to sanitize
        max_bytes: Maximum size in bytes (None for no limit)

    Returns:
        Sanitized text, or empty string if input is empty/None
    """
    if not text:
        return ""

    if max_bytes is not None:
        text = truncate_bytes(text, max_bytes)

    text = CONTROL_CHARS.sub(" ", text)
    text = WHITESPACE.sub(" ", text)

    return text.strip()


def truncate_bytes(text: str, max_bytes: int) -> str:
    """Truncate text to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")

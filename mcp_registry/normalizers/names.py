"""
Canonical key derivation for package names and repository URLs.

Both functions are pure and total: equal inputs always give equal keys,
and absent or unusable input gives an absent key instead of an error.
"""

import re

from loguru import logger

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9_\s-]")
_SEPARATORS = re.compile(r"[\s_]+")
_HYPHEN_RUNS = re.compile(r"-+")

_GITHUB_SSH_PREFIX = "git@github.com:"
_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://")


def normalize_name(name: str | None) -> str:
    """
    Normalize a package name for deduplication.

    "MCP-Server", "mcp_server" and "mcp server" all give "mcp-server".

    Args:
        name: Package name as published

    Returns:
        Lowercase hyphenated key, or empty string if input is empty/None
    """
    if not name:
        return ""

    key = name.lower()
    key = _INVALID_NAME_CHARS.sub("-", key)
    key = _SEPARATORS.sub("-", key)
    key = _HYPHEN_RUNS.sub("-", key)
    return key.strip("-")


def normalize_repository(url: str | None) -> str | None:
    """
    Normalize a repository URL for deduplication.

    GitHub URLs lose any scheme (git+https, git and ssh included), the
    SSH prefix, the ``.git`` suffix and the trailing slash, so
    https://github.com/x/y and git@github.com:x/y.git both give
    "github.com/x/y".

    Args:
        url: Repository URL in any common form

    Returns:
        Normalized key, or None if the URL is empty or unusable
    """
    if not url or not isinstance(url, str):
        return None

    key = url.strip().lower()
    key = _strip_git_suffix(key)

    if "github.com" in key:
        if key.startswith(_GITHUB_SSH_PREFIX):
            key = "github.com/" + key[len(_GITHUB_SSH_PREFIX):]
        # git+https://, git:// and ssh://git@ forms as well as http(s)
        key = _SCHEME.sub("", key)
        key = key.removeprefix("git@")
        key = _strip_git_suffix(key.rstrip("/"))

    key = key.rstrip("/")
    if not key:
        logger.debug(f"Repository URL {url!r} has no usable key")
        return None
    return key


def _strip_git_suffix(value: str) -> str:
    return value[:-4] if value.endswith(".git") else value

"""
npm collector.

Searches the npm registry by MCP keywords, then looks up each package's
latest dist-tag and last-week download count.

API Documentation: https://github.com/npm/registry/blob/main/docs/REGISTRY-API.md
"""

from collections.abc import Iterator

from loguru import logger

from mcp_registry.collectors.base import BaseCollector, CollectorOptions
from mcp_registry.config import settings
from mcp_registry.models import Origin, RawRecord
from mcp_registry.utils.http import HTTPError


def clean_repository_url(url: str | None) -> str | None:
    """
    Turn an npm ``repository.url`` into a browsable URL.

    "git+https://github.com/x/y.git" -> "https://github.com/x/y.git"
    "git@github.com:x/y.git" -> "https://github.com/x/y.git"
    """
    if not url:
        return None
    url = url.strip()
    if url.startswith("git+"):
        url = url[4:]
    if url.startswith("git://"):
        url = "https://" + url[6:]
    if url.startswith("git@github.com:"):
        url = "https://github.com/" + url[len("git@github.com:"):]
    return url


class NpmCollector(BaseCollector):
    """Collects npm packages matching MCP keywords."""

    source = Origin.NPM

    PAGE_SIZE = 100
    DEFAULT_VERSION = "1.0.0"

    def __init__(self, keywords: list[str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.keywords = keywords or settings.collectors.search_keywords
        self.downloads_url = self.source_info.get("downloads_url")

    def collect(self, options: CollectorOptions) -> Iterator[RawRecord]:
        seen: set[str] = set()

        for keyword in self.keywords:
            try:
                for package in self.search_packages(keyword):
                    name = package.get("name")
                    if not name or name in seen:
                        continue
                    seen.add(name)
                    yield self.parse_package(package)
            except HTTPError as e:
                logger.error(f"Error searching npm with keyword {keyword}: {e}")

    def search_packages(self, keyword: str) -> Iterator[dict]:
        """Page through search results, yielding the ``package`` objects."""
        offset = 0
        while True:
            data = self.get_json(
                f"{self.api_url}/-/v1/search",
                params={"text": keyword, "size": self.PAGE_SIZE, "from": offset},
            )
            objects = data.get("objects") or []
            for obj in objects:
                if obj.get("package"):
                    yield obj["package"]

            if len(objects) < self.PAGE_SIZE:
                break
            offset += self.PAGE_SIZE

    def fetch_latest_version(self, name: str) -> str | None:
        try:
            data = self.get_json(f"{self.api_url}/{name}")
        except HTTPError as e:
            logger.debug(f"Package details unavailable for {name}: {e}")
            return None
        return (data.get("dist-tags") or {}).get("latest")

    def fetch_downloads(self, name: str) -> int:
        try:
            data = self.get_json(f"{self.downloads_url}/{name}")
        except HTTPError as e:
            logger.debug(f"Download stats unavailable for {name}: {e}")
            return 0
        return data.get("downloads") or 0

    def parse_package(self, package: dict) -> RawRecord:
        """Convert a search result package to a RawRecord."""
        name = package["name"]
        links = package.get("links") or {}

        repository = links.get("repository")
        if not repository:
            repo_field = package.get("repository")
            repository = clean_repository_url(
                repo_field if isinstance(repo_field, str) else (repo_field or {}).get("url")
            )

        author = package.get("author")
        if isinstance(author, dict):
            author = author.get("name")

        version = self.fetch_latest_version(name) or package.get("version") or self.DEFAULT_VERSION

        return RawRecord(
            name=name,
            description=package.get("description") or "No description provided",
            version=version,
            source_url=links.get("npm") or f"https://www.npmjs.com/package/{name}",
            source=self.source,
            downloads=self.fetch_downloads(name),
            license=package.get("license"),
            author=author,
            repository=repository,
            keywords=list(package.get("keywords") or []),
            last_updated=package.get("date"),
        )

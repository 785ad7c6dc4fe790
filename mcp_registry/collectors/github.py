"""
GitHub collector.

Searches repositories tagged with MCP topics through the GitHub search API.

API Documentation: https://docs.github.com/en/rest/search/search#search-repositories
Rate Limits: 10 search requests/min unauthenticated, 30/min with a token
"""

from collections.abc import Iterator

from loguru import logger

from mcp_registry.collectors.base import BaseCollector, CollectorOptions, is_not_found
from mcp_registry.config import README_MAX_BYTES, settings
from mcp_registry.models import Origin, RawRecord
from mcp_registry.utils.http import HTTPError
from mcp_registry.utils.text import truncate_bytes


class GitHubCollector(BaseCollector):
    """Collects repositories tagged with MCP topics."""

    source = Origin.GITHUB

    TOPICS = ("mcp-server", "model-context-protocol", "mcp")
    PER_PAGE = 100
    MAX_PAGES = 10  # search results stop at 1000 items

    # Repositories don't carry a release version
    DEFAULT_VERSION = "1.0.0"

    def __init__(self, token: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.token = token if token is not None else settings.collectors.github_token

    def get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def collect(self, options: CollectorOptions) -> Iterator[RawRecord]:
        seen: set[str] = set()

        for topic in self.TOPICS:
            try:
                for repo in self.search_repositories(f"topic:{topic} stars:>0"):
                    if options.min_stars and (repo.get("stargazers_count") or 0) < options.min_stars:
                        continue

                    key = repo.get("html_url") or repo.get("full_name")
                    if not key or key in seen:
                        continue
                    seen.add(key)

                    yield self.parse_repository(repo, include_readme=options.include_readme)
            except HTTPError as e:
                logger.error(f"Error searching topic {topic}: {e}")

    def search_repositories(self, query: str) -> Iterator[dict]:
        """Page through repository search results."""
        for page in range(1, self.MAX_PAGES + 1):
            data = self.get_json(
                f"{self.api_url}/search/repositories",
                params={"q": query, "order": "desc", "per_page": self.PER_PAGE, "page": page},
            )
            items = data.get("items") or []
            yield from items

            if len(items) < self.PER_PAGE:
                break

    def fetch_readme(self, full_name: str) -> str | None:
        """Raw README text, truncated to README_MAX_BYTES, or None if missing."""
        try:
            response = self.get(
                f"{self.api_url}/repos/{full_name}/readme",
                headers={"Accept": "application/vnd.github.raw+json"},
            )
        except HTTPError as e:
            if not is_not_found(e):
                logger.debug(f"README unavailable for {full_name}: {e}")
            return None
        return truncate_bytes(response.text, README_MAX_BYTES)

    def parse_repository(self, repo: dict, include_readme: bool = True) -> RawRecord:
        """Convert a search result item to a RawRecord."""
        owner = repo.get("owner") or {}
        license_info = repo.get("license") or {}

        readme = None
        if include_readme and repo.get("full_name"):
            readme = self.fetch_readme(repo["full_name"])

        return RawRecord(
            name=repo.get("name", ""),
            description=repo.get("description") or "No description provided",
            version=self.DEFAULT_VERSION,
            source_url=repo.get("html_url") or repo.get("url", ""),
            source=self.source,
            stars=repo.get("stargazers_count") or 0,
            forks=repo.get("forks_count") or 0,
            license=license_info.get("name"),
            author=owner.get("login"),
            repository=repo.get("html_url"),
            keywords=list(repo.get("topics") or []),
            readme=readme,
            last_updated=repo.get("updated_at"),
        )

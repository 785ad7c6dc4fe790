"""
PyPI collector.

PyPI has no search API, so a seed list of known MCP packages is looked
up through the JSON API. Download counts are not exposed either; the
number of releases x 10 stands in for them.

API Documentation: https://warehouse.pypa.io/api-reference/json.html
"""

from collections.abc import Iterator

from loguru import logger

from mcp_registry.collectors.base import BaseCollector, CollectorOptions, is_not_found
from mcp_registry.models import Origin, RawRecord
from mcp_registry.utils.http import HTTPError

SEED_PACKAGES = [
    "mcp",
    "mcp-server",
    "mcp-server-notion",
    "mcp-server-brave-search",
    "mcp-server-github",
    "mcp-server-fetch",
    "mcp-server-git",
    "mcp-server-time",
    "mcp-server-sqlite",
]

DOWNLOADS_PER_RELEASE = 10

# project_urls labels checked for the repository, in order
REPOSITORY_LABELS = ("Repository", "Source", "Homepage")


class PyPICollector(BaseCollector):
    """Collects PyPI packages from a seed list."""

    source = Origin.PYPI

    DEFAULT_VERSION = "1.0.0"

    def __init__(self, packages: list[str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.packages = packages or SEED_PACKAGES

    def collect(self, options: CollectorOptions) -> Iterator[RawRecord]:
        for package_name in self.packages:
            try:
                data = self.get_json(f"{self.api_url}/{package_name}/json")
            except HTTPError as e:
                if is_not_found(e):
                    logger.debug(f"PyPI package not found: {package_name}")
                else:
                    logger.error(f"Error fetching PyPI package {package_name}: {e}")
                continue

            yield self.parse_package(package_name, data)

    def parse_package(self, package_name: str, data: dict) -> RawRecord:
        """Convert a JSON API document to a RawRecord."""
        info = data.get("info") or {}
        releases = data.get("releases") or {}
        files = data.get("urls") or []

        project_urls = info.get("project_urls") or {}
        repository = next(
            (project_urls[label] for label in REPOSITORY_LABELS if project_urls.get(label)),
            info.get("home_page") or None,
        )

        keywords = [k.strip() for k in (info.get("keywords") or "").split(",") if k.strip()]

        # Upload time of the latest release files, when present
        last_updated = files[0].get("upload_time_iso_8601") if files else None

        return RawRecord(
            name=info.get("name") or package_name,
            description=info.get("summary") or "No description provided",
            version=info.get("version") or self.DEFAULT_VERSION,
            source_url=f"https://pypi.org/project/{package_name}/",
            source=self.source,
            downloads=len(releases) * DOWNLOADS_PER_RELEASE,
            license=info.get("license") or None,
            author=info.get("author") or None,
            repository=repository,
            keywords=keywords,
            last_updated=last_updated,
        )

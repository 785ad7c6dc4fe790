"""
Data models for the registry pipeline.

Defines the raw observation format that all collectors produce, the
canonical record that deduplication consolidates them into, and the
advisory records (validation failures, rate-limit events, run metadata)
reported alongside a run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Origin(str, Enum):
    """Registries a record can be observed in."""

    GITHUB = "github"
    NPM = "npm"
    PYPI = "pypi"


class UpdateMode(str, Enum):
    """Whether a run starts empty or carries over the previous state."""

    FULL = "full"
    INCREMENTAL = "incremental"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Raises:
        ValueError: If the value is not a timestamp
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class RawRecord:
    """
    One observation of a package, as produced by a collector.

    Consumed once by the processor; never persisted.
    """

    # Required fields
    name: str
    description: str
    version: str
    source_url: str
    source: Origin

    # Popularity signals
    stars: int | None = None
    forks: int | None = None
    downloads: int | None = None

    # Optional metadata
    license: str | None = None
    author: str | None = None
    repository: str | None = None
    keywords: list[str] = field(default_factory=list)
    readme: str | None = None

    # ISO 8601 string or datetime; None means "use the caller's default"
    last_updated: str | datetime | None = None


@dataclass
class InstallCommand:
    """Single installation command with package details."""

    command: str
    package: str
    version: str

    def to_dict(self) -> dict[str, str]:
        return {"command": self.command, "package": self.package, "version": self.version}


@dataclass
class InstallationInstructions:
    """Generated installation commands and a sample client configuration."""

    npm: InstallCommand | None = None
    pypi: list[InstallCommand] = field(default_factory=list)
    config_example: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.npm:
            result["npm"] = self.npm.to_dict()
        if self.pypi:
            result["pypi"] = [cmd.to_dict() for cmd in self.pypi]
        if self.config_example is not None:
            result["configExample"] = self.config_example
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "InstallationInstructions":
        data = data or {}
        return cls(
            npm=InstallCommand(**data["npm"]) if data.get("npm") else None,
            pypi=[InstallCommand(**cmd) for cmd in data.get("pypi", [])],
            config_example=data.get("configExample"),
        )


@dataclass
class CompatibilityInfo:
    """AI client compatibility inferred from documentation."""

    client: str
    status: str  # verified | likely | unknown
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {"client": self.client, "status": self.status}
        if self.notes is not None:
            result["notes"] = self.notes
        return result


@dataclass
class CanonicalRecord:
    """
    Consolidated record for one package across every registry that reported it.

    Field names serialize to the camelCase keys of the published dataset.
    """

    name: str
    description: str
    version: str
    source: Origin  # origin of the first observation
    source_url: str
    last_updated: datetime
    normalized_name: str

    source_urls: dict[str, str] = field(default_factory=dict)
    downloads: dict[str, int] = field(default_factory=dict)  # raw counts per origin
    popularity_score: float = 0.0

    stars: int | None = None
    forks: int | None = None
    repository: str | None = None
    license: str | None = None
    author: str | None = None
    keywords: list[str] = field(default_factory=list)
    readme: str | None = None

    is_active: bool = False
    categories: list[str] = field(default_factory=list)
    compatibility: list[CompatibilityInfo] = field(default_factory=list)
    installation_instructions: InstallationInstructions = field(default_factory=InstallationInstructions)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "source": self.source.value,
            "sourceUrl": self.source_url,
            "sourceUrls": dict(self.source_urls),
            "downloads": dict(self.downloads),
            "popularityScore": self.popularity_score,
            "keywords": list(self.keywords),
            "lastUpdated": self.last_updated.isoformat(),
            "isActive": self.is_active,
            "categories": list(self.categories),
            "compatibility": [c.to_dict() for c in self.compatibility],
            "installationInstructions": self.installation_instructions.to_dict(),
            "normalizedName": self.normalized_name,
        }

        # Add optional fields if present
        for field_name in ("stars", "forks", "repository", "license", "author", "readme"):
            value = getattr(self, field_name)
            if value is not None:
                result[field_name] = value

        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CanonicalRecord":
        """Create CanonicalRecord from a dictionary written by to_dict()."""
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            version=data.get("version", ""),
            source=Origin(data["source"]),
            source_url=data.get("sourceUrl", ""),
            last_updated=parse_timestamp(data["lastUpdated"]),
            normalized_name=data["normalizedName"],
            source_urls=dict(data.get("sourceUrls") or {}),
            downloads=dict(data.get("downloads") or {}),
            popularity_score=data.get("popularityScore", 0.0),
            stars=data.get("stars"),
            forks=data.get("forks"),
            repository=data.get("repository"),
            license=data.get("license"),
            author=data.get("author"),
            keywords=list(data.get("keywords") or []),
            readme=data.get("readme"),
            is_active=data.get("isActive", False),
            categories=list(data.get("categories") or []),
            compatibility=[CompatibilityInfo(**c) for c in data.get("compatibility", [])],
            installation_instructions=InstallationInstructions.from_dict(
                data.get("installationInstructions")
            ),
        )


@dataclass
class ValidationFailure:
    """A rejected record or downgraded field."""

    timestamp: str  # ISO 8601
    field: str
    value: str  # record name
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp,
            "field": self.field,
            "value": self.value,
            "reason": self.reason,
        }


@dataclass
class RateLimitEvent:
    """Rate limiting encountered by a collector."""

    source: str
    timestamp: str  # ISO 8601
    message: str
    retry_after: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {"source": self.source, "timestamp": self.timestamp, "message": self.message}
        if self.retry_after is not None:
            result["retryAfter"] = self.retry_after
        return result


@dataclass
class RunMetadata:
    """Statistics for one run, stored next to the dataset."""

    run_id: str
    started_at: datetime
    completed_at: datetime
    update_mode: UpdateMode
    total_servers_found: int = 0
    servers_by_source: dict[str, int] = field(default_factory=dict)
    duplicates_removed: int = 0
    servers_by_category: dict[str, int] = field(default_factory=dict)
    rate_limit_events: list[RateLimitEvent] = field(default_factory=list)
    validation_failures: list[ValidationFailure] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "duration": self.duration_ms,
            "totalServersFound": self.total_servers_found,
            "serversBySource": dict(self.servers_by_source),
            "duplicatesRemoved": self.duplicates_removed,
            "serversByCategory": dict(self.servers_by_category),
            "rateLimitEvents": [e.to_dict() for e in self.rate_limit_events],
            "validationFailures": [f.to_dict() for f in self.validation_failures],
            "errors": list(self.errors),
            "updateMode": self.update_mode.value,
        }

# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for MCP Server Registry tests."""

import os
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

# Set test environment variables before importing the package
os.environ.setdefault("REGISTRY_STORAGE_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("COLLECTOR_GITHUB_TOKEN", "")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mcp_registry.models import CanonicalRecord, Origin, RawRecord  # noqa: E402
from mcp_registry.normalizers import normalize_name  # noqa: E402

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


class MemoryKeyValueStore:
    """Dict-backed blob store."""

    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FailingKeyValueStore:
    """Blob store whose every call fails."""

    def get(self, key: str) -> str | None:
        raise OSError("storage unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("storage unavailable")


class MemoryDataset:
    """List-backed record sink."""

    def __init__(self):
        self.records = []

    def push(self, records) -> int:
        records = list(records)
        self.records.extend(records)
        return len(records)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def failing_kv_store() -> FailingKeyValueStore:
    return FailingKeyValueStore()


@pytest.fixture
def memory_dataset() -> MemoryDataset:
    return MemoryDataset()


@pytest.fixture
def sql_engine() -> Generator:
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def make_raw():
    """Factory for valid raw records with overridable fields."""

    def _make(name: str = "mcp-server-demo", source: Origin = Origin.NPM, **overrides) -> RawRecord:
        values = {
            "name": name,
            "description": "A demo MCP server",
            "version": "1.0.0",
            "source_url": f"https://example.com/{source.value}/{name}",
            "source": source,
            "last_updated": "2024-05-01T00:00:00Z",
        }
        values.update(overrides)
        return RawRecord(**values)

    return _make


@pytest.fixture
def make_canonical():
    """Factory for canonical records as the processor would build them."""

    def _make(name: str = "mcp-server-demo", source: Origin = Origin.NPM, **overrides) -> CanonicalRecord:
        source_url = overrides.pop("source_url", f"https://example.com/{source.value}/{name}")
        values = {
            "name": name,
            "description": "A demo MCP server",
            "version": "1.0.0",
            "source": source,
            "source_url": source_url,
            "last_updated": NOW - timedelta(days=30),
            "normalized_name": normalize_name(name),
            "source_urls": {source.value: source_url},
            "is_active": True,
        }
        values.update(overrides)
        return CanonicalRecord(**values)

    return _make

"""
Lookup strategies used to find an existing canonical record for an observation.

The store tries them in a fixed order and stops at the first hit, so the
name key wins over the repository key when both could match different
records.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from mcp_registry.models import CanonicalRecord, UpdateMode, utcnow


@dataclass
class DeduplicationState:
    """Cross-run mapping from canonical keys to canonical records."""

    run_id: str
    update_mode: UpdateMode = UpdateMode.FULL
    server_map: dict[str, CanonicalRecord] = field(default_factory=dict)  # composite key -> record
    normalized_names: dict[str, str] = field(default_factory=dict)  # name key -> composite key
    repository_urls: dict[str, str] = field(default_factory=dict)  # repository key -> composite key
    last_run_timestamp: datetime = field(default_factory=utcnow)


@dataclass
class CandidateKeys:
    """Canonical keys computed for one incoming record."""

    name: str
    repository: str | None = None


@dataclass
class Match:
    """An existing record found by a strategy, with its composite key."""

    composite_key: str
    record: CanonicalRecord
    strategy: str


class LookupStrategy(ABC):
    """Finds the canonical record an observation duplicates, if any."""

    name: str | None = None

    @abstractmethod
    def find(self, state: DeduplicationState, keys: CandidateKeys) -> Match | None:
        """Return the matching record, or None when this key has no entry."""
        pass

    def _resolve(self, state: DeduplicationState, key: str, composite_key: str | None) -> Match | None:
        if composite_key is None:
            return None
        record = state.server_map.get(composite_key)
        if record is None:
            # Corrupted state: the key map outlived its record
            logger.warning(
                f"{self.name} key {key!r} points to missing record {composite_key!r}, treating as new"
            )
            return None
        return Match(composite_key=composite_key, record=record, strategy=self.name)


class NameKeyLookup(LookupStrategy):
    """Match on the normalized package name."""

    name = "name"

    def find(self, state: DeduplicationState, keys: CandidateKeys) -> Match | None:
        if not keys.name:
            return None
        return self._resolve(state, keys.name, state.normalized_names.get(keys.name))


class RepositoryKeyLookup(LookupStrategy):
    """Match on the normalized repository URL."""

    name = "repository"

    def find(self, state: DeduplicationState, keys: CandidateKeys) -> Match | None:
        if not keys.repository:
            return None
        return self._resolve(state, keys.repository, state.repository_urls.get(keys.repository))


DEFAULT_STRATEGIES: tuple[LookupStrategy, ...] = (NameKeyLookup(), RepositoryKeyLookup())

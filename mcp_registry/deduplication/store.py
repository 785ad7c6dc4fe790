"""
Deduplication store: the run's system of record for canonical records.

Each run builds its own store, scoped by run id. Incremental runs first
load the state persisted under that run id; full runs start empty. The
state is written back once, after all deduplication is done.

Lifecycle: UNINITIALIZED -> LOADED -> SAVED
"""

import json
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from loguru import logger

from mcp_registry.deduplication.merge import merge_into
from mcp_registry.deduplication.strategies import (
    DEFAULT_STRATEGIES,
    CandidateKeys,
    DeduplicationState,
    LookupStrategy,
    Match,
)
from mcp_registry.models import CanonicalRecord, UpdateMode, parse_timestamp, utcnow
from mcp_registry.normalizers import normalize_name, normalize_repository
from mcp_registry.storage.key_value import KeyValueStore


class StoreStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    SAVED = "saved"


def state_key(run_id: str) -> str:
    return f"dedup-state-{run_id}"


def keys_for(record: CanonicalRecord) -> CandidateKeys:
    """Compute the canonical keys of a record."""
    return CandidateKeys(
        name=normalize_name(record.normalized_name or record.name),
        repository=normalize_repository(record.repository),
    )


class DeduplicationStore:
    """
    Holds the mapping from canonical keys to canonical records for one run.

    Single writer, single reader: not safe to share between threads.
    """

    def __init__(
        self,
        run_id: str,
        update_mode: UpdateMode | str = UpdateMode.FULL,
        kv_store: KeyValueStore | None = None,
        strategies: Sequence[LookupStrategy] = DEFAULT_STRATEGIES,
    ):
        self.state = DeduplicationState(run_id=run_id, update_mode=UpdateMode(update_mode))
        self.kv_store = kv_store
        self.strategies = tuple(strategies)
        self.status = StoreStatus.UNINITIALIZED
        self.duplicates_removed = 0
        self.previous_run_timestamp = None

    @property
    def run_id(self) -> str:
        return self.state.run_id

    @property
    def state_key(self) -> str:
        return state_key(self.state.run_id)

    # =========================================================================
    # Load / save
    # =========================================================================

    def load(self) -> None:
        """
        Initialize the store.

        Incremental runs restore the state saved under this run id. Any
        failure to read or decode it is logged and the store starts empty.
        """
        if self.state.update_mode is UpdateMode.INCREMENTAL and self.kv_store is not None:
            try:
                blob = self.kv_store.get(self.state_key)
                if blob:
                    self._restore(deserialize_state(json.loads(blob)))
                    logger.info(
                        f"Loaded deduplication state for incremental update "
                        f"({len(self.state.server_map)} records)"
                    )
                else:
                    logger.info(f"No saved state under {self.state_key}, starting fresh")
            except Exception as e:
                logger.warning(f"Could not load deduplication state, starting fresh: {e}")
                self._reset()

        self.status = StoreStatus.LOADED

    def save(self) -> bool:
        """
        Persist the full state under the run-scoped key.

        Returns:
            True if saved; failures are logged and return False
        """
        if self.kv_store is None:
            logger.warning("No key-value store configured, deduplication state not saved")
            return False

        self.state.last_run_timestamp = utcnow()
        try:
            self.kv_store.set(self.state_key, json.dumps(serialize_state(self.state), ensure_ascii=False))
        except Exception as e:
            logger.error(f"Error saving deduplication state: {e}")
            return False

        self.status = StoreStatus.SAVED
        logger.info("Saved deduplication state")
        return True

    def _restore(self, loaded: DeduplicationState) -> None:
        self.previous_run_timestamp = loaded.last_run_timestamp
        self.state.server_map = loaded.server_map
        self.state.normalized_names = loaded.normalized_names
        self.state.repository_urls = loaded.repository_urls

    def _reset(self) -> None:
        self.previous_run_timestamp = None
        self.state.server_map = {}
        self.state.normalized_names = {}
        self.state.repository_urls = {}

    # =========================================================================
    # Deduplication
    # =========================================================================

    def dedupe(self, records: Iterable[CanonicalRecord]) -> list[CanonicalRecord]:
        """
        Fold records into the store.

        Duplicates (by name key, then repository key) are merged into the
        record already held and dropped; new entities are inserted and
        returned in first-seen order.

        Args:
            records: Canonical records in a stable, reproducible order

        Returns:
            The records that started a new entity
        """
        if self.status is StoreStatus.UNINITIALIZED:
            self.load()

        survivors: list[CanonicalRecord] = []
        duplicates = 0

        for record in records:
            keys = keys_for(record)
            match = self.find(keys)

            if match is not None:
                merge_into(match.record, record)
                self._adopt_repository(match, record, keys)
                duplicates += 1
                continue

            self._insert(record, keys)
            survivors.append(record)

        self.duplicates_removed += duplicates
        logger.info(f"Removed {duplicates} duplicates, kept {len(survivors)} unique servers")
        return survivors

    def find(self, keys: CandidateKeys) -> Match | None:
        """Try each lookup strategy in order; the first hit wins."""
        for strategy in self.strategies:
            match = strategy.find(self.state, keys)
            if match is not None:
                return match
        return None

    def records(self) -> list[CanonicalRecord]:
        """Every canonical record held, including those loaded from a previous run."""
        return list(self.state.server_map.values())

    def _insert(self, record: CanonicalRecord, keys: CandidateKeys) -> str:
        composite_key = self._fresh_key(f"{record.source.value}:{keys.name}")
        self.state.server_map[composite_key] = record

        if keys.name:
            self.state.normalized_names[keys.name] = composite_key
        if keys.repository:
            self.state.repository_urls[keys.repository] = composite_key

        return composite_key

    def _fresh_key(self, base: str) -> str:
        key = base
        n = 2
        while key in self.state.server_map:
            key = f"{base}#{n}"
            n += 1
        return key

    def _adopt_repository(self, match: Match, incoming: CanonicalRecord, keys: CandidateKeys) -> None:
        # Fill a missing repository only when no other record owns its key
        if match.record.repository or not keys.repository:
            return
        if keys.repository in self.state.repository_urls:
            return
        match.record.repository = incoming.repository
        self.state.repository_urls[keys.repository] = match.composite_key


# =============================================================================
# Serialization
# =============================================================================

def serialize_state(state: DeduplicationState) -> dict[str, Any]:
    """Convert the state to the persisted blob shape (maps as lists of pairs)."""
    return {
        "runId": state.run_id,
        "serverMap": [[key, record.to_dict()] for key, record in state.server_map.items()],
        "normalizedNames": [[k, v] for k, v in state.normalized_names.items()],
        "repositoryUrls": [[k, v] for k, v in state.repository_urls.items()],
        "lastRunTimestamp": state.last_run_timestamp.isoformat(),
        "updateMode": state.update_mode.value,
    }


def deserialize_state(data: dict[str, Any]) -> DeduplicationState:
    """
    Rebuild a state from its persisted blob.

    Raises:
        KeyError, TypeError, ValueError: If the blob is malformed
    """
    return DeduplicationState(
        run_id=data["runId"],
        update_mode=UpdateMode(data.get("updateMode", UpdateMode.FULL.value)),
        server_map={key: CanonicalRecord.from_dict(record) for key, record in data.get("serverMap") or []},
        normalized_names=dict(data.get("normalizedNames") or []),
        repository_urls=dict(data.get("repositoryUrls") or []),
        last_run_timestamp=parse_timestamp(data["lastRunTimestamp"]),
    )

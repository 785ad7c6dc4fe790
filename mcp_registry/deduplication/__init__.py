"""
Deduplication pipeline components.

These modules identify observations of the same package reported by
different registries and merge them into one canonical record.
"""

from mcp_registry.deduplication.merge import merge_into
from mcp_registry.deduplication.store import (
    DeduplicationStore,
    StoreStatus,
    deserialize_state,
    serialize_state,
)
from mcp_registry.deduplication.strategies import (
    DEFAULT_STRATEGIES,
    DeduplicationState,
    LookupStrategy,
    NameKeyLookup,
    RepositoryKeyLookup,
)

__all__ = [
    "merge_into",
    "DeduplicationStore",
    "StoreStatus",
    "serialize_state",
    "deserialize_state",
    "DEFAULT_STRATEGIES",
    "DeduplicationState",
    "LookupStrategy",
    "NameKeyLookup",
    "RepositoryKeyLookup",
]

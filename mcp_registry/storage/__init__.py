"""
Persistence for the registry pipeline.

- key_value: blob store for deduplication state and run metadata
- dataset: append-only sink for published canonical records
"""

from mcp_registry.storage.dataset import Dataset, JsonlDataset, SqlDataset, open_dataset
from mcp_registry.storage.key_value import (
    FileKeyValueStore,
    KeyValueStore,
    SqlKeyValueStore,
    StorageError,
    get_json,
    open_key_value_store,
    set_json,
)

__all__ = [
    "Dataset",
    "JsonlDataset",
    "SqlDataset",
    "open_dataset",
    "FileKeyValueStore",
    "KeyValueStore",
    "SqlKeyValueStore",
    "StorageError",
    "get_json",
    "set_json",
    "open_key_value_store",
]

"""
Key-value blob stores for run-scoped state.

The pipeline only needs get/set by string key with last-write-wins
semantics. Two backends are provided: a SQL table and a directory of
JSON files.
"""

import json
import re
from pathlib import Path
from typing import Protocol

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from mcp_registry.config import StorageSettings, settings
from mcp_registry.database import KeyValueEntry, SessionLocal, create_all_tables, get_session


class StorageError(Exception):
    """Raised when a blob cannot be read or written."""
    pass


class KeyValueStore(Protocol):
    """Minimal blob store interface."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class SqlKeyValueStore:
    """Blob store backed by the ``key_value_entries`` table."""

    def __init__(self, bind: Engine | None = None):
        self.session_factory = (
            sessionmaker(autocommit=False, autoflush=False, bind=bind) if bind is not None else SessionLocal
        )
        create_all_tables(bind)

    def get(self, key: str) -> str | None:
        try:
            with get_session(self.session_factory) as session:
                entry = session.get(KeyValueEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read {key!r}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with get_session(self.session_factory) as session:
                entry = session.get(KeyValueEntry, key)
                if entry:
                    entry.value = value
                else:
                    session.add(KeyValueEntry(key=key, value=value))
        except SQLAlchemyError as e:
            raise StorageError(f"Could not write {key!r}: {e}") from e
        logger.debug(f"Stored {key} ({len(value):,} chars)")


class FileKeyValueStore:
    """Blob store keeping one file per key in a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")

        try:
            temp_path.write_text(value, encoding="utf-8")
            # Atomic rename (overwrites existing)
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Could not write {path}: {e}") from e
        logger.debug(f"Stored {key} -> {path}")


def open_key_value_store(storage: StorageSettings | None = None) -> KeyValueStore:
    """Build the blob store selected by the storage settings."""
    storage = storage or settings.storage
    if storage.backend == "file":
        return FileKeyValueStore(storage.data_dir / "key_value_store")
    return SqlKeyValueStore()


def get_json(store: KeyValueStore, key: str):
    """Read and decode a JSON blob, or None when the key is unset."""
    value = store.get(key)
    return json.loads(value) if value is not None else None


def set_json(store: KeyValueStore, key: str, data) -> None:
    store.set(key, json.dumps(data, default=str, ensure_ascii=False))

"""
Append-only sinks for the published dataset of canonical records.
"""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from mcp_registry.config import StorageSettings, settings
from mcp_registry.database import DatasetItem, SessionLocal, create_all_tables, get_session
from mcp_registry.models import CanonicalRecord


class Dataset(Protocol):
    """Record sink interface."""

    def push(self, records: Iterable[CanonicalRecord]) -> int:
        ...


def _batches(records: list[CanonicalRecord], batch_size: int):
    for i in range(0, len(records), batch_size):
        yield records[i:i + batch_size]


class SqlDataset:
    """Dataset stored in the ``dataset_items`` table."""

    def __init__(self, run_id: str, bind: Engine | None = None, batch_size: int | None = None):
        self.run_id = run_id
        self.batch_size = batch_size or settings.pipeline.dataset_batch_size
        self.session_factory = (
            sessionmaker(autocommit=False, autoflush=False, bind=bind) if bind is not None else SessionLocal
        )
        create_all_tables(bind)

    def push(self, records: Iterable[CanonicalRecord]) -> int:
        """Append records, committing one batch at a time. Returns the number written."""
        records = list(records)
        written = 0

        for batch in _batches(records, self.batch_size):
            with get_session(self.session_factory) as session:
                session.add_all(
                    DatasetItem(
                        run_id=self.run_id,
                        normalized_name=record.normalized_name,
                        data=json.dumps(record.to_dict(), ensure_ascii=False),
                    )
                    for record in batch
                )
            written += len(batch)
            logger.info(f"Committed batch of {len(batch)} records (total: {written})")

        return written

    def items(self) -> list[dict]:
        """Every record pushed for this run, oldest first."""
        with get_session(self.session_factory) as session:
            rows = (
                session.query(DatasetItem)
                .filter_by(run_id=self.run_id)
                .order_by(DatasetItem.id)
                .all()
            )
            return [json.loads(row.data) for row in rows]


class JsonlDataset:
    """Dataset stored as one JSON document per line."""

    def __init__(self, path: str | Path, batch_size: int | None = None):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.batch_size = batch_size or settings.pipeline.dataset_batch_size

    def push(self, records: Iterable[CanonicalRecord]) -> int:
        records = list(records)
        written = 0

        with open(self.path, "a", encoding="utf-8") as f:
            for batch in _batches(records, self.batch_size):
                f.writelines(
                    json.dumps(record.to_dict(), ensure_ascii=False) + "\n" for record in batch
                )
                f.flush()
                written += len(batch)

        logger.info(f"Appended {written} records to {self.path}")
        return written

    def items(self) -> list[dict]:
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


def open_dataset(run_id: str, storage: StorageSettings | None = None) -> Dataset:
    """Build the dataset sink selected by the storage settings."""
    storage = storage or settings.storage
    if storage.backend == "file":
        return JsonlDataset(storage.data_dir / "datasets" / f"{run_id}.jsonl")
    return SqlDataset(run_id)

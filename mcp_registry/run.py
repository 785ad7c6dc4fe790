"""
Run orchestration for the registry pipeline.

A run collects from the selected registries, processes and deduplicates
the observations, pushes the new canonical records to the dataset and
stores the run metadata under ``run-metadata-{run_id}``.
"""

import time
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime

import httpx
from loguru import logger

from mcp_registry.collectors import BaseCollector, CollectorOptions, collect_all, create_collector
from mcp_registry.config import SOURCE_ORDER, settings
from mcp_registry.deduplication import DeduplicationStore
from mcp_registry.models import RunMetadata, UpdateMode, utcnow
from mcp_registry.processor import RecordProcessor
from mcp_registry.storage import Dataset, KeyValueStore, get_json, open_dataset, open_key_value_store, set_json

TEST_MODE_MAX_SERVERS = 5


class InputError(ValueError):
    """Raised when the run input is invalid."""
    pass


def metadata_key(run_id: str) -> str:
    return f"run-metadata-{run_id}"


def generate_run_id() -> str:
    return f"local-{int(time.time() * 1000)}"


@dataclass
class RunInput:
    """Run configuration, defaulting to a full run over every registry."""

    sources: list[str] = field(default_factory=lambda: list(SOURCE_ORDER))
    update_mode: UpdateMode = UpdateMode.FULL
    max_servers: int | None = None
    min_stars: int | None = None
    include_readme: bool = True
    github_token: str | None = None
    run_mode: str = "production"  # "production" or "test"

    @classmethod
    def from_settings(cls, **overrides) -> "RunInput":
        """Defaults taken from the collector and pipeline settings."""
        values = {
            "update_mode": UpdateMode(settings.pipeline.update_mode),
            "max_servers": settings.collectors.max_servers,
            "min_stars": settings.collectors.min_stars,
            "include_readme": settings.collectors.include_readme,
            "github_token": settings.collectors.github_token,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def validate(self) -> None:
        """
        Check the input before anything is collected.

        Raises:
            InputError: If no source, an unknown source or a bad limit is given
        """
        if not self.sources:
            raise InputError("At least one source must be specified")

        for source in self.sources:
            if source not in SOURCE_ORDER:
                raise InputError(f"Invalid source: {source}")

        if self.max_servers is not None and self.max_servers < 1:
            raise InputError("max_servers must be at least 1")

        if self.min_stars is not None and self.min_stars < 0:
            raise InputError("min_stars must be non-negative")

        if self.run_mode not in ("production", "test"):
            raise InputError(f"Invalid run mode: {self.run_mode}")

        logger.info("Input validation passed")

    @property
    def collector_options(self) -> CollectorOptions:
        return CollectorOptions(
            max_servers=self.max_servers,
            min_stars=self.min_stars,
            include_readme=self.include_readme,
        )


class RegistryRun:
    """One end-to-end execution of the pipeline."""

    def __init__(
        self,
        run_input: RunInput | None = None,
        run_id: str | None = None,
        kv_store: KeyValueStore | None = None,
        dataset: Dataset | None = None,
        collectors: dict[str, BaseCollector] | None = None,
        http_client: httpx.Client | None = None,
        now: datetime | None = None,
    ):
        run_input = run_input or RunInput()
        if run_input.run_mode == "test" and run_input.max_servers is None:
            logger.info(f"Running in TEST mode - limiting to {TEST_MODE_MAX_SERVERS} servers per source")
            run_input = replace(run_input, max_servers=TEST_MODE_MAX_SERVERS)

        self.input = run_input
        self.run_id = run_id or generate_run_id()
        self.kv_store = kv_store
        self.dataset = dataset
        self.collectors = collectors
        self.http_client = http_client
        self.now = now

    def execute(self) -> RunMetadata:
        """
        Run the pipeline and store its metadata.

        Returns:
            RunMetadata for this run

        Raises:
            InputError: If the input is invalid
        """
        with logger.contextualize(run_id=self.run_id):
            return self._execute()

    def _execute(self) -> RunMetadata:
        started_at = utcnow()
        logger.info(f"MCP Server Registry run {self.run_id} started")

        self.input.validate()

        kv_store = self.kv_store or open_key_value_store()
        dataset = self.dataset or open_dataset(self.run_id)

        collection = self._collect()
        logger.info(f"Total servers collected: {len(collection.records)}")

        store = DeduplicationStore(self.run_id, self.input.update_mode, kv_store)
        store.load()

        processor = RecordProcessor(store, now=self.now)
        result = processor.process(collection.records)

        errors = list(collection.errors)
        if not store.save():
            errors.append("Failed to save deduplication state")

        pushed = dataset.push(result.survivors)
        logger.info(f"Pushed {pushed} servers to dataset")

        metadata = RunMetadata(
            run_id=self.run_id,
            started_at=started_at,
            completed_at=utcnow(),
            update_mode=self.input.update_mode,
            total_servers_found=len(collection.records),
            servers_by_source={source: collection.by_source.get(source, 0) for source in SOURCE_ORDER},
            duplicates_removed=result.duplicates_removed,
            servers_by_category=count_categories(result.survivors),
            rate_limit_events=collection.rate_limit_events,
            validation_failures=result.validation_failures,
            errors=errors,
        )

        set_json(kv_store, metadata_key(self.run_id), metadata.to_dict())
        logger.info(
            f"Run completed: {len(result.survivors)} servers, "
            f"{result.duplicates_removed} duplicates removed, {metadata.duration_ms}ms"
        )
        return metadata

    def _collect(self):
        collectors = dict(self.collectors or {})
        owned = {}
        for source in self.input.sources:
            if source not in collectors:
                kwargs = {"token": self.input.github_token} if source == "github" else {}
                owned[source] = create_collector(source, http_client=self.http_client, **kwargs)

        try:
            return collect_all(
                self.input.sources,
                self.input.collector_options,
                collectors={**collectors, **owned},
            )
        finally:
            for collector in owned.values():
                collector.close()


def count_categories(records) -> dict[str, int]:
    """Number of records in each category (a record counts once per category)."""
    counts = Counter(category for record in records for category in record.categories)
    return dict(sorted(counts.items()))


def load_run_metadata(run_id: str, kv_store: KeyValueStore | None = None) -> dict | None:
    """Stored metadata for a run, or None if the run is unknown."""
    kv_store = kv_store or open_key_value_store()
    return get_json(kv_store, metadata_key(run_id))

"""
Record processing: raw observations -> deduplicated canonical records.

Each raw record is validated and sanitized, keyed, scored and enriched,
then the whole batch is folded into the deduplication store in order.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from mcp_registry.config import settings
from mcp_registry.deduplication.store import DeduplicationStore
from mcp_registry.enrichment import categorize, check_compatibility, generate_instructions
from mcp_registry.models import CanonicalRecord, RawRecord, ValidationFailure, utcnow
from mcp_registry.normalizers import normalize_name
from mcp_registry.scoring import calculate_popularity_score, is_active
from mcp_registry.validation import RecordValidator, resolve_last_updated


@dataclass
class ProcessResult:
    """Outcome of processing one batch of raw records."""

    survivors: list[CanonicalRecord] = field(default_factory=list)
    duplicates_removed: int = 0
    validation_failures: list[ValidationFailure] = field(default_factory=list)


class RecordProcessor:
    """
    Turns raw collector output into canonical records.

    The store must be used by this processor only; the validator's
    failure log accumulates across calls to process().
    """

    def __init__(
        self,
        store: DeduplicationStore,
        validator: RecordValidator | None = None,
        now: datetime | None = None,
        active_days: int | None = None,
    ):
        """
        Args:
            store: Deduplication store for this run
            validator: Validator whose failure log is reported (created if omitted)
            now: Reference time for scoring and missing timestamps
            active_days: Days since last update for a package to count as active
        """
        self.store = store
        self.validator = validator or RecordValidator()
        self.now = now
        self.active_days = active_days if active_days is not None else settings.pipeline.active_days

    def process(self, raw_records: Iterable[RawRecord]) -> ProcessResult:
        """
        Validate, enrich and deduplicate a batch.

        Bad input never raises: rejected records are recorded as
        validation failures and records that fail to build are logged
        and skipped.

        Args:
            raw_records: Collector output in SOURCE_ORDER

        Returns:
            ProcessResult with the records that started a new entity
        """
        now = self.now or utcnow()
        canonical: list[CanonicalRecord] = []

        for raw in raw_records:
            try:
                record = self.build(raw, now)
            except Exception as e:
                logger.error(f"Error processing {getattr(raw, 'name', raw)!r}: {e}")
                continue
            if record is not None:
                canonical.append(record)

        logger.info(f"Processed {len(canonical)} valid records")

        before = self.store.duplicates_removed
        survivors = self.store.dedupe(canonical)

        return ProcessResult(
            survivors=survivors,
            duplicates_removed=self.store.duplicates_removed - before,
            validation_failures=list(self.validator.validation_failures),
        )

    def build(self, raw: RawRecord, now: datetime) -> CanonicalRecord | None:
        """Build the canonical record for one observation, or None if rejected."""
        if not self.validator.validate(raw).ok:
            return None
        raw = self.validator.sanitize(raw)

        last_updated = resolve_last_updated(raw, default=now)
        origin = raw.source.value
        downloads = {origin: raw.downloads} if raw.downloads is not None else {}

        return CanonicalRecord(
            name=raw.name,
            description=raw.description,
            version=raw.version,
            source=raw.source,
            source_url=raw.source_url,
            last_updated=last_updated,
            normalized_name=normalize_name(raw.name),
            source_urls={origin: raw.source_url},
            downloads=downloads,
            popularity_score=calculate_popularity_score(raw.stars, raw.downloads, last_updated, now),
            stars=raw.stars,
            forks=raw.forks,
            repository=raw.repository,
            license=raw.license,
            author=raw.author,
            keywords=list(raw.keywords),
            readme=raw.readme,
            is_active=is_active(last_updated, now, self.active_days),
            categories=categorize(raw.name, raw.description, raw.keywords, raw.readme),
            compatibility=check_compatibility(raw.description, raw.readme),
            installation_instructions=generate_instructions(raw.name, raw.version, raw.source, raw.readme),
        )

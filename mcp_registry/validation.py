"""
Validation and sanitization of raw collector records.

Rejected records are dropped; a malformed repository URL only clears
that field. Both outcomes are recorded as validation failures for the
run metadata.
"""

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlparse

from loguru import logger

from mcp_registry.config import README_MAX_BYTES
from mcp_registry.models import RawRecord, ValidationFailure, parse_timestamp, utcnow
from mcp_registry.normalizers import normalize_name
from mcp_registry.utils.text import sanitize_text

# Attribute name -> field name reported in the failure log
REQUIRED_FIELDS = {
    "name": "name",
    "description": "description",
    "version": "version",
    "source_url": "sourceUrl",
}


@dataclass
class ValidationResult:
    """Outcome of validating one record."""

    ok: bool
    field: str | None = None
    reason: str | None = None


def is_valid_url(url: str | None) -> bool:
    """Check for an absolute URL with a scheme and a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


class RecordValidator:
    """
    Validates and sanitizes raw records, keeping a failure log.

    One instance is used per run; its failures are reported in the run metadata.
    """

    def __init__(self):
        self.validation_failures: list[ValidationFailure] = []

    def validate(self, record: RawRecord) -> ValidationResult:
        """
        Check a raw record's required fields and URLs.

        A malformed repository URL is cleared on the record in place
        rather than rejecting it.

        Args:
            record: Raw record from a collector

        Returns:
            ValidationResult (ok, or the failing field and reason)
        """
        for attr, field_name in REQUIRED_FIELDS.items():
            value = getattr(record, attr, None)
            # Blank once sanitized counts as missing
            if not value or (isinstance(value, str) and not sanitize_text(value)):
                return self._reject(record, field_name, "missing or empty")

        if not is_valid_url(record.source_url):
            return self._reject(record, "sourceUrl", "invalid URL format")

        if not normalize_name(record.name):
            return self._reject(record, "name", "no usable characters for a normalized name")

        if record.last_updated is not None:
            try:
                parse_timestamp(record.last_updated)
            except ValueError:
                return self._reject(record, "lastUpdated", "invalid timestamp")

        if record.repository and not is_valid_url(record.repository):
            logger.warning(f"Invalid repository URL for {record.name}: {record.repository}")
            self.record_failure(record.name, "repository", "invalid URL format, field cleared")
            record.repository = None

        return ValidationResult(ok=True)

    def sanitize(self, record: RawRecord) -> RawRecord:
        """Sanitize the free-text fields of a validated record in place."""
        record.name = sanitize_text(record.name)
        record.description = sanitize_text(record.description)
        record.version = sanitize_text(record.version)
        if record.readme:
            record.readme = sanitize_text(record.readme, max_bytes=README_MAX_BYTES)
        if record.keywords:
            record.keywords = [k for k in (sanitize_text(k) for k in record.keywords) if k]
        return record

    def record_failure(self, record_name: str | None, field: str, reason: str) -> None:
        failure = ValidationFailure(
            timestamp=utcnow().isoformat(),
            field=field,
            value=record_name or "",
            reason=reason,
        )
        self.validation_failures.append(failure)
        logger.warning(f"Validation failure - {record_name}.{field}: {reason}")

    def _reject(self, record: RawRecord, field: str, reason: str) -> ValidationResult:
        self.record_failure(record.name, field, reason)
        return ValidationResult(ok=False, field=field, reason=reason)


def resolve_last_updated(record: RawRecord, default: datetime | None = None) -> datetime:
    """Timestamp of a validated record, falling back to the caller's default."""
    if record.last_updated is None:
        return default or utcnow()
    return parse_timestamp(record.last_updated)

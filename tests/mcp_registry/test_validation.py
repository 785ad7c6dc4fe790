# SPDX-License-Identifier: MIT
"""Tests for record validation and text sanitization."""

import pytest

from mcp_registry.config import README_MAX_BYTES
from mcp_registry.utils.text import sanitize_text, truncate_bytes
from mcp_registry.validation import RecordValidator, is_valid_url, resolve_last_updated


class TestSanitizeText:
    """Test free-text cleaning."""

    def test_removes_nul_and_triple_spaces(self):
        """NUL bytes and whitespace runs are gone."""
        result = sanitize_text("hello\x00world   again")
        assert "\x00" not in result
        assert "   " not in result
        assert result == "hello world again"

    def test_control_characters_and_trim(self):
        """Control characters become spaces; ends are trimmed."""
        assert sanitize_text("\t line\r\none \x7f ") == "line one"

    def test_empty(self):
        assert sanitize_text(None) == ""
        assert sanitize_text("") == ""

    def test_truncates_raw_bytes(self):
        """Truncation counts UTF-8 bytes and never splits a character."""
        assert sanitize_text("a" * 10, max_bytes=4) == "aaaa"
        assert truncate_bytes("héllo", 2) == "h"
        assert truncate_bytes("short", 100) == "short"


class TestIsValidUrl:
    """Test URL checks."""

    @pytest.mark.parametrize("url", ["https://example.com", "http://x.org/path?q=1", "git+https://github.com/x/y.git"])
    def test_valid(self, url):
        assert is_valid_url(url)

    @pytest.mark.parametrize("url", ["not-a-url", "", None, "example.com/x", "https://"])
    def test_invalid(self, url):
        assert not is_valid_url(url)


class TestRecordValidator:
    """Test record rejection and downgrades."""

    def test_valid_record(self, make_raw):
        validator = RecordValidator()
        result = validator.validate(make_raw())
        assert result.ok
        assert validator.validation_failures == []

    def test_rejects_bad_source_url(self, make_raw):
        """A non-URL sourceUrl is rejected with exactly one failure entry."""
        validator = RecordValidator()
        result = validator.validate(make_raw(name="broken", source_url="not-a-url"))

        assert not result.ok
        assert result.field == "sourceUrl"
        assert len(validator.validation_failures) == 1
        failure = validator.validation_failures[0]
        assert failure.field == "sourceUrl"
        assert failure.value == "broken"
        assert failure.reason == "invalid URL format"

    @pytest.mark.parametrize(
        "attr,field",
        [("name", "name"), ("description", "description"), ("version", "version"), ("source_url", "sourceUrl")],
    )
    def test_rejects_missing_required_field(self, make_raw, attr, field):
        validator = RecordValidator()
        result = validator.validate(make_raw(**{attr: "   "}))

        assert not result.ok
        assert result.field == field
        assert result.reason == "missing or empty"
        assert len(validator.validation_failures) == 1

    def test_rejects_control_character_only_description(self, make_raw):
        """A field that sanitizes to nothing is as good as missing."""
        validator = RecordValidator()
        result = validator.validate(make_raw(description="\x00\x01\x02"))
        assert not result.ok
        assert result.field == "description"
        assert result.reason == "missing or empty"

    def test_rejects_name_without_usable_characters(self, make_raw):
        validator = RecordValidator()
        result = validator.validate(make_raw(name="!!!"))
        assert not result.ok
        assert result.field == "name"

    def test_rejects_unparseable_timestamp(self, make_raw):
        validator = RecordValidator()
        result = validator.validate(make_raw(last_updated="yesterday"))
        assert not result.ok
        assert result.field == "lastUpdated"

    def test_bad_repository_is_cleared_not_rejected(self, make_raw):
        """A malformed repository only clears that field."""
        validator = RecordValidator()
        record = make_raw(repository="not a url")
        result = validator.validate(record)

        assert result.ok
        assert record.repository is None
        assert len(validator.validation_failures) == 1
        assert validator.validation_failures[0].field == "repository"
        assert validator.validation_failures[0].reason == "invalid URL format, field cleared"

    def test_failures_accumulate(self, make_raw):
        validator = RecordValidator()
        validator.validate(make_raw(source_url="nope"))
        validator.validate(make_raw(description=""))
        assert [f.field for f in validator.validation_failures] == ["sourceUrl", "description"]

    def test_failure_serialization(self, make_raw):
        validator = RecordValidator()
        validator.validate(make_raw(name="x", source_url="nope"))
        data = validator.validation_failures[0].to_dict()
        assert set(data) == {"timestamp", "field", "value", "reason"}

    def test_sanitize(self, make_raw):
        """Free text is cleaned and the README is capped."""
        validator = RecordValidator()
        record = validator.sanitize(
            make_raw(
                description="multi\nline   text",
                keywords=["mcp", "  ", "ai\x00"],
                readme="x" * (README_MAX_BYTES + 100),
            )
        )
        assert record.description == "multi line text"
        assert record.keywords == ["mcp", "ai"]
        assert len(record.readme.encode("utf-8")) == README_MAX_BYTES


class TestResolveLastUpdated:
    """Test timestamp defaults."""

    def test_uses_default_when_missing(self, make_raw, now):
        assert resolve_last_updated(make_raw(last_updated=None), default=now) == now

    def test_parses_iso_string(self, make_raw):
        ts = resolve_last_updated(make_raw(last_updated="2024-01-02T03:04:05Z"))
        assert ts.isoformat() == "2024-01-02T03:04:05+00:00"

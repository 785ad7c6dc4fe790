# SPDX-License-Identifier: MIT
"""Tests for the key-value stores and dataset sinks."""

import pytest

from mcp_registry.config import StorageSettings
from mcp_registry.database import drop_all_tables
from mcp_registry.storage import (
    FileKeyValueStore,
    JsonlDataset,
    SqlDataset,
    SqlKeyValueStore,
    StorageError,
    get_json,
    open_dataset,
    open_key_value_store,
    set_json,
)


class TestSqlKeyValueStore:
    """Test the SQL blob store."""

    def test_get_missing(self, sql_engine):
        assert SqlKeyValueStore(bind=sql_engine).get("nope") is None

    def test_set_and_overwrite(self, sql_engine):
        store = SqlKeyValueStore(bind=sql_engine)
        store.set("key", "one")
        store.set("key", "two")
        assert store.get("key") == "two"

    def test_errors_wrapped(self, sql_engine):
        store = SqlKeyValueStore(bind=sql_engine)
        drop_all_tables(sql_engine)
        with pytest.raises(StorageError):
            store.get("key")


class TestFileKeyValueStore:
    """Test the file blob store."""

    def test_set_and_get(self, tmp_path):
        store = FileKeyValueStore(tmp_path / "kv")
        assert store.get("dedup-state-run-1") is None
        store.set("dedup-state-run-1", '{"a": 1}')
        assert store.get("dedup-state-run-1") == '{"a": 1}'
        assert (tmp_path / "kv" / "dedup-state-run-1.json").exists()

    def test_unsafe_key_characters(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        path = store.path_for("../escape/key")
        assert path.parent == tmp_path

    def test_no_temp_file_left(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("key", "value")
        assert [p.name for p in tmp_path.iterdir()] == ["key.json"]


class TestJsonHelpers:
    """Test JSON blob helpers."""

    def test_round_trip(self, kv_store):
        set_json(kv_store, "meta", {"runId": "r", "count": 3})
        assert get_json(kv_store, "meta") == {"runId": "r", "count": 3}

    def test_missing(self, kv_store):
        assert get_json(kv_store, "missing") is None


class TestDatasets:
    """Test record sinks."""

    def test_sql_dataset_batches(self, sql_engine, make_canonical):
        dataset = SqlDataset("run-1", bind=sql_engine, batch_size=2)
        written = dataset.push([make_canonical("a"), make_canonical("b"), make_canonical("c")])

        assert written == 3
        assert [item["name"] for item in dataset.items()] == ["a", "b", "c"]

    def test_sql_dataset_scoped_by_run(self, sql_engine, make_canonical):
        SqlDataset("run-1", bind=sql_engine).push([make_canonical("a")])
        assert SqlDataset("run-2", bind=sql_engine).items() == []

    def test_jsonl_dataset_appends(self, tmp_path, make_canonical):
        dataset = JsonlDataset(tmp_path / "out" / "run.jsonl", batch_size=1)
        dataset.push([make_canonical("a")])
        dataset.push([make_canonical("b")])

        items = dataset.items()
        assert [item["name"] for item in items] == ["a", "b"]
        assert items[0]["sourceUrls"] == {"npm": "https://example.com/npm/a"}

    def test_jsonl_dataset_empty(self, tmp_path):
        assert JsonlDataset(tmp_path / "none.jsonl").items() == []


class TestBackendSelection:
    """Test choosing backends from settings."""

    def test_file_backend(self, tmp_path):
        storage = StorageSettings(backend="file", data_dir=tmp_path)
        assert isinstance(open_key_value_store(storage), FileKeyValueStore)
        assert isinstance(open_dataset("run-1", storage), JsonlDataset)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            StorageSettings(backend="redis")

# SPDX-License-Identifier: MIT
"""Tests for the deduplication store."""

import json

from mcp_registry.deduplication import (
    DEFAULT_STRATEGIES,
    DeduplicationStore,
    LookupStrategy,
    NameKeyLookup,
    RepositoryKeyLookup,
    StoreStatus,
    deserialize_state,
    serialize_state,
)
from mcp_registry.deduplication.strategies import CandidateKeys
from mcp_registry.models import Origin, UpdateMode


class TestDedupe:
    """Test folding records into the store."""

    def test_name_spelling_variants_give_one_record(self, make_canonical):
        """"MCP-Server" and "mcp_server" are the same entity."""
        store = DeduplicationStore("run-1")
        survivors = store.dedupe([
            make_canonical("MCP-Server", source=Origin.NPM),
            make_canonical("mcp_server", source=Origin.PYPI),
        ])

        assert len(survivors) == 1
        assert store.duplicates_removed == 1
        assert set(survivors[0].source_urls) == {"npm", "pypi"}

    def test_repository_variants_give_one_record(self, make_canonical):
        """Different names with the same repository key merge."""
        store = DeduplicationStore("run-1")
        survivors = store.dedupe([
            make_canonical("server-x", source=Origin.GITHUB, repository="https://github.com/x/y"),
            make_canonical("totally-different", source=Origin.NPM, repository="git@github.com:x/y.git"),
        ])

        assert len(survivors) == 1
        assert set(survivors[0].source_urls) == {"github", "npm"}
        assert survivors[0].name == "server-x"

    def test_distinct_records_all_survive_in_order(self, make_canonical):
        store = DeduplicationStore("run-1")
        survivors = store.dedupe([make_canonical("alpha"), make_canonical("beta"), make_canonical("gamma")])

        assert [r.name for r in survivors] == ["alpha", "beta", "gamma"]
        assert store.duplicates_removed == 0
        assert len(store.records()) == 3

    def test_merges_into_first_seen(self, make_canonical):
        store = DeduplicationStore("run-1")
        first = make_canonical("demo", source=Origin.GITHUB, description="from github", stars=10)
        store.dedupe([first, make_canonical("demo", source=Origin.NPM, description="from npm", downloads={"npm": 5})])

        assert first.description == "from github"
        assert first.downloads == {"npm": 5}
        assert first.stars == 10

    def test_idempotent_on_survivors(self, make_canonical):
        """Deduping the survivors again on a fresh store changes nothing."""
        records = [
            make_canonical("MCP-Server", source=Origin.GITHUB, repository="https://github.com/a/one"),
            make_canonical("mcp_server", source=Origin.NPM),
            make_canonical("other", source=Origin.NPM, repository="https://github.com/a/one.git"),
            make_canonical("third", source=Origin.PYPI, repository="https://github.com/a/three"),
            make_canonical("fourth", source=Origin.PYPI),
        ]
        first_pass = DeduplicationStore("run-1").dedupe(records)
        second_pass = DeduplicationStore("run-2").dedupe(first_pass)

        assert [r.normalized_name for r in second_pass] == [r.normalized_name for r in first_pass]
        assert len(first_pass) == 3

    def test_repository_adopted_when_unclaimed(self, make_canonical):
        """A match by name fills a missing repository and indexes it."""
        store = DeduplicationStore("run-1")
        first = make_canonical("demo", source=Origin.PYPI, repository=None)
        store.dedupe([first, make_canonical("demo", source=Origin.GITHUB, repository="https://github.com/o/demo")])

        assert first.repository == "https://github.com/o/demo"
        survivors = store.dedupe([make_canonical("renamed", source=Origin.NPM, repository="git@github.com:o/demo.git")])
        assert survivors == []
        assert set(first.source_urls) == {"pypi", "github", "npm"}

    def test_repository_not_adopted_when_claimed(self, make_canonical):
        """A repository key already owned by another record stays with its owner."""
        store = DeduplicationStore("run-1")
        owner = make_canonical("owner", repository="https://github.com/o/shared")
        other = make_canonical("other", repository=None)
        store.dedupe([owner, other])

        store.dedupe([make_canonical("other", source=Origin.GITHUB, repository="https://github.com/o/shared")])

        assert other.repository is None
        assert store.state.repository_urls == {"github.com/o/shared": store.state.normalized_names["owner"]}

    def test_name_lookup_wins_over_repository(self, make_canonical):
        store = DeduplicationStore("run-1")
        by_name = make_canonical("alpha")
        by_repo = make_canonical("beta", repository="https://github.com/o/beta")
        store.dedupe([by_name, by_repo])

        store.dedupe([make_canonical("alpha", repository="https://github.com/o/beta", readme="merged here")])

        assert by_name.readme == "merged here"
        assert by_repo.readme is None

    def test_dangling_key_treated_as_new(self, make_canonical):
        """A key map entry whose record is gone does not match."""
        store = DeduplicationStore("run-1")
        store.dedupe([make_canonical("ghost")])
        store.state.server_map.clear()

        survivors = store.dedupe([make_canonical("ghost")])
        assert len(survivors) == 1

    def test_composite_key_collision_gets_fresh_key(self, make_canonical):
        store = DeduplicationStore("run-1")
        store.dedupe([make_canonical("ghost")])
        old_key = store.state.normalized_names["ghost"]
        store.state.normalized_names.clear()

        store.dedupe([make_canonical("ghost")])
        assert len(store.state.server_map) == 2
        assert store.state.normalized_names["ghost"] != old_key

    def test_custom_strategy_order(self, make_canonical):
        store = DeduplicationStore("run-1", strategies=[RepositoryKeyLookup()])
        store.dedupe([make_canonical("alpha")])
        survivors = store.dedupe([make_canonical("alpha")])
        assert len(survivors) == 1


class TestLookupStrategies:
    """Test individual strategies."""

    def test_find_returns_match_with_key(self, make_canonical):
        store = DeduplicationStore("run-1")
        record = make_canonical("alpha", source=Origin.GITHUB, repository="https://github.com/o/alpha")
        store.dedupe([record])

        match = NameKeyLookup().find(store.state, CandidateKeys(name="alpha"))
        assert match.record is record
        assert match.composite_key == "github:alpha"
        assert match.strategy == "name"

        match = RepositoryKeyLookup().find(store.state, CandidateKeys(name="x", repository="github.com/o/alpha"))
        assert match.record is record
        assert match.strategy == "repository"

    def test_default_strategies_are_named(self):
        assert [s.name for s in DEFAULT_STRATEGIES] == ["name", "repository"]
        assert LookupStrategy.name is None

    def test_missing_keys(self):
        store = DeduplicationStore("run-1")
        assert NameKeyLookup().find(store.state, CandidateKeys(name="")) is None
        assert RepositoryKeyLookup().find(store.state, CandidateKeys(name="a", repository=None)) is None


class TestLoadSave:
    """Test persistence of the store state."""

    def test_lifecycle(self, kv_store):
        store = DeduplicationStore("run-1", kv_store=kv_store)
        assert store.status is StoreStatus.UNINITIALIZED
        store.load()
        assert store.status is StoreStatus.LOADED
        assert store.save() is True
        assert store.status is StoreStatus.SAVED

    def test_save_blob_shape(self, kv_store, make_canonical):
        store = DeduplicationStore("run-1", kv_store=kv_store)
        store.dedupe([make_canonical("alpha", repository="https://github.com/o/alpha")])
        store.save()

        blob = json.loads(kv_store.data["dedup-state-run-1"])
        assert set(blob) == {"runId", "serverMap", "normalizedNames", "repositoryUrls", "lastRunTimestamp", "updateMode"}
        assert blob["runId"] == "run-1"
        assert blob["updateMode"] == "full"
        assert blob["normalizedNames"] == [["alpha", "npm:alpha"]]
        assert blob["repositoryUrls"] == [["github.com/o/alpha", "npm:alpha"]]
        assert blob["serverMap"][0][0] == "npm:alpha"
        assert blob["serverMap"][0][1]["normalizedName"] == "alpha"

    def test_incremental_run_reloads_state(self, kv_store, make_canonical):
        """Records from a saved run are matched, not re-emitted."""
        first = DeduplicationStore("nightly", kv_store=kv_store)
        first.dedupe([make_canonical("alpha", downloads={"npm": 1}), make_canonical("beta")])
        first.save()

        second = DeduplicationStore("nightly", UpdateMode.INCREMENTAL, kv_store)
        second.load()
        survivors = second.dedupe([make_canonical("alpha", downloads={"npm": 99}), make_canonical("gamma")])

        assert [r.name for r in survivors] == ["gamma"]
        assert len(second.records()) == 3
        alpha = next(r for r in second.records() if r.name == "alpha")
        assert alpha.downloads == {"npm": 99}
        assert second.previous_run_timestamp is not None

    def test_full_mode_ignores_saved_state(self, kv_store, make_canonical):
        first = DeduplicationStore("nightly", kv_store=kv_store)
        first.dedupe([make_canonical("alpha")])
        first.save()

        second = DeduplicationStore("nightly", UpdateMode.FULL, kv_store)
        second.load()
        assert second.dedupe([make_canonical("alpha")])[0].name == "alpha"

    def test_corrupt_blob_falls_back_to_empty(self, kv_store, make_canonical):
        kv_store.set("dedup-state-run-1", "{not json")
        store = DeduplicationStore("run-1", UpdateMode.INCREMENTAL, kv_store)
        store.load()

        assert store.status is StoreStatus.LOADED
        assert store.records() == []
        assert len(store.dedupe([make_canonical("alpha")])) == 1

    def test_wrong_shape_falls_back_to_empty(self, kv_store):
        kv_store.set("dedup-state-run-1", json.dumps({"serverMap": "nope"}))
        store = DeduplicationStore("run-1", UpdateMode.INCREMENTAL, kv_store)
        store.load()
        assert store.records() == []

    def test_failing_storage_never_raises(self, failing_kv_store, make_canonical):
        store = DeduplicationStore("run-1", UpdateMode.INCREMENTAL, failing_kv_store)
        store.load()
        assert store.records() == []
        store.dedupe([make_canonical("alpha")])

        assert store.save() is False
        assert store.status is StoreStatus.LOADED

    def test_save_without_storage(self):
        assert DeduplicationStore("run-1").save() is False

    def test_dedupe_loads_implicitly(self, make_canonical):
        store = DeduplicationStore("run-1")
        store.dedupe([make_canonical("alpha")])
        assert store.status is StoreStatus.LOADED

    def test_state_round_trip(self, make_canonical):
        store = DeduplicationStore("run-1")
        store.dedupe([make_canonical("alpha", repository="https://github.com/o/a", readme="hi", stars=3)])

        restored = deserialize_state(json.loads(json.dumps(serialize_state(store.state))))

        assert restored.normalized_names == store.state.normalized_names
        assert restored.repository_urls == store.state.repository_urls
        assert restored.server_map["npm:alpha"].to_dict() == store.state.server_map["npm:alpha"].to_dict()

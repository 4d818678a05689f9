"""Tests for the graph store sync bridge."""

from unittest.mock import MagicMock

import pytest

from lspgraph.graph_sync import GraphSyncBridge, StoreCapabilities
from lspgraph.models import GraphEdge, GraphOperations, MemoryEntry


def _entry(key, content=None):
    return MemoryEntry(content=content or f"content of {key}", tags=["lsp", "function-def"], key=key)


def _ops(keys, edges=()):
    return GraphOperations(
        memory_entries=[_entry(k) for k in keys],
        graph_edges=[GraphEdge(a, b, "depends-on") for a, b in edges],
        stats={},
    )


class TestDegradedMode:

    def test_no_index_capability(self):
        bridge = GraphSyncBridge(StoreCapabilities())

        result = bridge.sync("proj", _ops(["ns:a/x", "ns:a/y"], [("ns:a/x", "ns:a/y")]))

        assert (result.created, result.edges, result.errors) == (0, 0, [])
        assert not bridge.available()

    def test_unconfigured_store_resolves_to_nothing(self):
        bridge = GraphSyncBridge()
        assert not bridge.available()
        assert bridge.sync("proj", _ops(["ns:a/x"])).to_dict() == {"created": 0, "edges": 0, "errors": []}

    def test_configured_store_is_picked_up(self, monkeypatch, fake_store):
        monkeypatch.setattr("lspgraph.graph_sync.resolve_callable", lambda path: {
            "store:index": fake_store.index,
            "store:add_edge": fake_store.add_edge,
        }.get(path))
        monkeypatch.setattr("lspgraph.config.STORE_CAPABILITIES", {
            "index": "store:index", "add_edge": "store:add_edge",
        })

        bridge = GraphSyncBridge()

        assert bridge.available()
        assert bridge.sync("proj", _ops(["ns:a/x"])).created == 1


class TestSync:

    def test_creates_entries_then_edges(self, fake_store):
        bridge = GraphSyncBridge(fake_store.capabilities())

        result = bridge.sync("proj", _ops(["ns:a/x", "ns:a/y"], [("ns:a/x", "ns:a/y")]), scope="scope:proj")

        assert result.created == 2
        assert result.edges == 1
        assert result.errors == []
        assert fake_store.edges == [{
            "from": "id-1",
            "to": "id-2",
            "relation": "depends-on",
            "scope": "scope:proj",
            "confidence": 1.0,
            "source_type": "automated",
            "created_by": "lsp-mcp",
        }]

    def test_entry_payload(self, fake_store):
        GraphSyncBridge(fake_store.capabilities()).sync("proj", _ops(["ns:a/x"]))

        payload = fake_store.entries[0]
        assert payload["type"] == "snippet"
        assert payload["content"] == "content of ns:a/x"
        assert payload["duration"] == "medium"
        assert payload["project_id"] == "proj"
        assert payload["content_hash"] == fake_store.content_hash("content of ns:a/x")
        assert payload["tags"] == ["lsp", "function-def", "scope:project:proj"]

    def test_without_optional_capabilities(self, fake_store):
        caps = fake_store.capabilities(content_hash=None, find_duplicate=None, inject_scope=None)

        GraphSyncBridge(caps).sync("proj", _ops(["ns:a/x"]))

        payload = fake_store.entries[0]
        assert "content_hash" not in payload
        assert payload["tags"] == ["lsp", "function-def"]

    def test_duplicate_is_reused_without_indexing(self, fake_store):
        index = MagicMock()
        find_duplicate = MagicMock(return_value={"id": "existing-7"})
        caps = fake_store.capabilities(index=index, find_duplicate=find_duplicate)

        result = GraphSyncBridge(caps).sync("proj", _ops(["ns:a/x"]))

        index.assert_not_called()
        find_duplicate.assert_called_once_with(
            "snippet", fake_store.content_hash("content of ns:a/x"), project_id="proj",
        )
        assert result.created == 1

    def test_duplicate_as_plain_id(self, fake_store):
        caps = fake_store.capabilities(find_duplicate=lambda *_a, **_kw: "existing-1")
        bridge = GraphSyncBridge(caps)

        result = bridge.sync("proj", _ops(["ns:a/x", "ns:a/y"], [("ns:a/x", "ns:a/y")]))

        assert result.created == 2
        assert fake_store.entries == []
        assert fake_store.edges[0]["from"] == fake_store.edges[0]["to"] == "existing-1"

    def test_unresolved_edges_are_skipped_silently(self, fake_store):
        ops = _ops(["ns:a/x"], [("ns:a/x", "ns:clojure.core/map"), ("ns:b", "ns:c")])

        result = GraphSyncBridge(fake_store.capabilities()).sync("proj", ops)

        assert result.edges == 0
        assert result.errors == []
        assert fake_store.edges == []

    def test_failing_index_records_entry_error(self, fake_store):
        calls = {"n": 0}

        def flaky_index(entry):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("store down")
            return f"id-{calls['n']}"

        caps = fake_store.capabilities(index=flaky_index)
        ops = _ops(["ns:a/x", "ns:a/y", "ns:a/z"], [("ns:a/x", "ns:a/y"), ("ns:a/x", "ns:a/z")])

        result = GraphSyncBridge(caps).sync("proj", ops)

        assert result.created == 2
        assert result.errors == ["Failed entry: ns:a/y"]
        assert result.edges == 1

    def test_index_returning_nothing_is_a_failure(self, fake_store):
        result = GraphSyncBridge(fake_store.capabilities(index=lambda e: None)).sync("proj", _ops(["ns:a/x"]))
        assert result.errors == ["Failed entry: ns:a/x"]

    def test_failing_add_edge_records_edge_error(self, fake_store):
        caps = fake_store.capabilities(add_edge=MagicMock(side_effect=RuntimeError("nope")))

        result = GraphSyncBridge(caps).sync("proj", _ops(["ns:a/x", "ns:a/y"], [("ns:a/x", "ns:a/y")]))

        assert result.created == 2
        assert result.edges == 0
        assert result.errors == ["Failed edge: ns:a/x -> ns:a/y"]

    def test_missing_add_edge_with_resolvable_edges(self, fake_store):
        caps = fake_store.capabilities(add_edge=None)

        result = GraphSyncBridge(caps).sync("proj", _ops(["ns:a/x", "ns:a/y"], [("ns:a/x", "ns:a/y")]))

        assert result.created == 2
        assert result.errors == ["Failed edge: ns:a/x -> ns:a/y"]

    @pytest.mark.parametrize("n", [0, 1, 5])
    def test_created_never_exceeds_entries(self, fake_store, n):
        keys = [f"ns:a/f{i}" for i in range(n)]
        result = GraphSyncBridge(fake_store.capabilities()).sync("proj", _ops(keys))
        assert result.created == n


class TestAvailability:

    @pytest.mark.parametrize("overrides,expected", [
        ({}, True),
        ({"index": None}, False),
        ({"add_edge": None}, False),
        ({"find_duplicate": None, "content_hash": None, "inject_scope": None}, True),
    ])
    def test_available(self, fake_store, overrides, expected):
        assert GraphSyncBridge(fake_store.capabilities(**overrides)).available() is expected

"""Tests for request-level analysis memoization."""

from unittest.mock import MagicMock

import pytest

from lspgraph.memo import RequestMemoizer


@pytest.fixture
def analyze():
    return MagicMock(side_effect=lambda root: {"analysis": {}, "root": root})


@pytest.fixture
def memo(analyze, clock):
    return RequestMemoizer(analyze, ttl_ms=30_000, clock_ms=lambda: clock["now"])


class TestRequestMemoizer:

    def test_same_root_within_ttl_analyzes_once(self, memo, analyze, clock):
        first = memo.cached_analyze("/proj")
        clock["now"] += 29_999
        second = memo.cached_analyze("/proj")

        assert first is second
        assert analyze.call_count == 1

    def test_expires_after_ttl(self, memo, analyze, clock):
        memo.cached_analyze("/proj")
        clock["now"] += 30_000
        memo.cached_analyze("/proj")

        assert analyze.call_count == 2

    def test_different_root_evicts(self, memo, analyze):
        memo.cached_analyze("/proj-a")
        memo.cached_analyze("/proj-b")
        memo.cached_analyze("/proj-a")

        assert [c.args[0] for c in analyze.call_args_list] == ["/proj-a", "/proj-b", "/proj-a"]

    def test_invalidate_forces_reanalysis(self, memo, analyze):
        memo.cached_analyze("/proj")
        memo.invalidate()
        memo.cached_analyze("/proj")

        assert analyze.call_count == 2

    def test_invalidate_on_empty_slot(self, memo, analyze):
        memo.invalidate()
        memo.cached_analyze("/proj")
        assert analyze.call_count == 1

    def test_error_results_are_memoized_too(self, clock):
        analyze = MagicMock(return_value={"error": "No analysis available for proj"})
        memo = RequestMemoizer(analyze, ttl_ms=30_000, clock_ms=lambda: clock["now"])

        memo.cached_analyze("/proj")
        assert memo.cached_analyze("/proj") == {"error": "No analysis available for proj"}
        assert analyze.call_count == 1

    def test_default_ttl_from_config(self, analyze, monkeypatch):
        monkeypatch.setattr("lspgraph.config.MEMO_TTL_MS", 1234)
        assert RequestMemoizer(analyze).ttl_ms == 1234

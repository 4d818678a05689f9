"""Pytest configuration and fixtures for lspgraph tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List

import pytest

from lspgraph.cache import AnalysisCache
from lspgraph.graph_sync import StoreCapabilities

NOW_MS = 1_700_000_000_000
NOW_S = NOW_MS // 1000


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep every test away from the real cache dir and external collaborators."""
    monkeypatch.setenv("LSP_CACHE_DIR", str(tmp_path / "default-cache"))
    monkeypatch.setattr("lspgraph.config.ANALYZER", "")
    monkeypatch.setattr(
        "lspgraph.config.STORE_CAPABILITIES",
        {name: "" for name in ("index", "find_duplicate", "add_edge", "content_hash", "inject_scope")},
    )
    monkeypatch.setattr("lspgraph.cache._default_cache", None)
    monkeypatch.setattr("lspgraph.tools._orchestrator", None)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_snapshot() -> Dict[str, Any]:
    """Two project files, three definitions, one call, two namespaces, one jar entry."""
    return {
        "analysis": {
            "file://src/my/app/core.clj": {
                "var-definitions": [
                    {"ns": "my.app.core", "name": "start!", "row": 10, "col": 1,
                     "arglist-strs": ["[config]"], "private": False, "macro": False,
                     "defined-by": "clojure.core/defn"},
                    {"ns": "my.app.core", "name": "stop!", "row": 25, "col": 1,
                     "arglist-strs": ["[]"], "private": False, "macro": False,
                     "defined-by": "clojure.core/defn"},
                ],
                "var-usages": [
                    {"from": "my.app.core", "from-var": "start!",
                     "to": "my.app.db", "name": "connect", "row": 12},
                ],
            },
            "file://src/my/app/db.clj": {
                "var-definitions": [
                    {"ns": "my.app.db", "name": "connect", "row": 5, "col": 1,
                     "arglist-strs": None, "private": False, "macro": False,
                     "defined-by": "clojure.core/def"},
                ],
                "var-usages": [],
            },
        },
        "dep-graph": {
            "my.app.core": {"dependencies": {"my.app.db": 1}, "dependents": {}, "internal?": True},
            "my.app.db": {"dependencies": {}, "dependents": {"my.app.core": 1}, "internal?": True},
        },
    }


@pytest.fixture
def fresh_meta() -> Dict[str, Any]:
    return {"timestamp": NOW_S - 30, "duration-ms": 1500, "project-id": "test-project", "status": "ok"}


@pytest.fixture
def stale_meta() -> Dict[str, Any]:
    return {"timestamp": 0, "duration-ms": 2000, "project-id": "test-project", "status": "ok"}


@pytest.fixture
def error_meta() -> Dict[str, Any]:
    return {"timestamp": NOW_S, "duration-ms": 500, "project-id": "test-project",
            "status": "error", "exit-code": 1}


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    path = temp_dir / "cache"
    path.mkdir()
    return path


@pytest.fixture
def write_cache(cache_dir: Path) -> Callable[..., Path]:
    """Write ``dump.json``/``meta.json`` for a project; raw strings are written as-is."""

    def _write(project_id: str, dump: Any = None, meta: Any = None) -> Path:
        project_dir = cache_dir / project_id
        project_dir.mkdir(parents=True, exist_ok=True)
        for filename, payload in (("dump.json", dump), ("meta.json", meta)):
            if payload is None:
                continue
            text = payload if isinstance(payload, str) else json.dumps(payload)
            (project_dir / filename).write_text(text, encoding="utf-8")
        return project_dir

    return _write


@pytest.fixture
def clock() -> Dict[str, int]:
    """Mutable fake clock; tests advance ``clock["now"]``."""
    return {"now": NOW_MS}


@pytest.fixture
def cache(cache_dir: Path, clock: Dict[str, int]) -> AnalysisCache:
    return AnalysisCache(cache_dir=cache_dir, clock_ms=lambda: clock["now"])


class FakeStore:
    """In-memory stand-in for the external knowledge-graph store."""

    def __init__(self) -> None:
        self.entries: List[Dict[str, Any]] = []
        self.edges: List[Dict[str, Any]] = []

    def index(self, entry: Dict[str, Any]) -> str:
        self.entries.append(entry)
        return f"id-{len(self.entries)}"

    def add_edge(self, edge: Dict[str, Any]) -> str:
        self.edges.append(edge)
        return f"edge-{len(self.edges)}"

    @staticmethod
    def content_hash(content: str) -> str:
        return f"hash-{len(content)}-{content[:8]}"

    @staticmethod
    def inject_scope(tags: List[str], project_id: str) -> List[str]:
        return list(tags) + [f"scope:project:{project_id}"]

    def capabilities(self, **overrides: Any) -> StoreCapabilities:
        values = dict(
            index=self.index,
            add_edge=self.add_edge,
            content_hash=self.content_hash,
            find_duplicate=lambda *_args, **_kw: None,
            inject_scope=self.inject_scope,
        )
        values.update(overrides)
        return StoreCapabilities(**values)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()

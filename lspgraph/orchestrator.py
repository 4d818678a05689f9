"""Pipeline orchestration: analyze -> extract -> transform -> sync."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from .analysis import AnalysisSource, project_id_from_root
from .cache import AnalysisCache, default_cache
from .extract import extract_call_graph, extract_namespace_graph, extract_var_definitions
from .graph_sync import GraphSyncBridge
from .memo import RequestMemoizer
from .transform import analysis_to_graph_operations

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class AnalysisOrchestrator:
    """Coordinates the cache, analysis source, memoizer, and sync bridge."""

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        source: Optional[AnalysisSource] = None,
        memoizer: Optional[RequestMemoizer] = None,
        bridge: Optional[GraphSyncBridge] = None,
    ) -> None:
        self.cache = cache if cache is not None else default_cache()
        self.source = source if source is not None else AnalysisSource(cache=self.cache)
        self.memoizer = memoizer if memoizer is not None else RequestMemoizer(self.source.analyze_project)
        self.bridge = bridge if bridge is not None else GraphSyncBridge()

    def analyze(self, project_root: Any) -> Dict[str, Any]:
        """Raw analysis snapshot (cache-first, memoized) or an error map."""
        return self.memoizer.cached_analyze(project_root)

    def analyze_and_sync(
        self,
        project_root: Any,
        project_id: Optional[str] = None,
        scope: Any = None,
    ) -> Dict[str, Any]:
        logger.info("Starting analysis and sync for project-root: %s project-id: %s",
                    project_root, project_id)
        start = time.perf_counter()
        raw = self.analyze(project_root)
        analysis_ms = _elapsed_ms(start)
        if "error" in raw:
            logger.warning("Analysis unavailable for %s: %s", project_root, raw["error"])
            return {"error": raw["error"], "project_root": project_root}
        logger.info("Analysis completed in %.1f ms", analysis_ms)

        project_id = project_id or project_id_from_root(project_root)
        scope = scope or project_id

        definitions = extract_var_definitions(raw.get("analysis"))
        calls = extract_call_graph(raw.get("analysis"))
        ns_graph = extract_namespace_graph(raw.get("dep-graph"))
        operations = analysis_to_graph_operations(project_id, definitions, calls, ns_graph)

        sync_start = time.perf_counter()
        sync_result = self.bridge.sync(project_id, operations, scope)
        sync_ms = _elapsed_ms(sync_start)
        logger.info("Sync completed in %.1f ms", sync_ms)

        return {
            "analysis_stats": {
                "time_ms": analysis_ms,
                "var_defs": len(definitions),
                "calls": len(calls),
                "nses": len(ns_graph),
            },
            "sync_stats": {
                "time_ms": sync_ms,
                "result": sync_result.to_dict(),
            },
        }

    def status(self) -> Dict[str, Any]:
        return {
            "bridge_available": self.bridge.available(),
            "cache": self.cache.cache_status(),
        }

    def shutdown(self) -> None:
        """Drop memoized and in-memory parsed analysis."""
        self.memoizer.invalidate()
        self.cache.clear_memory()

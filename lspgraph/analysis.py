"""Analysis source: cache-first lookup with a synchronous analyzer fallback.

Strategy:

1. Try the snapshot cached on disk by the sidecar producer (fast).
2. Fall back to calling the external analyzer in-process, if one resolves.
3. Otherwise return an error map describing how to make analysis available.

:meth:`AnalysisSource.analyze_project` is total: whatever it is given, it
returns a mapping and never raises.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from . import config
from .cache import AnalysisCache, default_cache
from .capabilities import resolve_callable

logger = logging.getLogger(__name__)

Analyzer = Callable[..., Any]

ANALYSIS_FACETS = ("analysis", "dep-graph")

REMEDIATION_HINT = (
    "Start the LSP sidecar or configure an analyzer "
    "(LSPGRAPH_ANALYZER=module:function)."
)


def resolve_root(project_root: Any) -> Optional[Path]:
    """Absolute, user-expanded form of *project_root*; None when blank."""
    if not isinstance(project_root, str) or not project_root.strip():
        return None
    try:
        return Path(project_root.strip()).expanduser().resolve()
    except (OSError, RuntimeError) as exc:
        logger.debug("Cannot resolve project root %r: %s", project_root, exc)
        return None


def project_id_from_root(project_root: Any) -> Optional[str]:
    """Final segment of the resolved *project_root*, or None when there is none.

    ``.`` and ``..`` resolve against the working directory first, so the id
    is always a real directory name and never escapes the cache root.
    """
    root = resolve_root(project_root)
    if root is None:
        return None
    return root.name or None


class AnalysisSource:
    """Resolve raw analysis snapshots for project roots.

    Args:
        cache: snapshot cache reader; the process-wide one by default.
        analyzer: external analyzer callable. When omitted it is resolved
            lazily from configuration on every miss.
    """

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        analyzer: Optional[Analyzer] = None,
        analyzer_path: Optional[str] = None,
    ) -> None:
        self.cache = cache if cache is not None else default_cache()
        self._analyzer = analyzer
        self._analyzer_path = config.ANALYZER if analyzer_path is None else analyzer_path

    def resolve_analyzer(self) -> Optional[Analyzer]:
        if self._analyzer is not None:
            return self._analyzer
        return resolve_callable(self._analyzer_path)

    def analyze_project(
        self,
        project_root: Any,
        max_age_ms: Optional[int] = None,
        ignore_staleness: bool = False,
    ) -> Dict[str, Any]:
        if project_root is None or not isinstance(project_root, str) or not project_root.strip():
            return {"error": "Missing required parameter: project_root must be a non-blank path"}
        project_id = project_id_from_root(project_root)
        if project_id is None:
            return {
                "error": f"Cannot derive a project id from project_root {project_root!r}; "
                         "pass the project directory, not a filesystem root",
            }

        try:
            cached = self.cache.read_analysis(
                project_id, max_age_ms=max_age_ms, ignore_staleness=ignore_staleness,
            )
        except Exception as exc:
            logger.warning("Cache lookup failed for %s: %s", project_id, exc)
            cached = None
        if cached is not None:
            logger.info("Using cached analysis for %s", project_id)
            return cached

        logger.info("Cache miss for %s, trying in-process analyzer", project_id)
        analyzer = self.resolve_analyzer()
        if analyzer is None:
            logger.warning("No cache and no analyzer available for %s", project_id)
            return {
                "error": f"No analysis available for {project_id}. {REMEDIATION_HINT}",
            }

        try:
            result = analyzer(
                resolve_root(project_root),
                facets=ANALYSIS_FACETS,
                project_only=True,
            )
        except Exception as exc:
            logger.error("In-process analysis failed for %s: %s", project_id, exc)
            return {"error": f"Analysis failed for {project_id}: {exc}. {REMEDIATION_HINT}"}

        if isinstance(result, dict) and isinstance(result.get("result"), dict):
            result = result["result"]
        if not isinstance(result, dict):
            return {"error": f"Analyzer returned no usable result for {project_id}"}
        return result

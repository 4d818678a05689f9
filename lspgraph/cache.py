"""Read-only bridge to analysis snapshots cached on disk by a sidecar producer.

A producer process periodically analyzes each project and writes two files
per project into a shared cache directory::

    <cache_dir>/<project_id>/dump.json   - full analysis snapshot
    <cache_dir>/<project_id>/meta.json   - freshness metadata

This module only reads them. Parsed snapshots are kept in memory keyed by
project id and reused until the metadata timestamp changes, because large
snapshots are expensive to decode on every request.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import config
from .config import DUMP_FILE, META_FILE
from .models import CacheMetadata

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _read_json_file(path: Path) -> Any:
    """Decode a JSON file. Returns None if missing or unreadable."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Failed to read cache file %s: %s", path, exc)
        return None


class AnalysisCache:
    """Freshness-checked reader over the snapshot cache directory.

    One instance is normally shared per process (see :func:`default_cache`);
    tests construct their own with a temporary ``cache_dir`` and a fake
    ``clock_ms``.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        max_age_ms: Optional[int] = None,
        clock_skew_ms: Optional[int] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.max_age_ms = config.MAX_AGE_MS if max_age_ms is None else max_age_ms
        self.clock_skew_ms = config.CLOCK_SKEW_MS if clock_skew_ms is None else clock_skew_ms
        self._clock_ms = clock_ms or _now_ms
        self._lock = threading.Lock()
        # project_id -> (meta timestamp, parsed snapshot)
        self._parsed: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir if self._cache_dir is not None else config.cache_dir()

    def _path(self, project_id: str, filename: str) -> Path:
        return self.cache_dir / project_id / filename

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def age_ms(self, meta: CacheMetadata) -> float:
        return self._clock_ms() - meta.timestamp * 1000

    def _within_age(self, meta: CacheMetadata, max_age_ms: int, inclusive: bool = True) -> bool:
        age = self.age_ms(meta)
        if age > max_age_ms or (not inclusive and age == max_age_ms):
            return False
        # Producer clock ahead of ours: only tolerated up to the configured skew.
        if self.clock_skew_ms is not None and age < -self.clock_skew_ms:
            return False
        return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_meta(self, project_id: str) -> Optional[CacheMetadata]:
        """Read cache metadata for a project, or None if absent/malformed."""
        payload = _read_json_file(self._path(project_id, META_FILE))
        if payload is None:
            return None
        try:
            return CacheMetadata.from_payload(payload)
        except ValueError as exc:
            logger.warning("Malformed metadata for project %s: %s", project_id, exc)
            return None

    def is_fresh(self, project_id: str, max_age_ms: Optional[int] = None) -> bool:
        """True only if metadata exists, status is ok, and age is within bound."""
        meta = self.read_meta(project_id)
        if meta is None or not meta.ok:
            return False
        limit = self.max_age_ms if max_age_ms is None else max_age_ms
        # A snapshot exactly max_age_ms old is still readable but no longer fresh.
        return self._within_age(meta, limit, inclusive=False)

    def read_analysis(
        self,
        project_id: str,
        max_age_ms: Optional[int] = None,
        ignore_staleness: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Return the cached snapshot for *project_id*.

        Returns None when the cache is missing, errored, stale (unless
        *ignore_staleness*), or unreadable. Never raises for bad files.
        """
        meta = self.read_meta(project_id)
        if meta is None:
            logger.info("No cache for project: %s", project_id)
            return None
        if not meta.ok:
            logger.warning("Cache error for project: %s status: %s", project_id, meta.status)
            return None
        limit = self.max_age_ms if max_age_ms is None else max_age_ms
        if not ignore_staleness and not self._within_age(meta, limit):
            logger.warning("Stale cache for project: %s max-age-ms: %s", project_id, limit)
            return None

        snapshot = self._read_snapshot(project_id, meta.timestamp)
        if snapshot is not None:
            logger.debug("Cache hit for project: %s", project_id)
        return snapshot

    def _read_snapshot(self, project_id: str, timestamp: float) -> Optional[Dict[str, Any]]:
        with self._lock:
            cached = self._parsed.get(project_id)
        if cached is not None and cached[0] == timestamp:
            logger.debug("In-memory cache hit for %s", project_id)
            return cached[1]

        data = _read_json_file(self._path(project_id, DUMP_FILE))
        if data is None:
            return None
        if not isinstance(data, dict):
            logger.warning("Malformed snapshot for project %s: not an object", project_id)
            return None
        logger.info("Parsed %s for %s (caching in memory)", DUMP_FILE, project_id)
        with self._lock:
            self._parsed[project_id] = (timestamp, data)
        return data

    def list_cached_projects(self) -> List[str]:
        """Project ids of every cache subdirectory holding a metadata file."""
        root = self.cache_dir
        if not root.is_dir():
            return []
        return sorted(
            p.name for p in root.iterdir()
            if p.is_dir() and (p / META_FILE).exists()
        )

    def cache_status(self) -> Dict[str, Any]:
        """Status overview of all cached projects."""
        projects: List[Dict[str, Any]] = []
        for project_id in self.list_cached_projects():
            meta = self.read_meta(project_id)
            projects.append({
                "project_id": project_id,
                "status": meta.status if meta else None,
                "timestamp": meta.timestamp if meta else None,
                "fresh": self.is_fresh(project_id),
                "duration_ms": meta.duration_ms if meta else None,
            })
        return {"cache_dir": str(self.cache_dir), "projects": projects}

    def clear_memory(self) -> None:
        """Drop every in-memory parsed snapshot."""
        with self._lock:
            self._parsed.clear()


_default_cache: Optional[AnalysisCache] = None
_default_lock = threading.Lock()


def default_cache() -> AnalysisCache:
    """Process-wide cache reader."""
    global _default_cache
    with _default_lock:
        if _default_cache is None:
            _default_cache = AnalysisCache()
        return _default_cache

"""Request-level memoization of analysis results.

Several commands issued in quick succession (``definitions`` then ``calls``)
share one analysis pass. The memo holds a single slot: only the most recent
project root is warm, and a request for another root evicts it.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from . import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Slot:
    project_root: Any
    result: Dict[str, Any]
    timestamp_ms: int


class RequestMemoizer:
    """Single-entry TTL cache in front of an analysis function."""

    def __init__(
        self,
        analyze: Callable[[Any], Dict[str, Any]],
        ttl_ms: Optional[int] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self._analyze = analyze
        self.ttl_ms = config.MEMO_TTL_MS if ttl_ms is None else ttl_ms
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._lock = threading.Lock()
        self._slot: Optional[_Slot] = None

    def cached_analyze(self, project_root: Any) -> Dict[str, Any]:
        now = self._clock_ms()
        with self._lock:
            slot = self._slot
        if (
            slot is not None
            and slot.project_root == project_root
            and now - slot.timestamp_ms < self.ttl_ms
        ):
            logger.debug("Analysis memo hit for %s", project_root)
            return slot.result

        result = self._analyze(project_root)
        logger.debug("Analysis memo miss for %s, caching result", project_root)
        with self._lock:
            self._slot = _Slot(project_root=project_root, result=result, timestamp_ms=now)
        return result

    def invalidate(self) -> None:
        """Clear the slot so the next call re-runs analysis."""
        with self._lock:
            self._slot = None

"""Best-effort forwarding of graph operations to an external knowledge store.

The store is reached through five independent, optional capabilities:

- ``index(entry) -> id``               store a memory entry
- ``find_duplicate(type, hash, project_id=...)``  idempotent upsert check
- ``add_edge(edge) -> id``             create a graph edge
- ``content_hash(content) -> str``     hash used for deduplication
- ``inject_scope(tags, project_id)``   add the project scope tag

Each may be missing. A missing capability disables only its own step; per
item failures are collected, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from . import config
from .capabilities import resolve_callable
from .config import PRODUCER_TAG
from .models import GraphEdge, GraphOperations, MemoryEntry, SyncResult

logger = logging.getLogger(__name__)


@dataclass
class StoreCapabilities:
    index: Optional[Callable[..., Any]] = None
    find_duplicate: Optional[Callable[..., Any]] = None
    add_edge: Optional[Callable[..., Any]] = None
    content_hash: Optional[Callable[..., Any]] = None
    inject_scope: Optional[Callable[..., Any]] = None

    @classmethod
    def from_config(cls, paths: Optional[Mapping[str, str]] = None) -> "StoreCapabilities":
        """Resolve every capability from its configured dotted path."""
        paths = config.STORE_CAPABILITIES if paths is None else paths
        return cls(**{name: resolve_callable(paths.get(name)) for name in (
            "index", "find_duplicate", "add_edge", "content_hash", "inject_scope",
        )})


def _existing_id(found: Any) -> Optional[str]:
    if found is None:
        return None
    if isinstance(found, Mapping):
        return found.get("id")
    return found


class GraphSyncBridge:
    """Two-phase sync: create entries, then edges between created entries.

    Args:
        capabilities: fixed capability set. When omitted, capabilities are
            resolved from configuration at each call so a store installed
            after start-up is picked up.
    """

    def __init__(self, capabilities: Optional[StoreCapabilities] = None) -> None:
        self._capabilities = capabilities

    @property
    def capabilities(self) -> StoreCapabilities:
        if self._capabilities is not None:
            return self._capabilities
        return StoreCapabilities.from_config()

    def available(self) -> bool:
        caps = self.capabilities
        return caps.index is not None and caps.add_edge is not None

    # ------------------------------------------------------------------
    # Phase 1: entries
    # ------------------------------------------------------------------

    def _add_entry(self, caps: StoreCapabilities, entry: MemoryEntry, project_id: str) -> Optional[str]:
        try:
            c_hash = caps.content_hash(entry.content) if caps.content_hash else None
            if caps.find_duplicate is not None and c_hash:
                existing = _existing_id(
                    caps.find_duplicate(entry.kind, c_hash, project_id=project_id)
                )
                if existing:
                    logger.debug("Duplicate entry, reusing: %s", existing)
                    return existing

            tags = list(entry.tags)
            if caps.inject_scope is not None:
                tags = list(caps.inject_scope(tags, project_id))
            payload: Dict[str, Any] = {
                "type": entry.kind,
                "content": entry.content,
                "tags": tags,
                "duration": entry.duration_hint,
                "project_id": project_id,
            }
            if c_hash:
                payload["content_hash"] = c_hash
            return caps.index(payload)
        except Exception as exc:
            logger.error("Failed to add memory entry %s: %s", entry.key, exc)
            return None

    # ------------------------------------------------------------------
    # Phase 2: edges
    # ------------------------------------------------------------------

    def _add_edge(self, caps: StoreCapabilities, edge: GraphEdge, from_id: str, to_id: str, scope: Any) -> Optional[Any]:
        if caps.add_edge is None:
            return None
        try:
            return caps.add_edge({
                "from": from_id,
                "to": to_id,
                "relation": edge.relation,
                "scope": scope,
                "confidence": edge.confidence,
                "source_type": edge.source_type,
                "created_by": edge.created_by or PRODUCER_TAG,
            })
        except Exception as exc:
            logger.error("Failed to add graph edge %s -> %s: %s", edge.from_key, edge.to_key, exc)
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync(self, project_id: str, operations: GraphOperations, scope: Any = None) -> SyncResult:
        caps = self.capabilities
        result = SyncResult()

        if caps.index is None:
            logger.info("Graph store index capability unavailable; skipping sync for %s", project_id)
            return result

        key_to_id: Dict[str, str] = {}
        for entry in operations.memory_entries:
            entry_id = self._add_entry(caps, entry, project_id)
            if entry_id:
                key_to_id[entry.key] = entry_id
            else:
                result.errors.append(f"Failed entry: {entry.key}")

        for edge in operations.graph_edges:
            from_id = key_to_id.get(edge.from_key)
            to_id = key_to_id.get(edge.to_key)
            if not (from_id and to_id):
                logger.debug("Skipping edge, unresolved nodes: %s -> %s", edge.from_key, edge.to_key)
                continue
            if self._add_edge(caps, edge, from_id, to_id, scope):
                result.edges += 1
            else:
                result.errors.append(f"Failed edge: {edge.from_key} -> {edge.to_key}")

        result.created = len(key_to_id)
        return result

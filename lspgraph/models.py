"""Core data models shared by extraction, transformation, and sync layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from .config import PRODUCER_TAG


class DefinitionKind(str, Enum):
    """How a var was introduced, as far as graph edges care."""

    MULTI_DISPATCHER = "multi-dispatcher-definition"
    MULTI_IMPLEMENTATION = "multi-dispatcher-implementation"
    OTHER = "other"

    @classmethod
    def classify(cls, defined_by: Optional[str]) -> "DefinitionKind":
        """Map an opaque ``defined-by`` qualifier onto a kind.

        Analyzers report e.g. ``clojure.core/defmulti``; synthetic producers
        may emit the enum value itself.
        """
        if not defined_by:
            return cls.OTHER
        text = str(defined_by)
        if "defmulti" in text or text.endswith(cls.MULTI_DISPATCHER.value):
            return cls.MULTI_DISPATCHER
        if "defmethod" in text or text.endswith(cls.MULTI_IMPLEMENTATION.value):
            return cls.MULTI_IMPLEMENTATION
        return cls.OTHER


@dataclass(frozen=True)
class VarDefinition:
    namespace: str
    name: str
    file: str
    row: Optional[int]
    col: Optional[int]
    arglists: List[str] = field(default_factory=list)
    private: bool = False
    macro: bool = False
    defined_by: Optional[str] = None

    @property
    def kind(self) -> DefinitionKind:
        return DefinitionKind.classify(self.defined_by)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CallEdge:
    caller_ns: str
    caller_fn: str
    callee_ns: str
    callee_fn: str
    file: str
    row: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NamespaceNode:
    namespace: str
    depends_on: FrozenSet[str] = frozenset()
    dependents: FrozenSet[str] = frozenset()
    internal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "depends_on": sorted(self.depends_on),
            "dependents": sorted(self.dependents),
            "internal": self.internal,
        }


@dataclass
class MemoryEntry:
    content: str
    tags: List[str]
    key: str
    kind: str = "snippet"
    duration_hint: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphEdge:
    from_key: str
    to_key: str
    relation: str
    confidence: float = 1.0
    source_type: str = "automated"
    created_by: str = PRODUCER_TAG

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphOperations:
    memory_entries: List[MemoryEntry]
    graph_edges: List[GraphEdge]
    stats: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory_entries": [e.to_dict() for e in self.memory_entries],
            "graph_edges": [e.to_dict() for e in self.graph_edges],
            "stats": dict(self.stats),
        }


@dataclass
class SyncResult:
    created: int = 0
    edges: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CacheMetadata:
    """Freshness metadata written next to a snapshot by the analysis producer."""

    timestamp: float
    status: str
    duration_ms: Optional[int] = None
    project_id: Optional[str] = None
    exit_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def from_payload(cls, payload: Any) -> "CacheMetadata":
        """Build from the decoded ``meta.json`` object.

        Raises:
            ValueError: when the payload is not an object or lacks a numeric
                timestamp.
        """
        if not isinstance(payload, dict):
            raise ValueError("metadata must be an object")
        timestamp = payload.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError(f"metadata timestamp is not numeric: {timestamp!r}")
        status = str(payload.get("status", "")).lstrip(":")
        return cls(
            timestamp=timestamp,
            status=status,
            duration_ms=payload.get("duration-ms"),
            project_id=payload.get("project-id"),
            exit_code=payload.get("exit-code"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

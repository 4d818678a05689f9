"""Normalize raw per-file analysis buckets into canonical relations.

All functions here are pure: no I/O, deterministic, and order-preserving
over the input mapping's iteration order. Entries under non ``file://`` URIs
(``jar://`` and friends) are external dependencies and are skipped.
Missing buckets or fields default to empty values rather than raising.
"""

from __future__ import annotations

from typing import Any, Iterator, List, Mapping, Tuple

from .models import CallEdge, NamespaceNode, VarDefinition


def _is_file_uri(uri: Any) -> bool:
    return isinstance(uri, str) and uri.startswith("file://")


def _project_files(analysis: Any) -> Iterator[Tuple[str, Mapping[str, Any]]]:
    if not isinstance(analysis, Mapping):
        return
    for uri, buckets in analysis.items():
        if _is_file_uri(uri) and isinstance(buckets, Mapping):
            yield uri, buckets


def _records(buckets: Mapping[str, Any], name: str) -> List[Mapping[str, Any]]:
    records = buckets.get(name)
    if not isinstance(records, (list, tuple)):
        return []
    return [r for r in records if isinstance(r, Mapping)]


def _str_or_none(value: Any) -> Any:
    return None if value is None else str(value)


def extract_var_definitions(analysis: Any) -> List[VarDefinition]:
    """Flatten every project file's ``var-definitions`` bucket."""
    definitions: List[VarDefinition] = []
    for uri, buckets in _project_files(analysis):
        for raw in _records(buckets, "var-definitions"):
            definitions.append(VarDefinition(
                namespace=_str_or_none(raw.get("ns")),
                name=_str_or_none(raw.get("name")),
                file=uri,
                row=raw.get("row"),
                col=raw.get("col"),
                arglists=[str(a) for a in (raw.get("arglist-strs") or [])],
                private=bool(raw.get("private")),
                macro=bool(raw.get("macro")),
                defined_by=_str_or_none(raw.get("defined-by")),
            ))
    return definitions


def extract_call_graph(analysis: Any) -> List[CallEdge]:
    """Call edges from ``var-usages`` made inside a named definition.

    Usages without ``from-var`` happen at top level and have no caller.
    """
    edges: List[CallEdge] = []
    for uri, buckets in _project_files(analysis):
        for raw in _records(buckets, "var-usages"):
            if not raw.get("from-var"):
                continue
            edges.append(CallEdge(
                caller_ns=_str_or_none(raw.get("from")),
                caller_fn=str(raw["from-var"]),
                callee_ns=_str_or_none(raw.get("to")),
                callee_fn=_str_or_none(raw.get("name")),
                file=uri,
                row=raw.get("row"),
            ))
    return edges


def extract_namespace_graph(dep_graph: Any) -> List[NamespaceNode]:
    """One node per namespace; dependency counts are dropped."""
    if not isinstance(dep_graph, Mapping):
        return []
    nodes: List[NamespaceNode] = []
    for ns, entry in dep_graph.items():
        entry = entry if isinstance(entry, Mapping) else {}
        nodes.append(NamespaceNode(
            namespace=str(ns),
            depends_on=frozenset(str(d) for d in (entry.get("dependencies") or {})),
            dependents=frozenset(str(d) for d in (entry.get("dependents") or {})),
            internal=bool(entry.get("internal?", entry.get("internal"))),
        ))
    return nodes

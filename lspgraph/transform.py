"""Pure transformation of canonical relations into graph-store operations.

Input relations come from :mod:`lspgraph.extract`; the output is a batch of
memory entries (nodes) plus graph edges that reference those entries by key.
Keys are stable strings:

- ``ns:<namespace>/<name>`` for a function or var
- ``ns:<namespace>`` for a namespace

Nothing here performs I/O. Output order follows input order so callers (and
tests) can rely on it for a fixed input.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from .config import PRODUCER_TAG
from .models import (
    CallEdge,
    DefinitionKind,
    GraphEdge,
    GraphOperations,
    MemoryEntry,
    NamespaceNode,
    VarDefinition,
)

DEPENDS_ON = "depends-on"
IMPLEMENTS = "implements"


def fn_key(namespace: object, name: object) -> str:
    return f"ns:{namespace}/{name}"


def ns_key(namespace: object) -> str:
    return f"ns:{namespace}"


def _edge(from_key: str, to_key: str, relation: str) -> GraphEdge:
    return GraphEdge(
        from_key=from_key,
        to_key=to_key,
        relation=relation,
        confidence=1.0,
        source_type="automated",
        created_by=PRODUCER_TAG,
    )


# ---------------------------------------------------------------------------
# Memory entries
# ---------------------------------------------------------------------------

def var_def_to_entry(definition: VarDefinition) -> MemoryEntry:
    """Render a definition as a one-line signature plus its location."""
    if definition.arglists:
        signature = f"(defn {definition.name} {definition.arglists[0]})"
    else:
        signature = f"(def {definition.name})"
    return MemoryEntry(
        content=f"{signature}\n  Location: {definition.file}:{definition.row}",
        tags=["lsp", "function-def", f"ns:{definition.namespace}"],
        key=fn_key(definition.namespace, definition.name),
    )


def namespace_to_entry(node: NamespaceNode, all_defs: Iterable[VarDefinition]) -> MemoryEntry:
    """Summarize a namespace: its sorted dependencies and public var count."""
    deps = sorted(str(d) for d in node.depends_on)
    ns_name = str(node.namespace)
    public_vars = sum(
        1 for d in all_defs
        if str(d.namespace) == ns_name and not d.private
    )
    content = (
        f"Namespace: {ns_name}\n"
        f"Dependencies: [{' '.join(deps)}]\n"
        f"Public vars: {public_vars}"
    )
    return MemoryEntry(
        content=content,
        tags=["lsp", "namespace", f"ns:{ns_name}"],
        key=ns_key(ns_name),
    )


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

def call_edge_to_graph_edge(call: CallEdge) -> GraphEdge:
    return _edge(
        fn_key(call.caller_ns, call.caller_fn),
        fn_key(call.callee_ns, call.callee_fn),
        DEPENDS_ON,
    )


def ns_dep_to_graph_edge(from_ns: object, to_ns: object) -> GraphEdge:
    return _edge(ns_key(from_ns), ns_key(to_ns), DEPENDS_ON)


def _dispatcher_index(definitions: Sequence[VarDefinition]) -> Dict[str, Dict[str, VarDefinition]]:
    """``{name: {namespace: dispatcher}}`` over multi-method dispatchers."""
    index: Dict[str, Dict[str, VarDefinition]] = {}
    for d in definitions:
        if d.kind is DefinitionKind.MULTI_DISPATCHER:
            index.setdefault(str(d.name), {})[str(d.namespace)] = d
    return index


def implements_edges(definitions: Sequence[VarDefinition]) -> List[GraphEdge]:
    """``implements`` edges from multi-method implementations to dispatchers.

    A dispatcher in another namespace is preferred over one in the
    implementation's own namespace; among several foreign dispatchers the
    first indexed wins. Same namespace and name would give identical keys,
    so such self-edges are dropped.
    """
    index = _dispatcher_index(definitions)
    edges: List[GraphEdge] = []
    for d in definitions:
        if d.kind is not DefinitionKind.MULTI_IMPLEMENTATION:
            continue
        candidates = index.get(str(d.name))
        if not candidates:
            continue
        own_ns = str(d.namespace)
        foreign = [v for ns, v in candidates.items() if ns != own_ns]
        target = foreign[0] if foreign else candidates.get(own_ns)
        if target is None:
            continue
        from_key = fn_key(d.namespace, d.name)
        to_key = fn_key(target.namespace, target.name)
        if from_key == to_key:
            continue
        edges.append(_edge(from_key, to_key, IMPLEMENTS))
    return edges


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def analysis_to_graph_operations(
    project_id: str,
    definitions: Sequence[VarDefinition],
    calls: Sequence[CallEdge],
    ns_graph: Sequence[NamespaceNode],
) -> GraphOperations:
    """Convert the three canonical relations into one batch of graph operations.

    *project_id* is accepted for scoping by callers; keys themselves are
    project independent.
    """
    fn_entries: List[MemoryEntry] = []
    seen = set()
    for d in definitions:
        if d.private:
            continue
        entry = var_def_to_entry(d)
        # defmulti and defmethod sharing a namespace and name share a key; first wins.
        if entry.key in seen:
            continue
        seen.add(entry.key)
        fn_entries.append(entry)
    ns_entries = [namespace_to_entry(node, definitions) for node in ns_graph]

    edges = [call_edge_to_graph_edge(c) for c in calls]
    for node in ns_graph:
        for dep in sorted(node.depends_on or ()):
            edges.append(ns_dep_to_graph_edge(node.namespace, dep))
    edges.extend(implements_edges(definitions))

    return GraphOperations(
        memory_entries=fn_entries + ns_entries,
        graph_edges=edges,
        stats={
            "fns": len(fn_entries),
            "edges": len(edges),
            "namespaces": len(ns_entries),
        },
    )

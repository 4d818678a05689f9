"""Tool handlers for the ``lsp`` command surface.

Requests are plain dicts ``{"command": ..., **params}``; responses follow the
tool protocol shape ``{"content": [{"type": "text", "text": ...}],
"isError": bool}``. Handler faults are converted into error responses here
and never reach the transport.
"""

from __future__ import annotations

import functools
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .extract import extract_call_graph, extract_namespace_graph, extract_var_definitions
from .models import CallEdge
from .orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Input schema (Pydantic v2)
# ═══════════════════════════════════════════════════════════════

class CommandParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    command: str = Field(..., description="Command to run")
    project_root: Optional[str] = Field(default=None, description="Path to the project root directory")
    project_id: Optional[str] = Field(default=None, description="Project identifier for graph sync")
    scope: Optional[str] = Field(default=None, description="Scope for graph sync operations")
    namespace: Optional[str] = Field(default=None, description="Filter by namespace (e.g., my.app.core)")
    function: Optional[str] = Field(default=None, description="Filter by function name")


class MissingParameterError(ValueError):
    """A required request parameter is absent or blank."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required parameter: {name}")
        self.name = name


Handler = Callable[[CommandParams, AnalysisOrchestrator], Any]


def require_project_root(handler: Handler) -> Handler:
    """Reject blank ``project_root`` before any cache or analyzer access."""

    @functools.wraps(handler)
    def wrapper(params: CommandParams, orchestrator: AnalysisOrchestrator) -> Any:
        if params.project_root is None or not params.project_root.strip():
            raise MissingParameterError("project_root")
        return handler(params, orchestrator)

    return wrapper


def _matches(value: Any, wanted: Optional[str]) -> bool:
    return not wanted or str(value) == wanted


# ═══════════════════════════════════════════════════════════════
# Command handlers
# ═══════════════════════════════════════════════════════════════

@require_project_root
def _analyze(params: CommandParams, orchestrator: AnalysisOrchestrator) -> Dict[str, Any]:
    result = orchestrator.analyze(params.project_root)
    analysis = result.get("analysis") or {}
    payload = {
        "num_files": len(analysis),
        "num_namespaces": len(extract_namespace_graph(result.get("dep-graph"))),
        "num_vars": len(extract_var_definitions(analysis)),
        "cache_status": orchestrator.cache.cache_status(),
    }
    if "error" in result:
        payload["error"] = result["error"]
    return payload


@require_project_root
def _definitions(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[Dict[str, Any]]:
    result = orchestrator.analyze(params.project_root)
    return [
        d.to_dict() for d in extract_var_definitions(result.get("analysis"))
        if _matches(d.namespace, params.namespace)
    ]


@require_project_root
def _calls(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[Dict[str, Any]]:
    result = orchestrator.analyze(params.project_root)
    return [
        c.to_dict() for c in extract_call_graph(result.get("analysis"))
        if _matches(c.caller_ns, params.namespace) and _matches(c.caller_fn, params.function)
    ]


@require_project_root
def _ns_graph(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[Dict[str, Any]]:
    result = orchestrator.analyze(params.project_root)
    return [n.to_dict() for n in extract_namespace_graph(result.get("dep-graph"))]


def _calls_into(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[CallEdge]:
    result = orchestrator.analyze(params.project_root)
    return [
        c for c in extract_call_graph(result.get("analysis"))
        if _matches(c.callee_fn, params.function) and _matches(c.callee_ns, params.namespace)
    ]


@require_project_root
def _callers(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[Dict[str, Any]]:
    return [c.to_dict() for c in _calls_into(params, orchestrator)]


@require_project_root
def _references(params: CommandParams, orchestrator: AnalysisOrchestrator) -> List[Dict[str, Any]]:
    return [
        {"file": c.file, "row": c.row, "caller_ns": c.caller_ns, "caller_fn": c.caller_fn}
        for c in _calls_into(params, orchestrator)
    ]


@require_project_root
def _sync(params: CommandParams, orchestrator: AnalysisOrchestrator) -> Dict[str, Any]:
    return orchestrator.analyze_and_sync(params.project_root, params.project_id, params.scope)


def _status(params: CommandParams, orchestrator: AnalysisOrchestrator) -> Dict[str, Any]:
    return orchestrator.status()


COMMAND_HANDLERS: Dict[str, Handler] = {
    "analyze": _analyze,
    "definitions": _definitions,
    "calls": _calls,
    "ns-graph": _ns_graph,
    "callers": _callers,
    "references": _references,
    "sync": _sync,
    "status": _status,
}

COMMAND_NAMES = sorted(COMMAND_HANDLERS)


# ═══════════════════════════════════════════════════════════════
# Shared orchestrator
# ═══════════════════════════════════════════════════════════════

_orchestrator: Optional[AnalysisOrchestrator] = None
_orchestrator_lock = threading.Lock()


def default_orchestrator() -> AnalysisOrchestrator:
    global _orchestrator
    with _orchestrator_lock:
        if _orchestrator is None:
            _orchestrator = AnalysisOrchestrator()
        return _orchestrator


def invalidate_cache() -> None:
    """Clear the shared analysis memo."""
    default_orchestrator().memoizer.invalidate()


# ═══════════════════════════════════════════════════════════════
# Tool interface
# ═══════════════════════════════════════════════════════════════

def _json_default(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _response(payload: Any, is_error: bool = False) -> Dict[str, Any]:
    response: Dict[str, Any] = {
        "content": [{"type": "text", "text": json.dumps(payload, default=_json_default)}],
    }
    if is_error:
        response["isError"] = True
    return response


def handle_command(
    params: Mapping[str, Any],
    orchestrator: Optional[AnalysisOrchestrator] = None,
) -> Dict[str, Any]:
    """Dispatch one request on its ``command`` key."""
    command = params.get("command") if isinstance(params, Mapping) else None
    handler = COMMAND_HANDLERS.get(command) if isinstance(command, str) else None
    if handler is None:
        return _response(
            {"error": "Unknown command", "command": command, "available": COMMAND_NAMES},
            is_error=True,
        )

    try:
        parsed = CommandParams.model_validate(dict(params))
        result = handler(parsed, orchestrator or default_orchestrator())
        return _response(result)
    except MissingParameterError as exc:
        return _response({"error": str(exc), "command": command}, is_error=True)
    except Exception as exc:
        logger.exception("LSP command failed: %s", command)
        return _response(
            {"error": "Failed to handle command", "command": command, "details": str(exc)},
            is_error=True,
        )


def tool_definition() -> Dict[str, Any]:
    """Tool definition advertised to the request/response host."""
    schema = CommandParams.model_json_schema()
    properties = schema.get("properties", {})
    command_schema = dict(properties.get("command", {}))
    command_schema["enum"] = COMMAND_NAMES
    properties["command"] = command_schema
    return {
        "name": "lsp",
        "description": "Code analysis queries and knowledge-graph sync",
        "inputSchema": {
            "type": "object",
            "properties": properties,
            "required": ["command"],
        },
    }

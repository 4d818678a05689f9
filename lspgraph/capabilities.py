"""Late-bound lookup of optional external collaborators.

Collaborators such as the static analyzer or the knowledge-graph store are
named by dotted paths (``package.module:attr``) and imported at call time,
so the package never needs them installed. Anything that cannot be imported
resolves to ``None`` instead of raising.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def _split(dotted: str) -> tuple[str, str]:
    if ":" in dotted:
        module, _, attr = dotted.partition(":")
    else:
        module, _, attr = dotted.rpartition(".")
    return module.strip(), attr.strip()


def resolve_callable(dotted: Optional[str]) -> Optional[Callable[..., Any]]:
    """Import *dotted* and return the named callable, or None."""
    if not dotted or not dotted.strip():
        return None
    module_name, attr = _split(dotted.strip())
    if not module_name or not attr:
        logger.debug("Invalid capability path: %s", dotted)
        return None
    try:
        module = importlib.import_module(module_name)
    except Exception as exc:
        logger.debug("Failed to resolve %s: %s", dotted, exc)
        return None
    target = getattr(module, attr, None)
    if not callable(target):
        logger.debug("Capability %s is not callable", dotted)
        return None
    return target

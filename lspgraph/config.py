"""Configuration paths and tunables for the analysis cache and sync bridge."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "hive-lsp"

DUMP_FILE = "dump.json"
META_FILE = "meta.json"

DEFAULT_MAX_AGE_MS = 10 * 60 * 1000
DEFAULT_MEMO_TTL_MS = 30_000
DEFAULT_CLOCK_SKEW_MS = None

PRODUCER_TAG = "lsp-mcp"

# Load configuration from TOML file (if available)
try:
    from .config_manager import load_cache_config, load_section
    _cache_config = load_cache_config()
    _analyzer_config = load_section("analyzer")
    _store_config = load_section("store")
except ImportError:
    _cache_config = {}
    _analyzer_config = {}
    _store_config = {}

MAX_AGE_MS = int(_cache_config.get("max_age_ms", DEFAULT_MAX_AGE_MS))
MEMO_TTL_MS = int(_cache_config.get("memo_ttl_ms", DEFAULT_MEMO_TTL_MS))
CLOCK_SKEW_MS = _cache_config.get("clock_skew_ms", DEFAULT_CLOCK_SKEW_MS)

ANALYZER = os.environ.get("LSPGRAPH_ANALYZER", _analyzer_config.get("callable", ""))

STORE_CAPABILITIES = {
    name: os.environ.get(f"LSPGRAPH_STORE_{name.upper()}", _store_config.get(name, ""))
    for name in ("index", "find_duplicate", "add_edge", "content_hash", "inject_scope")
}


def cache_dir() -> Path:
    """Resolve the analysis cache directory.

    Priority: ``LSP_CACHE_DIR`` env var > ``~/.cache/hive-lsp``.
    Read on every call so an override set after import still applies.
    """
    override = os.environ.get("LSP_CACHE_DIR")
    if override:
        return Path(override).expanduser()
    return DEFAULT_CACHE_DIR

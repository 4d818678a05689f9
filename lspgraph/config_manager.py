"""Configuration manager for lspgraph using TOML files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

try:
    import toml
except ImportError:
    toml = None  # type: ignore


def _config_file() -> Path:
    base = Path(os.environ.get("LSPGRAPH_HOME", str(Path.home() / ".lspgraph"))).expanduser()
    return base / "config.toml"


CONFIG_FILE = _config_file()

DEFAULT_CACHE_CONFIG = {
    "max_age_ms": 10 * 60 * 1000,
    "memo_ttl_ms": 30_000,
}

_CACHE_KEYS = ("max_age_ms", "memo_ttl_ms", "clock_skew_ms")


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists() or toml is None:
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except Exception:
        return {}


def load_section(name: str) -> Dict[str, Any]:
    """Return one table of the config file, or an empty dict."""
    section = load_full_config().get(name, {})
    return section if isinstance(section, dict) else {}


def load_cache_config() -> Dict[str, Any]:
    """Load the ``[cache]`` section merged over defaults.

    Values that are not integers are ignored so a typo in the file never
    breaks start-up.
    """
    merged = DEFAULT_CACHE_CONFIG.copy()
    for key, value in load_section("cache").items():
        if key in _CACHE_KEYS and isinstance(value, int) and not isinstance(value, bool):
            merged[key] = value
    return merged


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    if toml is None:
        return False
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(CONFIG_FILE, "w") as f:
            toml.dump(config, f)
        return True
    except Exception:
        return False


def save_cache_config(
    max_age_ms: int | None = None,
    memo_ttl_ms: int | None = None,
    clock_skew_ms: int | None = None,
) -> bool:
    """Update the ``[cache]`` section, keeping other sections intact.

    Only the arguments that are not ``None`` are written.

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config()
    section = dict(config.get("cache", {}))
    updates = {
        "max_age_ms": max_age_ms,
        "memo_ttl_ms": memo_ttl_ms,
        "clock_skew_ms": clock_skew_ms,
    }
    for key, value in updates.items():
        if value is not None:
            section[key] = value
    config["cache"] = section
    return _save_full_config(config)

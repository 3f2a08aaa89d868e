"""Configuration management for simgraph."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "default_connection_strategy": "adaptive",
    "default_search_strategy": "text",
    "colors": {
        "World": "#ef4444",
        "Sports": "#3b82f6",
        "Business": "#10b981",
        "Sci/Tech": "#f59e0b",
        "Technology": "#f59e0b",
        "Q&A": "#8b5cf6",
        "Science": "#06b6d4",
        "Politics": "#f97316",
        "default": "#6b7280",
    },
    "node_size": {"min": 8, "max": 20},
    "connections": {},
    "search": {"max_results": 5},
    "similarity": {"enumerator": "exhaustive", "block_size": 256, "n_neighbors": 15},
    "embedding": {
        "model": "text-embedding-3-small",
        "batch_size": 50,
        "max_attempts": 3,
        "backoff_base": 1.0,
        "batch_delay": 0.2,
        "unit_price": 0.00002,
    },
    "log_level": "INFO",
}


def _find_config_file() -> Path | None:
    """Look for a config file in standard locations."""
    candidates = [
        Path.cwd() / "config" / "simgraph.yaml",
        Path.cwd() / "simgraph.yaml",
        Path.home() / ".simgraph" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if config_path and not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        if not isinstance(file_cfg, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if api_key := os.environ.get("OPENAI_API_KEY"):
        cfg["openai_api_key"] = api_key
    if level := os.environ.get("SIMGRAPH_LOG_LEVEL"):
        cfg["log_level"] = level.upper()

    return cfg


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v

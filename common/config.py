"""
Configuration loader.

Reads config/params.yaml (path overridable with TV_CONFIG) and deep-merges it
over built-in defaults. A missing file is not an error; the defaults are used.

Supported env vars:
  TV_CONFIG        path to the YAML file
  TV_SERVER_PORT   overrides server.port
  LOG_LEVEL        overrides logging.level
"""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG_PATH = "config/params.yaml"

DEFAULTS: Dict[str, Any] = {
    "logging": {"level": "INFO", "metrics_file": "logs/playback.jsonl"},
    "playback": {
        "time_scale": 1.0,
        "max_dt_sec": 0.05,
        "event_half_window_sec": 0.15,
        "loop": True,
        "trail_history": 48,
    },
    "camera": {
        "mode": "static",
        "preset": None,
        "chase_distance": 0.02,
        "chase_height": 0.004,
    },
    "server": {"host": "0.0.0.0", "port": 8000},
    "ingest": {"source": None, "timeout_s": 10.0},
}


def _get_int(name: str) -> Optional[int]:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    try:
        return int(v)
    except ValueError:
        raise SystemExit(f"Invalid integer for {name}: {v!r}")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    path = path or os.environ.get("TV_CONFIG") or DEFAULT_CONFIG_PATH
    P = copy.deepcopy(DEFAULTS)
    p = Path(path)
    if p.exists():
        with p.open("r") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise SystemExit(f"Config root must be a mapping: {path}")
        P = _deep_merge(P, loaded)

    port = _get_int("TV_SERVER_PORT")
    if port is not None:
        P["server"]["port"] = port
    if os.environ.get("LOG_LEVEL"):
        P["logging"]["level"] = os.environ["LOG_LEVEL"]
    return P

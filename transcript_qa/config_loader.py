import copy
import os
from typing import Any, Dict, Optional

import yaml

CONFIG_PATH = os.environ.get("QA_CONFIG_PATH", "config/qa.yml")

DEFAULTS: Dict[str, Any] = {
    "understanding": {
        "model_deadline_seconds": 20.0,
    },
    "retrieval": {
        "weights": {"lexical": 0.6, "semantic": 0.4},
        "top_k": 8,
        "timeline_max_items": 12,
        "semantic_strong": 0.75,
        "weak_score": 0.15,
        "high_margin": 0.2,
    },
    "synthesis": {
        "model_deadline_seconds": 60.0,
        "summary_max_items": 6,
        "summary_line_chars": 120,
        "range_line_chars": 200,
    },
    "verification": {
        "novelty_threshold_summary": 0.65,
        "novelty_threshold_default": 0.55,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULTS)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the QA config YAML and overlay it on the built-in defaults.
    A missing file yields the defaults unchanged.
    """
    path = path or CONFIG_PATH
    if not os.path.exists(path):
        return default_config()
    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"QA config at {path} must be a mapping, got {type(loaded).__name__}")
    return _merge(DEFAULTS, loaded)


def section(config: Optional[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """Named config section, with defaults for anything the caller left out."""
    base = DEFAULTS.get(name, {})
    given = (config or {}).get(name) or {}
    return _merge(base, given)

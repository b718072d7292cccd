from __future__ import annotations

import copy
import hashlib
import json
from pathlib import Path
from typing import Any, Dict

from .structured_data import load_structured_file

DEFAULT_CONFIG: Dict[str, Any] = {
    "quality": {
        "min_node_spacing": 30,
        "parent_padding": 80,
        "viewport": {"width": 1920, "height": 1080},
        "level": None,
        "weights": {},
    },
    "audit": {
        "timeout_ms": 10000,
        "settle_ms": 300,
        "poll_interval_ms": 100,
        "capture_screenshot": True,
        "screenshot_dir": "test-results",
        "loading_selector": ".loading-overlay",
        "container_selector": ".react-flow",
        "graph_global": "__CYBER_GRAPH__",
    },
    "memory": {
        "path": ".diagramqa/memory_bank.json",
        "max_layouts": 100,
        "min_score": 0.95,
    },
}


def _merge_into(target: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Overlay ``override`` onto ``target`` in place; nested mappings merge key by key."""
    for key, value in override.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            target[key] = copy.deepcopy(value)


def load_config(config_path: Path = Path("diagramqa.yaml")) -> Dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_path.exists():
        return config
    user_config = load_structured_file(config_path)
    if user_config is None:
        return config
    if not isinstance(user_config, dict):
        raise RuntimeError(f"Config file {config_path} must contain a mapping/object.")
    _merge_into(config, user_config)
    return config


def config_hash(config: Dict[str, Any]) -> str:
    """SHA-256 of the effective config, stable under key order."""
    digest = hashlib.sha256()
    digest.update(json.dumps(config, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8"))
    return digest.hexdigest()

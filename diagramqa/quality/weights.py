from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class QualityWeights:
    """Non-negative weight per criterion. A zero weight removes the criterion from the blend."""

    overlap: float = 0.16
    spacing: float = 0.07
    edge_crossings: float = 0.16
    edges_over_nodes: float = 0.10
    edge_bends: float = 0.04
    edge_length: float = 0.04
    hierarchy: float = 0.15
    viewport: float = 0.02
    consistency: float = 0.02
    aspect_ratio: float = 0.03
    direction: float = 0.07
    empty_space: float = 0.04
    edge_label_overlaps: float = 0.07
    clipped_labels: float = 0.07
    edge_congestion: float = 0.05
    crossing_angles: float = 0.06
    alignment: float = 0.04
    detour: float = 0.03

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def with_overrides(self, overrides: Mapping[str, Any]) -> "QualityWeights":
        known = {item.name for item in fields(self)}
        updates: Dict[str, float] = {}
        for key, value in overrides.items():
            if key not in known:
                available = ", ".join(sorted(known))
                raise ValueError(f"Unknown quality weight '{key}'. Available: {available}")
            weight = float(value)
            if weight < 0:
                raise ValueError(f"Quality weight '{key}' must be non-negative, got {weight}.")
            updates[key] = weight
        return replace(self, **updates)


DEFAULT_QUALITY_WEIGHTS = QualityWeights()

LEVEL_WEIGHT_OVERRIDES: Dict[str, Dict[str, float]] = {
    "L0": {"spacing": 0.12, "hierarchy": 0.08, "aspect_ratio": 0.10, "empty_space": 0.08},
    "L1": {"direction": 0.12, "edge_crossings": 0.18, "spacing": 0.10, "hierarchy": 0.08},
    "L2": {"hierarchy": 0.20, "edges_over_nodes": 0.12, "clipped_labels": 0.10},
    "L3": {"direction": 0.14, "edge_crossings": 0.18, "alignment": 0.08, "edge_congestion": 0.08},
}


def get_quality_weights_for_level(level: Optional[str] = None) -> QualityWeights:
    overrides = LEVEL_WEIGHT_OVERRIDES.get((level or "").upper())
    if not overrides:
        return DEFAULT_QUALITY_WEIGHTS
    return DEFAULT_QUALITY_WEIGHTS.with_overrides(overrides)


@dataclass(frozen=True)
class QualityThresholds:
    min_node_spacing: float = 30.0
    parent_padding: float = 80.0
    direction_threshold: float = 10.0
    char_width: float = 7.0
    label_padding: float = 8.0
    default_node_size: float = 100.0
    default_parent_size: float = 200.0


DEFAULT_THRESHOLDS = QualityThresholds()


def thresholds_from_config(config: Mapping[str, Any]) -> QualityThresholds:
    quality = config.get("quality") or {}
    return QualityThresholds(
        min_node_spacing=float(quality.get("min_node_spacing", DEFAULT_THRESHOLDS.min_node_spacing)),
        parent_padding=float(quality.get("parent_padding", DEFAULT_THRESHOLDS.parent_padding)),
    )


def weights_from_config(config: Mapping[str, Any], level: Optional[str] = None) -> QualityWeights:
    quality = config.get("quality") or {}
    base = get_quality_weights_for_level(level or quality.get("level"))
    overrides = quality.get("weights") or {}
    if not isinstance(overrides, dict):
        raise RuntimeError("Config key quality.weights must be a mapping/object.")
    return base.with_overrides(overrides)

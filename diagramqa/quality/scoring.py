from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Mapping, Sequence

from diagramqa.quality.weights import QualityWeights
from diagramqa.utils.types import (
    ContainmentViolation,
    DiagramQualityMetrics,
    OverlapViolation,
    SpacingViolation,
)

logger = logging.getLogger(__name__)

GRADE_THRESHOLDS = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)

OVERALL_BLEND = {
    "overlap": 0.15,
    "spacing": 0.10,
    "edge": 0.10,
    "hierarchy": 0.15,
    "direction": 0.15,
    "viewport": 0.10,
    "consistency": 0.10,
    "aspect_ratio": 0.10,
}


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def score_criteria(sub_scores: Mapping[str, float], weights: QualityWeights) -> float:
    """Weighted mean of the sub-scores over the criteria that carry weight."""
    weight_map = weights.to_dict()
    total_weight = 0.0
    weighted_sum = 0.0
    for name, weight in weight_map.items():
        if weight <= 0 or name not in sub_scores:
            continue
        total_weight += weight
        weighted_sum += sub_scores[name] * weight
    if total_weight <= 0:
        return 0.0
    return _clamp(weighted_sum / total_weight)


def apply_critical_caps(
    score: float,
    overlap_count: int,
    containment_count: int,
    label_issue_count: int,
) -> float:
    """Depress ``score`` when the layout is structurally broken.

    Containment breaks cap hardest (60 for one, 20 less per extra violation,
    never below 20) and then lose a further 25 points each. Overlaps and label
    issues cap at 85 minus 5 per violation, never below 60. Label issues count
    half.
    """
    critical = overlap_count + containment_count
    if critical == 0 and label_issue_count == 0:
        return score

    total = critical + math.ceil(label_issue_count / 2)
    if containment_count > 0:
        cap = max(20.0, 60.0 - (containment_count - 1) * 20.0)
    else:
        cap = max(60.0, 85.0 - total * 5.0)

    capped = min(score, cap)
    if containment_count > 0:
        capped = max(0.0, capped - containment_count * 25.0)

    if capped < score:
        logger.debug(
            "Critical cap lowered score %.1f -> %.1f (overlaps=%d containment=%d labels=%d)",
            score,
            capped,
            overlap_count,
            containment_count,
            label_issue_count,
        )
    return capped


def grade_for(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def calculate_edge_score(crossings: int, edges_over_nodes: int, bends: int, average_length: float) -> float:
    score = 100.0 - crossings * 2 - edges_over_nodes * 3 - bends
    if average_length < 50 or average_length > 1000:
        score -= 10
    return _clamp(score)


def calculate_overall_score(
    overlap: float,
    spacing: float,
    edge: float,
    hierarchy: float,
    direction: float,
    viewport: float,
    consistency: float,
    aspect_ratio: float,
) -> float:
    """Fixed blend kept for comparison with the weighted score."""
    values = {
        "overlap": overlap,
        "spacing": spacing,
        "edge": edge,
        "hierarchy": hierarchy,
        "direction": direction,
        "viewport": viewport,
        "consistency": consistency,
        "aspect_ratio": aspect_ratio,
    }
    return _clamp(sum(values[name] * weight for name, weight in OVERALL_BLEND.items()))


def calculate_node_badness(
    node_ids: Iterable[str],
    overlaps: Sequence[OverlapViolation],
    spacing: Sequence[SpacingViolation],
    containment: Sequence[ContainmentViolation],
) -> Dict[str, float]:
    """Per-node 0..1 severity; each node keeps the worst single violation it takes part in."""
    badness: Dict[str, float] = {node_id: 0.0 for node_id in node_ids}

    def bump(node_id: str, severity: float) -> None:
        badness[node_id] = max(badness.get(node_id, 0.0), min(1.0, severity))

    for item in overlaps:
        bump(item.node1, 1.0)
        bump(item.node2, 1.0)

    for item in spacing:
        if item.min_required <= 0:
            continue
        severity = min(1.0, (item.min_required - item.distance) / item.min_required) * 0.6
        bump(item.node1, severity)
        bump(item.node2, severity)

    for item in containment:
        bump(item.child_id, 1.0)
        bump(item.parent_id, 0.5)

    return badness


def composite_objective(metrics: DiagramQualityMetrics) -> float:
    """Smoother signal for search loops: weighted score minus additive penalties plus small bonuses."""
    penalty = (
        len(metrics.parent_child_containment) * 15
        + len(metrics.overlapping_nodes) * 10
        + max(0, metrics.edge_crossings - 3) * 5
        + max(0, metrics.edges_over_nodes - 2) * 4
        + metrics.edge_label_overlaps * 6
        + metrics.clipped_node_labels * 6
        + (100 - metrics.edge_congestion_score) * 0.1
        + (100 - metrics.crossing_angle_score) * 0.1
        + (100 - metrics.alignment_score) * 0.08
        + (100 - metrics.detour_score) * 0.06
    )

    bonus = 0.0
    if 0.6 <= metrics.viewport_utilization <= 0.9:
        bonus += 3
    if metrics.direction_score >= 90:
        bonus += 3
    if metrics.spacing_score >= 85:
        bonus += 2

    return _clamp(metrics.weighted_score - penalty + bonus)

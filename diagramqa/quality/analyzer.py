from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from diagramqa.quality.scoring import (
    apply_critical_caps,
    calculate_edge_score,
    calculate_node_badness,
    calculate_overall_score,
    grade_for,
    score_criteria,
)
from diagramqa.quality.weights import (
    DEFAULT_THRESHOLDS,
    QualityThresholds,
    QualityWeights,
    get_quality_weights_for_level,
)
from diagramqa.utils.geometry import (
    ancestors,
    bounding_box,
    crossing_angle,
    distance,
    edge_to_edge_distance,
    parent_map,
    polyline_length,
    polyline_segments,
    polylines_cross,
    rect_overlap_area,
    resolve_absolute_rects,
    segment_intersects_rect,
    segments_properly_intersect,
)
from diagramqa.utils.types import (
    ContainmentViolation,
    DiagramEdge,
    DiagramNode,
    DiagramQualityMetrics,
    DirectionViolation,
    EdgeLengthStats,
    OverlapViolation,
    ParentChildSizeViolation,
    Point,
    Rect,
    Size,
    SpacingViolation,
)

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = Size(1920.0, 1080.0)

ASPECT_RATIO_MIN = 0.5
ASPECT_RATIO_MAX = 2.0
VIEWPORT_BAND = (0.7, 0.9)
EMPTY_SPACE_BAND = (0.2, 0.8)
EDGE_LENGTH_BAND = (100.0, 300.0)

CONGESTION_GRID = 8
ALIGNMENT_TOLERANCE = 8.0
CLIP_MIN_PADDING = 12.0
CLIP_TIGHT_RATIO = 0.5
CLIP_CRAMPED_HEIGHT_RATIO = 0.35
CLIP_ICON_WIDTH = 40.0
CLIP_LABEL_HEIGHT = 18.0
CLIP_EXTRA_LINE_HEIGHT = 22.0


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _is_finite_point(point: Point) -> bool:
    return math.isfinite(point.x) and math.isfinite(point.y)


def _finite_node(node: DiagramNode) -> DiagramNode:
    """Copy of ``node`` with NaN/inf coordinates at 0 and a non-finite size left to the default."""
    position = node.position
    size = node.size
    if _is_finite_point(position) and (size is None or (math.isfinite(size.width) and math.isfinite(size.height))):
        return node
    if not _is_finite_point(position):
        logger.debug("Node %s has a non-finite position %r; using 0", node.id, position)
        position = Point(_finite_or_zero(position.x), _finite_or_zero(position.y))
    if size is not None:
        size = Size(_finite_or_zero(size.width), _finite_or_zero(size.height))
    return replace(node, position=position, size=size)


def _finite_edge(edge: DiagramEdge) -> DiagramEdge:
    points = edge.points
    label_position = edge.label_position
    clean_points = [point for point in points if _is_finite_point(point)] if points else points
    if label_position is not None and not _is_finite_point(label_position):
        label_position = None
    if clean_points == points and label_position is edge.label_position:
        return edge
    return replace(edge, points=clean_points, label_position=label_position)


@dataclass
class DiagramFrame:
    """Node lookup tables shared by every sub-analysis of one ``analyze`` call."""

    nodes: List[DiagramNode]
    by_id: Dict[str, DiagramNode]
    parents: Dict[str, Optional[str]]
    rects: Dict[str, Rect]

    @classmethod
    def build(cls, nodes: Sequence[DiagramNode], default_size: float = DEFAULT_THRESHOLDS.default_node_size) -> "DiagramFrame":
        nodes = [_finite_node(node) for node in nodes]
        parents = parent_map(nodes)
        return cls(
            nodes=nodes,
            by_id={node.id: node for node in nodes},
            parents=parents,
            rects=resolve_absolute_rects(nodes, parents, default_size),
        )

    def center(self, node_id: str) -> Point:
        return self.rects[node_id].center

    def related(self, first: str, second: str) -> bool:
        """True when one node is an ancestor of the other."""
        return first in ancestors(second, self.parents) or second in ancestors(first, self.parents)

    def node_pairs(self) -> List[Tuple[DiagramNode, DiagramNode]]:
        pairs = []
        for index, first in enumerate(self.nodes):
            for second in self.nodes[index + 1 :]:
                if self.related(first.id, second.id):
                    continue
                pairs.append((first, second))
        return pairs

    def resolvable(self, edges: Sequence[DiagramEdge]) -> List[DiagramEdge]:
        kept = []
        for edge in edges:
            if edge.source not in self.by_id or edge.target not in self.by_id:
                logger.debug("Skipping edge %s with unknown endpoint(s) %s -> %s", edge.id, edge.source, edge.target)
                continue
            kept.append(_finite_edge(edge))
        return kept

    def straight_path(self, edge: DiagramEdge) -> List[Point]:
        return [self.center(edge.source), self.center(edge.target)]

    def path(self, edge: DiagramEdge) -> List[Point]:
        if edge.has_route:
            return list(edge.points or [])
        return self.straight_path(edge)

    def bounds(self) -> Optional[Rect]:
        return bounding_box(self.rects[node.id] for node in self.nodes)


def _shares_endpoint(first: DiagramEdge, second: DiagramEdge) -> bool:
    return bool({first.source, first.target} & {second.source, second.target})


# Overlap and spacing


def detect_overlaps(frame: DiagramFrame) -> List[OverlapViolation]:
    violations: List[OverlapViolation] = []
    for first, second in frame.node_pairs():
        a = frame.rects[first.id]
        b = frame.rects[second.id]
        area = rect_overlap_area(a, b)
        if area <= 0:
            continue
        smaller = min(a.area, b.area)
        percentage = (area / smaller) * 100 if smaller > 0 else 0.0
        violations.append(OverlapViolation(first.id, second.id, area, percentage))
    return violations


def calculate_overlap_score(pair_count: int, violations: Sequence[OverlapViolation]) -> float:
    if pair_count <= 0:
        return 100.0
    return max(0.0, min(100.0, (pair_count - len(violations)) / pair_count * 100))


def detect_spacing_violations(frame: DiagramFrame, min_spacing: float) -> List[SpacingViolation]:
    violations: List[SpacingViolation] = []
    for first, second in frame.node_pairs():
        gap = edge_to_edge_distance(frame.rects[first.id], frame.rects[second.id])
        if gap < min_spacing:
            violations.append(SpacingViolation(first.id, second.id, gap, min_spacing))
    return violations


def calculate_spacing_stats(frame: DiagramFrame) -> Tuple[float, float]:
    """Minimum and average of the positive gaps between unrelated nodes; zeros when none."""
    gaps = []
    for first, second in frame.node_pairs():
        gap = edge_to_edge_distance(frame.rects[first.id], frame.rects[second.id])
        if 0 < gap < math.inf:
            gaps.append(gap)
    if not gaps:
        return 0.0, 0.0
    return min(gaps), sum(gaps) / len(gaps)


def calculate_spacing_score(average_spacing: float, violations: Sequence[SpacingViolation]) -> float:
    bonus = min(20.0, (average_spacing - 50) / 10) if average_spacing > 50 else 0.0
    return max(0.0, min(100.0, 100 - len(violations) * 5 + bonus))


# Edges


def count_edge_crossings(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> int:
    crossings = 0
    for index, first in enumerate(edges):
        for second in edges[index + 1 :]:
            if _shares_endpoint(first, second):
                continue
            if first.has_route and second.has_route:
                if polylines_cross(first.points or [], second.points or []):
                    crossings += 1
                continue
            p1, p2 = frame.straight_path(first)
            p3, p4 = frame.straight_path(second)
            if segments_properly_intersect(p1, p2, p3, p4):
                crossings += 1
    return crossings


def count_edges_over_nodes(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> int:
    count = 0
    for edge in edges:
        endpoints = {edge.source, edge.target}
        excluded = set(endpoints)
        for endpoint in endpoints:
            excluded.update(ancestors(endpoint, frame.parents))
        segments = polyline_segments(frame.path(edge))
        for node in frame.nodes:
            if node.id in excluded or frame.parents.get(node.id) in endpoints:
                continue
            rect = frame.rects[node.id]
            if any(segment_intersects_rect(a, b, rect) for a, b in segments):
                count += 1
    return count


def count_edge_bends(edges: Sequence[DiagramEdge]) -> int:
    return sum(max(0, len(edge.points) - 2) for edge in edges if edge.points)


def calculate_edge_length_stats(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> EdgeLengthStats:
    lengths = [distance(*frame.straight_path(edge)) for edge in edges]
    if not lengths:
        return EdgeLengthStats()
    return EdgeLengthStats(min(lengths), max(lengths), sum(lengths) / len(lengths))


def calculate_edge_crossing_score(crossings: int, edge_count: int) -> float:
    if edge_count == 0 or crossings == 0:
        return 100.0
    if edge_count <= 10:
        multiplier = 150.0
    elif edge_count <= 20:
        multiplier = 100.0
    else:
        multiplier = max(50.0, 120.0 - (edge_count - 20) * 2)
    absolute_penalty = (crossings - 50) * 0.5 if crossings > 50 else 0.0
    return max(0.0, 100 - (crossings / edge_count) * multiplier - absolute_penalty)


def calculate_edges_over_nodes_score(edges_over_nodes: int, edge_count: int) -> float:
    if edge_count == 0:
        return 100.0
    return max(0.0, 100 - (edges_over_nodes / edge_count) * 150)


def calculate_edge_bend_score(bends: int, edge_count: int) -> float:
    if edge_count == 0:
        return 100.0
    return max(0.0, 100 - (bends / edge_count) * 20)


def calculate_edge_length_score(stats: EdgeLengthStats) -> float:
    if stats.average == 0:
        return 100.0
    low, high = EDGE_LENGTH_BAND
    score = 100.0
    if stats.average < low:
        score -= (low - stats.average) / 5
    elif stats.average > high:
        score -= (stats.average - high) / 20
    if stats.max > 2000:
        score -= 20
    if stats.min < 20:
        score -= 10
    return max(0.0, min(100.0, score))


def _grid_cell(offset: float, extent: float) -> int:
    fraction = offset / extent * CONGESTION_GRID
    if not math.isfinite(fraction):
        return 0
    return max(0, min(CONGESTION_GRID - 1, int(math.floor(fraction))))


def calculate_edge_congestion_score(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> float:
    bounds = frame.bounds()
    if not edges or bounds is None:
        return 100.0
    width = max(1.0, bounds.width)
    height = max(1.0, bounds.height)
    cells: Dict[Tuple[int, int], int] = {}
    for edge in edges:
        source, target = frame.straight_path(edge)
        mid_x = (source.x + target.x) / 2
        mid_y = (source.y + target.y) / 2
        cell = (_grid_cell(mid_y - bounds.y, height), _grid_cell(mid_x - bounds.x, width))
        cells[cell] = cells.get(cell, 0) + 1

    ratio = max(cells.values()) / len(edges)
    multiplier = 100.0
    if len(edges) > 20:
        multiplier = 80.0
    if len(edges) > 40:
        multiplier = 60.0
    return max(0.0, 100 - ratio * multiplier)


def calculate_crossing_angle_score(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> float:
    severities = []
    for index, first in enumerate(edges):
        for second in edges[index + 1 :]:
            if _shares_endpoint(first, second):
                continue
            p1, p2 = frame.straight_path(first)
            p3, p4 = frame.straight_path(second)
            if not segments_properly_intersect(p1, p2, p3, p4):
                continue
            angle = crossing_angle(p1, p2, p3, p4)
            if angle is None:
                continue
            severities.append(max(0.0, 45 - min(90.0, angle)) / 45)
    if not severities:
        return 100.0
    return max(0.0, 100 - (sum(severities) / len(severities)) * 100)


def calculate_detour_score(frame: DiagramFrame, edges: Sequence[DiagramEdge]) -> float:
    ratios = []
    for edge in edges:
        straight = distance(*frame.straight_path(edge))
        if straight <= 0:
            continue
        routed = polyline_length(edge.points or []) if edge.has_route else straight
        ratios.append(routed / straight)
    if not ratios:
        return 100.0
    excess = max(0.0, sum(ratios) / len(ratios) - 1)
    return max(0.0, 100 - min(100.0, excess * 80))


# Hierarchy


def detect_containment_violations(
    frame: DiagramFrame,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> List[ContainmentViolation]:
    """Checks each child's local box against its parent's interior minus padding."""
    padding = thresholds.parent_padding
    violations: List[ContainmentViolation] = []
    for child in frame.nodes:
        parent_id = frame.parents.get(child.id)
        if parent_id is None:
            continue
        parent_size = frame.by_id[parent_id].dimensions(thresholds.default_parent_size)
        box = child.local_rect(thresholds.default_node_size)
        left, top, right, bottom = box.x, box.y, box.right, box.bottom

        overflow_left = min(0.0, left - padding)
        overflow_top = min(0.0, top - padding)
        overflow_right = max(0.0, right - (parent_size.width - padding))
        overflow_bottom = max(0.0, bottom - (parent_size.height - padding))
        if not (overflow_left < 0 or overflow_top < 0 or overflow_right > 0 or overflow_bottom > 0):
            continue

        if left < 0 or top < 0 or right > parent_size.width or bottom > parent_size.height:
            kind = "outside"
            details = "Child completely outside parent bounds"
        else:
            kind = "too-close-to-edge"
            details = "Child too close to parent edge (padding violation)"

        overflow = []
        if overflow_left < 0:
            overflow.append(("left", abs(overflow_left)))
        if overflow_top < 0:
            overflow.append(("top", abs(overflow_top)))
        if overflow_right > 0:
            overflow.append(("right", overflow_right))
        if overflow_bottom > 0:
            overflow.append(("bottom", overflow_bottom))
        details += " (" + ", ".join(f"{side.capitalize()}: {amount:.1f}px" for side, amount in overflow) + ")"

        violations.append(ContainmentViolation(child.id, parent_id, kind, details, tuple(overflow)))
    return violations


def calculate_hierarchy_score(child_count: int, violations: Sequence[ContainmentViolation]) -> float:
    if child_count == 0 or not violations:
        return 100.0
    return max(0.0, 50 - (len(violations) - 1) * 20)


def detect_parent_child_size_violations(
    frame: DiagramFrame,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> List[ParentChildSizeViolation]:
    padding = thresholds.parent_padding
    children_by_parent: Dict[str, List[DiagramNode]] = {}
    for node in frame.nodes:
        parent_id = frame.parents.get(node.id)
        if parent_id is not None:
            children_by_parent.setdefault(parent_id, []).append(node)

    violations: List[ParentChildSizeViolation] = []
    for parent_id, children in children_by_parent.items():
        parent_size = frame.by_id[parent_id].dimensions(thresholds.default_parent_size)
        rects = [child.local_rect(thresholds.default_node_size) for child in children]
        span = bounding_box(rects)
        if span is None:
            continue
        required_width = span.width + padding * 2
        required_height = span.height + padding * 2
        too_narrow = parent_size.width < required_width
        too_short = parent_size.height < required_height
        if not (too_narrow or too_short):
            continue

        culprit_index = 0
        for index, rect in enumerate(rects):
            if rect.right > parent_size.width - padding or rect.bottom > parent_size.height - padding:
                culprit_index = index
                break
        culprit = children[culprit_index]
        culprit_rect = rects[culprit_index]

        if too_narrow and too_short:
            kind = "both"
        elif too_narrow:
            kind = "width"
        else:
            kind = "height"
        violations.append(
            ParentChildSizeViolation(
                parent_id=parent_id,
                child_id=culprit.id,
                parent_width=parent_size.width,
                parent_height=parent_size.height,
                child_width=culprit_rect.width,
                child_height=culprit_rect.height,
                required_width=required_width,
                required_height=required_height,
                violation=kind,
            )
        )
    return violations


# Canvas usage


def calculate_viewport_utilization(bounds: Optional[Rect], viewport: Size) -> Tuple[float, float]:
    """Returns ``(utilization, score)``; utilization is the mean of both axes, capped at 1."""
    if bounds is None or viewport.width <= 0 or viewport.height <= 0:
        return 0.0, 100.0
    util_x = min(1.0, bounds.width / viewport.width)
    util_y = min(1.0, bounds.height / viewport.height)
    utilization = (util_x + util_y) / 2

    low, high = VIEWPORT_BAND
    if low <= util_x <= high and low <= util_y <= high:
        return utilization, 100.0
    if utilization < low:
        return utilization, max(0.0, utilization / low * 100)
    return utilization, max(0.0, min(100.0, (1 - (utilization - high) / (1 - high)) * 100))


def calculate_empty_space(frame: DiagramFrame) -> float:
    if len(frame.nodes) < 2:
        return 0.0
    bounds = frame.bounds()
    if bounds is None or bounds.area <= 0:
        return 0.0
    root_area = sum(frame.rects[node.id].area for node in frame.nodes if frame.parents.get(node.id) is None)
    return max(0.0, 1 - root_area / bounds.area)


def calculate_empty_space_score(empty_space: float) -> float:
    low, high = EMPTY_SPACE_BAND
    if empty_space > high:
        return max(0.0, 100 - (empty_space - high) / (1 - high) * 100)
    if empty_space < low:
        return max(0.0, 100 - (low - empty_space) / low * 100)
    return 100.0


def calculate_aspect_ratio(bounds: Optional[Rect]) -> float:
    if bounds is None or bounds.height == 0:
        return 1.0
    return bounds.width / bounds.height


def calculate_aspect_ratio_score(aspect_ratio: float) -> float:
    if aspect_ratio < ASPECT_RATIO_MIN:
        return max(0.0, 100 - (ASPECT_RATIO_MIN - aspect_ratio) * 100)
    if aspect_ratio > ASPECT_RATIO_MAX:
        return max(0.0, 100 - (aspect_ratio - ASPECT_RATIO_MAX) * 50)
    return 100.0


def calculate_consistency_score(frame: DiagramFrame) -> float:
    """Lower positional variance among nodes of the same kind scores higher."""
    groups: Dict[str, List[Rect]] = {}
    for node in frame.nodes:
        groups.setdefault(node.kind or "unknown", []).append(frame.rects[node.id])

    variances = []
    for rects in groups.values():
        if len(rects) < 2:
            continue
        mean_x = sum(rect.x for rect in rects) / len(rects)
        mean_y = sum(rect.y for rect in rects) / len(rects)
        var_x = sum((rect.x - mean_x) * (rect.x - mean_x) for rect in rects) / len(rects)
        var_y = sum((rect.y - mean_y) * (rect.y - mean_y) for rect in rects) / len(rects)
        variances.append((var_x + var_y) / 2)
    if not variances:
        return 100.0
    return max(0.0, 100 - (sum(variances) / len(variances)) / 50)


def calculate_alignment_score(frame: DiagramFrame) -> float:
    """Share of siblings that fall on the dominant row or column, averaged over sibling groups."""
    if len(frame.nodes) < 3:
        return 100.0
    groups: Dict[Optional[str], List[DiagramNode]] = {}
    for node in frame.nodes:
        groups.setdefault(frame.parents.get(node.id), []).append(node)

    def best_bin(values: List[float]) -> int:
        seeds: List[float] = []
        for value in values:
            if not any(abs(seed - value) <= ALIGNMENT_TOLERANCE for seed in seeds):
                seeds.append(value)
        return max(sum(1 for value in values if abs(value - seed) <= ALIGNMENT_TOLERANCE) for seed in seeds)

    scores = []
    for siblings in groups.values():
        if len(siblings) < 3:
            continue
        best = max(
            best_bin([node.position.y for node in siblings]),
            best_bin([node.position.x for node in siblings]),
        )
        scores.append(min(100.0, best / len(siblings) * 100))
    if not scores:
        return 100.0
    return sum(scores) / len(scores)


def detect_direction_violations(
    frame: DiagramFrame,
    edges: Sequence[DiagramEdge],
    threshold: float = DEFAULT_THRESHOLDS.direction_threshold,
) -> List[DirectionViolation]:
    """Edges whose target sits noticeably above the source in a top-down layout."""
    violations: List[DirectionViolation] = []
    for edge in edges:
        if edge.source == edge.target:
            continue
        if frame.parents.get(edge.source) == edge.target or frame.parents.get(edge.target) == edge.source:
            continue
        source_y = frame.rects[edge.source].y
        target_y = frame.rects[edge.target].y
        if target_y < source_y - threshold:
            violations.append(DirectionViolation(edge.id, edge.source, edge.target, source_y - target_y))
    return violations


def calculate_direction_score(violations: Sequence[DirectionViolation], edge_count: int) -> float:
    if edge_count == 0:
        return 100.0
    return max(0.0, 100 - len(violations) / edge_count * 200)


# Labels


def _label_box(frame: DiagramFrame, edge: DiagramEdge, char_width: float) -> Rect:
    if edge.label_position is not None:
        center = edge.label_position
    else:
        source, target = frame.straight_path(edge)
        center = Point((source.x + target.x) / 2, (source.y + target.y) / 2)
    text_width = max(len(edge.label) * char_width, len(edge.technology) * (char_width - 1))
    width = text_width + 16
    height = 44.0 if edge.technology else 24.0
    return Rect(center.x - width / 2, center.y - height / 2, width, height)


def count_edge_label_overlaps(
    frame: DiagramFrame,
    edges: Sequence[DiagramEdge],
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Labelled edges whose estimated label box touches a padded node box; one count per edge."""
    pad = thresholds.label_padding
    count = 0
    for edge in edges:
        if not edge.label and not edge.technology:
            continue
        box = _label_box(frame, edge, thresholds.char_width)
        containers: Set[str] = set(ancestors(edge.source, frame.parents)) | set(ancestors(edge.target, frame.parents))
        for node in frame.nodes:
            if node.id in containers:
                continue
            rect = frame.rects[node.id]
            separated = (
                box.right < rect.x - pad
                or box.x > rect.right + pad
                or box.bottom < rect.y - pad
                or box.y > rect.bottom + pad
            )
            if not separated:
                count += 1
                break
    return count


def _label_is_clipped(node: DiagramNode, size: Size, char_width: float) -> bool:
    icon_width = CLIP_ICON_WIDTH if node.kind == "person" else 0.0
    extra_height = (CLIP_EXTRA_LINE_HEIGHT if node.technology else 0.0) + (
        CLIP_EXTRA_LINE_HEIGHT if node.description else 0.0
    )
    text_width = len(node.label) * char_width
    label_width = text_width + 16

    available_width = size.width - icon_width - CLIP_MIN_PADDING * 2
    available_height = size.height - extra_height - CLIP_MIN_PADDING * 2
    if text_width > available_width or CLIP_LABEL_HEIGHT > available_height:
        return True

    content_height = CLIP_LABEL_HEIGHT + extra_height
    if content_height / size.height > CLIP_CRAMPED_HEIGHT_RATIO:
        return True
    if (label_width * CLIP_LABEL_HEIGHT) / (size.width * size.height) > CLIP_TIGHT_RATIO:
        return True

    label_top = 30.0 if icon_width else 20.0
    if size.height - (label_top + content_height) < CLIP_MIN_PADDING:
        return True
    if icon_width + text_width + CLIP_MIN_PADDING > size.width - CLIP_MIN_PADDING:
        return True
    return size.height < label_top + content_height + CLIP_MIN_PADDING


def count_clipped_node_labels(frame: DiagramFrame, thresholds: QualityThresholds = DEFAULT_THRESHOLDS) -> int:
    count = 0
    for node in frame.nodes:
        if not node.label:
            continue
        rect = frame.rects[node.id]
        if rect.width <= 0 or rect.height <= 0:
            continue
        if _label_is_clipped(node, Size(rect.width, rect.height), thresholds.char_width):
            count += 1
    return count


def calculate_edge_label_overlap_score(overlaps: int, edge_count: int) -> float:
    if edge_count == 0 or overlaps == 0:
        return 100.0
    return max(0.0, 100 - overlaps / edge_count * 50)


def calculate_clipped_label_score(clipped: int, node_count: int) -> float:
    if node_count == 0 or clipped == 0:
        return 100.0
    return max(0.0, 100 - clipped / node_count * 150)


def analyze(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    viewport_size: Optional[Size] = None,
    weights: Optional[QualityWeights] = None,
    level: Optional[str] = None,
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS,
) -> DiagramQualityMetrics:
    """Measure a positioned diagram and score it.

    ``weights`` wins when given; otherwise the table for ``level`` (or the
    defaults) applies. Inputs are never mutated and the result depends only on
    the arguments.
    """
    viewport = viewport_size or DEFAULT_VIEWPORT
    effective_weights = weights if weights is not None else get_quality_weights_for_level(level)

    frame = DiagramFrame.build(nodes, thresholds.default_node_size)
    usable_edges = frame.resolvable(edges)
    edge_count = len(usable_edges)
    bounds = frame.bounds()

    pair_count = len(frame.node_pairs())
    overlaps = detect_overlaps(frame)
    overlap_score = calculate_overlap_score(pair_count, overlaps)

    spacing_violations = detect_spacing_violations(frame, thresholds.min_node_spacing)
    min_spacing, average_spacing = calculate_spacing_stats(frame)
    spacing_score = calculate_spacing_score(average_spacing, spacing_violations)

    crossings = count_edge_crossings(frame, usable_edges)
    edges_over_nodes = count_edges_over_nodes(frame, usable_edges)
    bends = count_edge_bends(usable_edges)
    length_stats = calculate_edge_length_stats(frame, usable_edges)
    edge_score = calculate_edge_score(crossings, edges_over_nodes, bends, length_stats.average)
    edge_crossing_score = calculate_edge_crossing_score(crossings, edge_count)
    edges_over_nodes_score = calculate_edges_over_nodes_score(edges_over_nodes, edge_count)
    edge_bend_score = calculate_edge_bend_score(bends, edge_count)
    edge_length_score = calculate_edge_length_score(length_stats)

    containment = detect_containment_violations(frame, thresholds)
    child_count = sum(1 for node in frame.nodes if frame.parents.get(node.id) is not None)
    hierarchy_score = calculate_hierarchy_score(child_count, containment)
    size_violations = detect_parent_child_size_violations(frame, thresholds)

    viewport_utilization, viewport_score = calculate_viewport_utilization(bounds, viewport)
    consistency_score = calculate_consistency_score(frame)
    aspect_ratio = calculate_aspect_ratio(bounds)
    aspect_ratio_score = calculate_aspect_ratio_score(aspect_ratio)

    direction_violations = detect_direction_violations(frame, usable_edges, thresholds.direction_threshold)
    direction_score = calculate_direction_score(direction_violations, edge_count)

    empty_space = calculate_empty_space(frame)
    empty_space_score = calculate_empty_space_score(empty_space) if len(frame.nodes) >= 2 else 100.0

    edge_label_overlaps = count_edge_label_overlaps(frame, usable_edges, thresholds)
    edge_label_overlap_score = calculate_edge_label_overlap_score(edge_label_overlaps, edge_count)
    clipped_labels = count_clipped_node_labels(frame, thresholds)
    clipped_label_score = calculate_clipped_label_score(clipped_labels, len(frame.nodes))
    if edge_label_overlaps or clipped_labels:
        logger.info(
            "Label issues detected: edge_label_overlaps=%d clipped_node_labels=%d "
            "edge_label_overlap_score=%.1f clipped_label_score=%.1f",
            edge_label_overlaps,
            clipped_labels,
            edge_label_overlap_score,
            clipped_label_score,
        )

    edge_congestion_score = calculate_edge_congestion_score(frame, usable_edges)
    crossing_angle_score = calculate_crossing_angle_score(frame, usable_edges)
    alignment_score = calculate_alignment_score(frame)
    detour_score = calculate_detour_score(frame, usable_edges)

    sub_scores = {
        "overlap": overlap_score,
        "spacing": spacing_score,
        "edge_crossings": edge_crossing_score,
        "edges_over_nodes": edges_over_nodes_score,
        "edge_bends": edge_bend_score,
        "edge_length": edge_length_score,
        "hierarchy": hierarchy_score,
        "viewport": viewport_score,
        "consistency": consistency_score,
        "aspect_ratio": aspect_ratio_score,
        "direction": direction_score,
        "empty_space": empty_space_score,
        "edge_label_overlaps": edge_label_overlap_score,
        "clipped_labels": clipped_label_score,
        "edge_congestion": edge_congestion_score,
        "crossing_angles": crossing_angle_score,
        "alignment": alignment_score,
        "detour": detour_score,
    }
    weighted_score = apply_critical_caps(
        score_criteria(sub_scores, effective_weights),
        overlap_count=len(overlaps),
        containment_count=len(containment),
        label_issue_count=edge_label_overlaps + clipped_labels,
    )
    overall_score = calculate_overall_score(
        overlap=overlap_score,
        spacing=spacing_score,
        edge=edge_score,
        hierarchy=hierarchy_score,
        direction=direction_score,
        viewport=viewport_score,
        consistency=consistency_score,
        aspect_ratio=aspect_ratio_score,
    )
    grade = grade_for(weighted_score)
    node_badness = calculate_node_badness(
        (node.id for node in frame.nodes), overlaps, spacing_violations, containment
    )

    logger.debug(
        "Analyzed diagram: nodes=%d edges=%d weighted_score=%.1f grade=%s",
        len(frame.nodes),
        edge_count,
        weighted_score,
        grade,
    )

    return DiagramQualityMetrics(
        overlapping_nodes=tuple(overlaps),
        overlap_score=overlap_score,
        min_spacing=min_spacing,
        average_spacing=average_spacing,
        spacing_violations=tuple(spacing_violations),
        spacing_score=spacing_score,
        edge_crossings=crossings,
        edges_over_nodes=edges_over_nodes,
        edge_bends=bends,
        edge_length=length_stats,
        edge_score=edge_score,
        edge_crossing_score=edge_crossing_score,
        edges_over_nodes_score=edges_over_nodes_score,
        edge_bend_score=edge_bend_score,
        edge_length_score=edge_length_score,
        parent_child_containment=tuple(containment),
        hierarchy_score=hierarchy_score,
        parent_child_size_violations=tuple(size_violations),
        viewport_utilization=viewport_utilization,
        viewport_score=viewport_score,
        consistency_score=consistency_score,
        aspect_ratio=aspect_ratio,
        aspect_ratio_score=aspect_ratio_score,
        direction_violations=tuple(direction_violations),
        direction_score=direction_score,
        empty_space=empty_space,
        empty_space_score=empty_space_score,
        edge_label_overlaps=edge_label_overlaps,
        edge_label_overlap_score=edge_label_overlap_score,
        clipped_node_labels=clipped_labels,
        clipped_label_score=clipped_label_score,
        edge_congestion_score=edge_congestion_score,
        crossing_angle_score=crossing_angle_score,
        alignment_score=alignment_score,
        detour_score=detour_score,
        overall_score=overall_score,
        weighted_score=weighted_score,
        grade=grade,
        node_badness=node_badness,
    )

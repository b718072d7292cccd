from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .types import DEFAULT_NODE_SIZE, DiagramNode, Point, Rect

logger = logging.getLogger(__name__)

Segment = Tuple[Point, Point]


def _finite(*values: float) -> bool:
    return all(math.isfinite(value) for value in values)


def rect_overlap_area(a: Rect, b: Rect) -> float:
    """Overlap area of two axis-aligned rectangles in the same frame; 0 when disjoint."""
    left = max(a.x, b.x)
    right = min(a.right, b.right)
    top = max(a.y, b.y)
    bottom = min(a.bottom, b.bottom)
    if not _finite(left, right, top, bottom):
        return 0.0
    if left < right and top < bottom:
        return (right - left) * (bottom - top)
    return 0.0


def edge_to_edge_distance(a: Rect, b: Rect) -> float:
    """Gap between two rectangles along their centre axis; negative when they overlap.

    Non-finite input yields ``math.inf`` so that callers never flag a violation.
    """
    ca = a.center
    cb = b.center
    dx = abs(ca.x - cb.x) - (a.width + b.width) / 2
    dy = abs(ca.y - cb.y) - (a.height + b.height) / 2
    if not _finite(dx, dy):
        return math.inf
    if dx < 0 and dy < 0:
        return -math.sqrt(dx * dx + dy * dy)
    gap_x = max(0.0, dx)
    gap_y = max(0.0, dy)
    return math.sqrt(gap_x * gap_x + gap_y * gap_y)


def orientation(a: Point, b: Point, c: Point) -> float:
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


def segments_properly_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Strict crossing test: touching, shared endpoints and collinear overlap do not count."""
    o1 = orientation(p1, p2, p3)
    o2 = orientation(p1, p2, p4)
    o3 = orientation(p3, p4, p1)
    o4 = orientation(p3, p4, p2)
    if not _finite(o1, o2, o3, o4):
        return False
    return o1 * o2 < 0 and o3 * o4 < 0


def point_in_rect(point: Point, rect: Rect, strict: bool = True) -> bool:
    if strict:
        return rect.x < point.x < rect.right and rect.y < point.y < rect.bottom
    return rect.x <= point.x <= rect.right and rect.y <= point.y <= rect.bottom


def rect_boundary(rect: Rect) -> List[Segment]:
    top_left = Point(rect.x, rect.y)
    top_right = Point(rect.right, rect.y)
    bottom_right = Point(rect.right, rect.bottom)
    bottom_left = Point(rect.x, rect.bottom)
    return [
        (top_left, top_right),
        (top_right, bottom_right),
        (bottom_right, bottom_left),
        (bottom_left, top_left),
    ]


def segment_intersects_rect(p1: Point, p2: Point, rect: Rect) -> bool:
    if rect.width <= 0 or rect.height <= 0:
        return False
    if point_in_rect(p1, rect) or point_in_rect(p2, rect):
        return True
    return any(segments_properly_intersect(p1, p2, a, b) for a, b in rect_boundary(rect))


def polyline_segments(points: Sequence[Point]) -> List[Segment]:
    if len(points) < 2:
        return []
    return list(zip(points, points[1:]))


def polylines_cross(first: Sequence[Point], second: Sequence[Point]) -> bool:
    for a, b in polyline_segments(first):
        for c, d in polyline_segments(second):
            if segments_properly_intersect(a, b, c, d):
                return True
    return False


def polyline_length(points: Sequence[Point]) -> float:
    return sum(distance(a, b) for a, b in polyline_segments(points))


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def crossing_angle(p1: Point, p2: Point, p3: Point, p4: Point) -> Optional[float]:
    """Acute angle in degrees between two segments, ``None`` for zero-length input."""
    v1x, v1y = p2.x - p1.x, p2.y - p1.y
    v2x, v2y = p4.x - p3.x, p4.y - p3.y
    len1 = math.hypot(v1x, v1y)
    len2 = math.hypot(v2x, v2y)
    if len1 == 0 or len2 == 0 or not _finite(len1, len2):
        return None
    cos = min(1.0, max(-1.0, abs(v1x * v2x + v1y * v2y) / (len1 * len2)))
    return math.degrees(math.acos(cos))


def bounding_box(rects: Iterable[Rect]) -> Optional[Rect]:
    rects = list(rects)
    if not rects:
        return None
    min_x = min(rect.x for rect in rects)
    min_y = min(rect.y for rect in rects)
    max_x = max(rect.right for rect in rects)
    max_y = max(rect.bottom for rect in rects)
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)


def parent_map(nodes: Sequence[DiagramNode]) -> Dict[str, Optional[str]]:
    """Child id -> parent id, with dangling parents and cycles broken to ``None``."""
    known = {node.id for node in nodes}
    parents: Dict[str, Optional[str]] = {}
    for node in nodes:
        parents[node.id] = node.parent_id if node.parent_id in known else None

    for node_id in list(parents):
        seen: Set[str] = {node_id}
        current = parents[node_id]
        while current is not None:
            if current in seen:
                logger.debug("Breaking parent cycle at node %s", node_id)
                parents[node_id] = None
                break
            seen.add(current)
            current = parents.get(current)
    return parents


def ancestors(node_id: str, parents: Dict[str, Optional[str]]) -> List[str]:
    chain: List[str] = []
    current = parents.get(node_id)
    while current is not None and current not in chain and current != node_id:
        chain.append(current)
        current = parents.get(current)
    return chain


def resolve_absolute_rects(
    nodes: Sequence[DiagramNode],
    parents: Optional[Dict[str, Optional[str]]] = None,
    default_size: float = DEFAULT_NODE_SIZE,
) -> Dict[str, Rect]:
    """Absolute rectangle per node: parent origin plus local position, recursively."""
    parents = parents if parents is not None else parent_map(nodes)
    by_id = {node.id: node for node in nodes}
    resolved: Dict[str, Rect] = {}

    def resolve(node_id: str) -> Rect:
        if node_id in resolved:
            return resolved[node_id]
        node = by_id[node_id]
        x, y = node.position.x, node.position.y
        parent_id = parents.get(node_id)
        if parent_id is not None:
            origin = resolve(parent_id)
            x += origin.x
            y += origin.y
        size = node.dimensions(default_size)
        rect = Rect(x, y, size.width, size.height)
        resolved[node_id] = rect
        return rect

    for node in nodes:
        resolve(node.id)
    return resolved

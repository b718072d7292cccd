from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple


DEFAULT_NODE_SIZE = 100.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float = DEFAULT_NODE_SIZE
    height: float = DEFAULT_NODE_SIZE


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


@dataclass
class DiagramNode:
    """A positioned box. ``position`` is parent-relative when ``parent_id`` is set.

    ``size`` is ``None`` when the renderer has not measured the node yet; callers
    pick the fallback through :meth:`dimensions`.
    """

    id: str
    position: Point = field(default_factory=lambda: Point(0.0, 0.0))
    size: Optional[Size] = None
    parent_id: Optional[str] = None
    kind: str = "unknown"
    is_external: bool = False
    label: str = ""
    technology: str = ""
    description: str = ""
    expanded: bool = False

    def dimensions(self, default: float = DEFAULT_NODE_SIZE) -> Size:
        if self.size is None:
            return Size(default, default)
        width = self.size.width if self.size.width > 0 else default
        height = self.size.height if self.size.height > 0 else default
        return Size(width, height)

    def local_rect(self, default: float = DEFAULT_NODE_SIZE) -> Rect:
        """Box in the parent's frame (or the canvas frame for root nodes)."""
        size = self.dimensions(default)
        return Rect(self.position.x, self.position.y, size.width, size.height)


@dataclass
class DiagramEdge:
    id: str
    source: str
    target: str
    label: str = ""
    technology: str = ""
    points: Optional[List[Point]] = None
    label_position: Optional[Point] = None
    interaction: str = "sync"

    @property
    def has_route(self) -> bool:
        return bool(self.points) and len(self.points) > 1


@dataclass
class GraphSnapshot:
    nodes: List[DiagramNode] = field(default_factory=list)
    edges: List[DiagramEdge] = field(default_factory=list)
    viewport: Optional[Size] = None


@dataclass(frozen=True)
class OverlapViolation:
    node1: str
    node2: str
    overlap_area: float
    overlap_percentage: float


@dataclass(frozen=True)
class SpacingViolation:
    node1: str
    node2: str
    distance: float
    min_required: float


@dataclass(frozen=True)
class ContainmentViolation:
    child_id: str
    parent_id: str
    violation: str  # "outside" | "too-close-to-edge"
    details: str
    overflow: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class ParentChildSizeViolation:
    parent_id: str
    child_id: str
    parent_width: float
    parent_height: float
    child_width: float
    child_height: float
    required_width: float
    required_height: float
    violation: str  # "width" | "height" | "both"


@dataclass(frozen=True)
class DirectionViolation:
    edge_id: str
    source_id: str
    target_id: str
    delta_y: float


@dataclass(frozen=True)
class EdgeLengthStats:
    min: float = 0.0
    max: float = 0.0
    average: float = 0.0


@dataclass(frozen=True)
class DiagramQualityMetrics:
    overlapping_nodes: Tuple[OverlapViolation, ...]
    overlap_score: float

    min_spacing: float
    average_spacing: float
    spacing_violations: Tuple[SpacingViolation, ...]
    spacing_score: float

    edge_crossings: int
    edges_over_nodes: int
    edge_bends: int
    edge_length: EdgeLengthStats
    edge_score: float
    edge_crossing_score: float
    edges_over_nodes_score: float
    edge_bend_score: float
    edge_length_score: float

    parent_child_containment: Tuple[ContainmentViolation, ...]
    hierarchy_score: float
    parent_child_size_violations: Tuple[ParentChildSizeViolation, ...]

    viewport_utilization: float
    viewport_score: float
    consistency_score: float
    aspect_ratio: float
    aspect_ratio_score: float

    direction_violations: Tuple[DirectionViolation, ...]
    direction_score: float
    empty_space: float
    empty_space_score: float

    edge_label_overlaps: int
    edge_label_overlap_score: float
    clipped_node_labels: int
    clipped_label_score: float
    edge_congestion_score: float
    crossing_angle_score: float
    alignment_score: float
    detour_score: float

    overall_score: float
    weighted_score: float
    grade: str
    node_badness: Dict[str, float] = field(default_factory=dict)

    def sub_scores(self) -> Dict[str, float]:
        """Per-criterion scores keyed by ``QualityWeights`` field name."""
        return {
            "overlap": self.overlap_score,
            "spacing": self.spacing_score,
            "edge_crossings": self.edge_crossing_score,
            "edges_over_nodes": self.edges_over_nodes_score,
            "edge_bends": self.edge_bend_score,
            "edge_length": self.edge_length_score,
            "hierarchy": self.hierarchy_score,
            "viewport": self.viewport_score,
            "consistency": self.consistency_score,
            "aspect_ratio": self.aspect_ratio_score,
            "direction": self.direction_score,
            "empty_space": self.empty_space_score,
            "edge_label_overlaps": self.edge_label_overlap_score,
            "clipped_labels": self.clipped_label_score,
            "edge_congestion": self.edge_congestion_score,
            "crossing_angles": self.crossing_angle_score,
            "alignment": self.alignment_score,
            "detour": self.detour_score,
        }

    @classmethod
    def empty(cls) -> "DiagramQualityMetrics":
        """Record for a diagram that rendered without nodes: nothing measured, score 0."""
        return cls(
            overlapping_nodes=(),
            overlap_score=100.0,
            min_spacing=0.0,
            average_spacing=0.0,
            spacing_violations=(),
            spacing_score=100.0,
            edge_crossings=0,
            edges_over_nodes=0,
            edge_bends=0,
            edge_length=EdgeLengthStats(),
            edge_score=100.0,
            edge_crossing_score=100.0,
            edges_over_nodes_score=100.0,
            edge_bend_score=100.0,
            edge_length_score=100.0,
            parent_child_containment=(),
            hierarchy_score=100.0,
            parent_child_size_violations=(),
            viewport_utilization=0.0,
            viewport_score=100.0,
            consistency_score=100.0,
            aspect_ratio=1.0,
            aspect_ratio_score=100.0,
            direction_violations=(),
            direction_score=100.0,
            empty_space=0.0,
            empty_space_score=100.0,
            edge_label_overlaps=0,
            edge_label_overlap_score=100.0,
            clipped_node_labels=0,
            clipped_label_score=100.0,
            edge_congestion_score=100.0,
            crossing_angle_score=100.0,
            alignment_score=100.0,
            detour_score=100.0,
            overall_score=0.0,
            weighted_score=0.0,
            grade="F",
            node_badness={},
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AuditResult:
    score: float
    violations: List[str] = field(default_factory=list)
    metrics: DiagramQualityMetrics = field(default_factory=DiagramQualityMetrics.empty)
    screenshot_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "violations": list(self.violations),
            "screenshot_path": self.screenshot_path,
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class SuccessfulLayout:
    prompt: str
    json: Dict[str, Any]
    score: float
    timestamp: float = 0.0
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "prompt": self.prompt,
            "json": self.json,
            "score": self.score,
            "timestamp": self.timestamp,
        }
        if self.category is not None:
            payload["category"] = self.category
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SuccessfulLayout":
        category = data.get("category")
        return cls(
            prompt=str(data.get("prompt", "")),
            json=data.get("json") if isinstance(data.get("json"), dict) else {},
            score=float(data.get("score", 0.0)),
            timestamp=float(data.get("timestamp", 0.0)),
            category=str(category) if category is not None else None,
        )


@dataclass
class LayoutConstraints:
    order_hint: Dict[str, int] = field(default_factory=dict)
    rank_of: Dict[str, int] = field(default_factory=dict)
    same_rank: List[List[str]] = field(default_factory=list)


@dataclass
class LayoutConfig:
    engine: str = "sruja"  # "sruja" | "c4level"
    direction: str = "DOWN"  # "DOWN" | "RIGHT" | "UP" | "LEFT"
    options: Dict[str, Any] = field(default_factory=dict)
    constraints: LayoutConstraints = field(default_factory=LayoutConstraints)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

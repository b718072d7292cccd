from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, Tuple

from diagramqa.utils.types import DiagramEdge, DiagramNode, LayoutConfig, Size


@dataclass(frozen=True)
class LayoutContext:
    """Structural signals derived once per selection call."""

    nodes: Tuple[DiagramNode, ...]
    edges: Tuple[DiagramEdge, ...]
    current_level: Optional[str]
    focused_system_id: Optional[str] = None
    focused_container_id: Optional[str] = None
    expanded_nodes: FrozenSet[str] = field(default_factory=frozenset)
    node_count: int = 0
    edge_count: int = 0
    has_hierarchy: bool = False
    has_expanded_nodes: bool = False
    average_node_size: Size = field(default_factory=Size)
    complexity: str = "simple"  # "simple" | "medium" | "complex"
    relationship_density: float = 0.0
    has_bidirectional_edges: bool = False
    edge_flow_direction: str = "vertical"  # "vertical" | "horizontal" | "mixed"
    estimated_aspect_ratio: float = 1.0
    viewport_aspect_ratio: Optional[float] = None

    @property
    def average_node_aspect(self) -> float:
        if self.average_node_size.height <= 0:
            return 1.0
        return self.average_node_size.width / self.average_node_size.height


RuleCondition = Callable[[LayoutContext], bool]
RuleAction = Callable[[LayoutContext], LayoutConfig]


@dataclass(frozen=True)
class LayoutRule:
    id: str
    name: str
    priority: int
    condition: RuleCondition
    action: RuleAction

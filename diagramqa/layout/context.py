from __future__ import annotations

from typing import Iterable, Optional, Sequence, Set

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.geometry import ancestors, parent_map
from diagramqa.utils.types import DEFAULT_NODE_SIZE, DiagramEdge, DiagramNode, Size


def classify_complexity(node_count: int, edge_count: int) -> str:
    if node_count < 10 and edge_count < 15:
        return "simple"
    if node_count < 30 and edge_count < 50:
        return "medium"
    return "complex"


def has_bidirectional_edges(edges: Sequence[DiagramEdge]) -> bool:
    seen: Set[tuple] = set()
    for edge in edges:
        if (edge.target, edge.source) in seen:
            return True
        seen.add((edge.source, edge.target))
    return False


def analyze_edge_flow(nodes: Sequence[DiagramNode], edges: Sequence[DiagramEdge]) -> str:
    """Infer the dominant flow from structure alone, since positions are not known yet."""
    if not edges:
        return "vertical"

    parents = parent_map(nodes)
    if any(parent is not None for parent in parents.values()):
        parent_child = 0
        siblings = 0
        for edge in edges:
            if edge.source not in parents or edge.target not in parents:
                continue
            source_parent = parents[edge.source]
            target_parent = parents[edge.target]
            if source_parent == edge.target or target_parent == edge.source:
                parent_child += 1
            elif source_parent is not None and source_parent == target_parent:
                siblings += 1
        if parent_child > siblings * 2:
            return "vertical"
        if siblings > parent_child:
            return "horizontal"
        return "mixed"

    density = len(edges) / max(1, len(nodes))
    return "horizontal" if density > 2.5 else "vertical"


def estimate_aspect_ratio(nodes: Sequence[DiagramNode], edges: Sequence[DiagramEdge], has_hierarchy: bool) -> float:
    if has_hierarchy:
        parents = parent_map(nodes)
        max_depth = max((len(ancestors(node.id, parents)) for node in nodes), default=0)
        breadth = len(nodes) / max(1, max_depth)
        return 0.7 if max_depth > breadth else 1.5

    density = len(edges) / max(1, len(nodes))
    if density > 2.0:
        return 1.8
    if density < 1.0:
        return 0.8
    return 1.0


def analyze_layout_context(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    current_level: Optional[str],
    focused_system_id: Optional[str] = None,
    focused_container_id: Optional[str] = None,
    expanded_nodes: Optional[Iterable[str]] = None,
    viewport_size: Optional[Size] = None,
) -> LayoutContext:
    nodes = tuple(nodes)
    edges = tuple(edges)
    expanded = frozenset(expanded_nodes or ())

    node_count = len(nodes)
    edge_count = len(edges)
    parents = parent_map(nodes)
    has_hierarchy = any(parent is not None for parent in parents.values())
    has_expanded = bool(expanded) or any(node.expanded for node in nodes)

    if node_count:
        sizes = [node.dimensions() for node in nodes]
        average = Size(
            sum(size.width for size in sizes) / node_count,
            sum(size.height for size in sizes) / node_count,
        )
    else:
        average = Size(DEFAULT_NODE_SIZE, DEFAULT_NODE_SIZE)

    viewport_aspect = None
    if viewport_size is not None and viewport_size.height > 0:
        viewport_aspect = viewport_size.width / viewport_size.height

    return LayoutContext(
        nodes=nodes,
        edges=edges,
        current_level=current_level.upper() if current_level else None,
        focused_system_id=focused_system_id,
        focused_container_id=focused_container_id,
        expanded_nodes=expanded,
        node_count=node_count,
        edge_count=edge_count,
        has_hierarchy=has_hierarchy,
        has_expanded_nodes=has_expanded,
        average_node_size=average,
        complexity=classify_complexity(node_count, edge_count),
        relationship_density=edge_count / node_count if node_count else 0.0,
        has_bidirectional_edges=has_bidirectional_edges(edges),
        edge_flow_direction=analyze_edge_flow(nodes, edges),
        estimated_aspect_ratio=estimate_aspect_ratio(nodes, edges, has_hierarchy),
        viewport_aspect_ratio=viewport_aspect,
    )

from __future__ import annotations

from typing import List, Optional

from diagramqa.quality.analyzer import ASPECT_RATIO_MAX, ASPECT_RATIO_MIN
from diagramqa.utils.types import DiagramQualityMetrics

TOP_N = 5


def generate_quality_report(metrics: DiagramQualityMetrics, context: Optional[str] = None) -> str:
    title = f"=== Diagram Quality Report: {context} ===" if context else "=== Diagram Quality Report ==="
    lines: List[str] = [title, ""]

    lines.append(f"Weighted Score: {metrics.weighted_score:.1f}/100 (Grade: {metrics.grade})")
    lines.append(f"Unweighted Score: {metrics.overall_score:.1f}/100")
    lines.append("")
    lines.append("Component Scores:")
    lines.append(f"  Overlap Score: {metrics.overlap_score:.1f}/100 ({len(metrics.overlapping_nodes)} overlaps)")
    lines.append(
        f"  Spacing Score: {metrics.spacing_score:.1f}/100 "
        f"(min: {metrics.min_spacing:.1f}px, avg: {metrics.average_spacing:.1f}px)"
    )
    lines.append(f"  Edge Crossings: {metrics.edge_crossings} (score: {metrics.edge_crossing_score:.1f})")
    lines.append(f"  Edges Over Nodes: {metrics.edges_over_nodes} (score: {metrics.edges_over_nodes_score:.1f})")
    lines.append(f"  Edge Bends: {metrics.edge_bends} (score: {metrics.edge_bend_score:.1f})")
    lines.append(
        f"  Edge Length: min={metrics.edge_length.min:.0f}px, max={metrics.edge_length.max:.0f}px, "
        f"avg={metrics.edge_length.average:.0f}px (score: {metrics.edge_length_score:.1f})"
    )
    lines.append(f"  Edge Score: {metrics.edge_score:.1f}/100")
    lines.append(
        f"  Hierarchy Score: {metrics.hierarchy_score:.1f}/100 "
        f"({len(metrics.parent_child_containment)} violations)"
    )
    lines.append(
        f"  Viewport Score: {metrics.viewport_score:.1f}/100 "
        f"({metrics.viewport_utilization * 100:.1f}% utilization)"
    )
    lines.append(f"  Consistency Score: {metrics.consistency_score:.1f}/100")
    lines.append(f"  Aspect Ratio: {metrics.aspect_ratio:.2f} (score: {metrics.aspect_ratio_score:.1f}/100)")
    lines.append(
        f"  Direction Score: {metrics.direction_score:.1f}/100 "
        f"({len(metrics.direction_violations)} upward edges)"
    )
    lines.append(f"  Empty Space: {metrics.empty_space * 100:.1f}% (score: {metrics.empty_space_score:.1f}/100)")
    lines.append(
        f"  Edge Label Overlaps: {metrics.edge_label_overlaps} "
        f"(score: {metrics.edge_label_overlap_score:.1f}/100)"
    )
    lines.append(
        f"  Clipped Node Labels: {metrics.clipped_node_labels} (score: {metrics.clipped_label_score:.1f}/100)"
    )
    lines.append(
        f"  Congestion/Angle/Alignment/Detour: {metrics.edge_congestion_score:.1f} / "
        f"{metrics.crossing_angle_score:.1f} / {metrics.alignment_score:.1f} / {metrics.detour_score:.1f}"
    )
    lines.append(f"  Parent-Child Size Violations: {len(metrics.parent_child_size_violations)}")

    if metrics.overlapping_nodes:
        lines.extend(["", "Overlapping Nodes:"])
        for item in metrics.overlapping_nodes[:TOP_N]:
            lines.append(f"  - {item.node1} & {item.node2}: {item.overlap_percentage:.1f}% overlap")

    if metrics.spacing_violations:
        lines.extend(["", "Spacing Violations:"])
        for item in metrics.spacing_violations[:TOP_N]:
            lines.append(
                f"  - {item.node1} & {item.node2}: {item.distance:.1f}px (min: {item.min_required:g}px)"
            )

    containment = metrics.parent_child_containment
    if containment:
        lines.extend(["", "CRITICAL: Parent-Child Containment Violations:"])
        lines.append(f"  {len(containment)} child node(s) are outside their parent's bounding box!")
        for item in containment[:TOP_N]:
            lines.append(f'  - Child "{item.child_id}" in parent "{item.parent_id}": {item.violation}')
            lines.append(f"    Details: {item.details}")
        if len(containment) > TOP_N:
            lines.append(f"  ... and {len(containment) - TOP_N} more violations")

    if metrics.parent_child_size_violations:
        lines.extend(["", "Parent-Child Size Violations:"])
        for item in metrics.parent_child_size_violations[:TOP_N]:
            lines.append(
                f"  - Parent {item.parent_id}: {item.parent_width:.0f}x{item.parent_height:.0f}px, "
                f"required: {item.required_width:.0f}x{item.required_height:.0f}px ({item.violation})"
            )

    if metrics.aspect_ratio < ASPECT_RATIO_MIN or metrics.aspect_ratio > ASPECT_RATIO_MAX:
        lines.append("")
        lines.append(
            f"Aspect Ratio Warning: {metrics.aspect_ratio:.2f} (optimal: {ASPECT_RATIO_MIN}-{ASPECT_RATIO_MAX})"
        )
        if metrics.aspect_ratio < ASPECT_RATIO_MIN:
            lines.append("  Diagram is too tall (vertically stretched)")
        else:
            lines.append("  Diagram is too wide (horizontally stretched)")

    if metrics.empty_space_score < 80:
        lines.append("")
        lines.append(
            f"Empty Space Warning: {metrics.empty_space * 100:.1f}% empty space "
            f"(score: {metrics.empty_space_score:.1f}/100)"
        )
        if metrics.empty_space > 0.8:
            lines.append("  Diagram is too sparse (too much empty space)")
        elif metrics.empty_space < 0.2:
            lines.append("  Diagram is too crowded (too little empty space)")
        lines.append("  Optimal range: 20-80% empty space")

    if metrics.edge_label_overlaps:
        lines.append("")
        lines.append(f"Edge Label Overlaps: {metrics.edge_label_overlaps} edge labels overlapping nodes")

    if metrics.clipped_node_labels:
        lines.append("")
        lines.append(f"Clipped Node Labels: {metrics.clipped_node_labels} node labels cut off or cramped")

    return "\n".join(lines) + "\n"

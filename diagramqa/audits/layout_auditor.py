from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from diagramqa.quality.analyzer import DEFAULT_VIEWPORT, analyze
from diagramqa.quality.weights import DEFAULT_THRESHOLDS, QualityThresholds, QualityWeights
from diagramqa.utils.snapshot import snapshot_from_dict
from diagramqa.utils.types import AuditResult, DiagramQualityMetrics, Size

logger = logging.getLogger(__name__)

NO_NODES_MESSAGE = "CRITICAL: No nodes found in the diagram."

# Copies only plain fields so live React objects never reach the serializer.
GRAPH_SNAPSHOT_SCRIPT = """
(name) => {
  const graph = window[name];
  const pick = (value) => (value === undefined ? null : value);
  const nodes = graph && Array.isArray(graph.nodes) ? graph.nodes : [];
  const edges = graph && Array.isArray(graph.edges) ? graph.edges : [];
  return {
    nodes: nodes.map((n) => ({
      id: n.id,
      position: n.position ? { x: n.position.x, y: n.position.y } : null,
      width: pick(n.width),
      height: pick(n.height),
      measured: n.measured ? { width: n.measured.width, height: n.measured.height } : null,
      style: n.style ? { width: n.style.width, height: n.style.height } : null,
      parentId: pick(n.parentId || n.parentNode),
      data: n.data
        ? {
            label: typeof n.data.label === "string" ? n.data.label : null,
            type: pick(n.data.type),
            isExternal: !!n.data.isExternal,
            technology: typeof n.data.technology === "string" ? n.data.technology : null,
            description: typeof n.data.description === "string" ? n.data.description : null,
            expanded: !!n.data.expanded,
            childCount: pick(n.data.childCount),
          }
        : null,
    })),
    edges: edges.map((e) => ({
      id: e.id,
      source: e.source,
      target: e.target,
      label: typeof e.label === "string" ? e.label : null,
      data: e.data
        ? {
            label: typeof e.data.label === "string" ? e.data.label : null,
            technology: typeof e.data.technology === "string" ? e.data.technology : null,
            points: Array.isArray(e.data.points) ? e.data.points.map((p) => ({ x: p.x, y: p.y })) : null,
            labelPosition: e.data.labelPosition
              ? { x: e.data.labelPosition.x, y: e.data.labelPosition.y }
              : null,
            interaction: pick(e.data.interaction),
          }
        : null,
    })),
  };
}
"""


class GraphNotReadyError(TimeoutError):
    """The rendered page never exposed a non-empty diagram within the deadline."""


class GraphSnapshotProvider(Protocol):
    async def snapshot(self) -> Mapping[str, Any]:
        """Return ``{"nodes": [...], "edges": [...]}`` for the current render."""
        ...


class WindowGraphProvider:
    """Reads the graph a page publishes on a ``window`` global."""

    def __init__(self, page: Any, global_name: str = "__CYBER_GRAPH__") -> None:
        self.page = page
        self.global_name = global_name

    async def snapshot(self) -> Mapping[str, Any]:
        payload = await self.page.evaluate(GRAPH_SNAPSHOT_SCRIPT, self.global_name)
        return payload if isinstance(payload, dict) else {"nodes": [], "edges": []}


@dataclass
class AuditOptions:
    timeout_ms: int = 10000
    capture_screenshot: bool = True
    screenshot_dir: str = "test-results"
    settle_ms: int = 300
    poll_interval_ms: int = 100
    loading_selector: str = ".loading-overlay"
    container_selector: str = ".react-flow"
    graph_global: str = "__CYBER_GRAPH__"
    weights: Optional[QualityWeights] = None
    level: Optional[str] = None
    thresholds: QualityThresholds = DEFAULT_THRESHOLDS

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **overrides: Any) -> "AuditOptions":
        audit = dict(config.get("audit") or {})
        known = set(cls.__dataclass_fields__)
        values = {key: value for key, value in audit.items() if key in known}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def generate_violation_messages(metrics: DiagramQualityMetrics) -> List[str]:
    """Severity-tagged messages, most severe first."""
    messages: List[str] = []

    for item in metrics.overlapping_nodes:
        messages.append(
            f"CRITICAL: Node '{item.node1}' overlaps with '{item.node2}' "
            f"({item.overlap_percentage:.1f}% overlap)."
        )

    for item in metrics.parent_child_containment:
        messages.append(
            f"CONSTRAINT: Node '{item.child_id}' is {item.violation} its parent '{item.parent_id}'. {item.details}"
        )

    spacing = metrics.spacing_violations
    if len(spacing) > 3:
        messages.append(f"WARNING: {len(spacing)} nodes are too close together (< {spacing[0].min_required:g}px).")
    else:
        for item in spacing:
            messages.append(
                f"WARNING: Nodes '{item.node1}' and '{item.node2}' are too close "
                f"({item.distance:.0f}px, min required: {item.min_required:g}px)."
            )

    if metrics.edge_crossings > 0:
        messages.append(
            f"WARNING: {metrics.edge_crossings} edge crossing(s) detected. Consider repositioning nodes."
        )
    if metrics.edges_over_nodes > 0:
        messages.append(f"WARNING: {metrics.edges_over_nodes} edge(s) passing through nodes.")
    if metrics.edge_label_overlaps > 0:
        messages.append(f"INFO: {metrics.edge_label_overlaps} edge label(s) overlapping with nodes.")
    if metrics.clipped_node_labels > 0:
        messages.append(f"INFO: {metrics.clipped_node_labels} node label(s) may be clipped or cramped.")
    return messages


def calculate_audit_score(metrics: DiagramQualityMetrics) -> float:
    """0..1 score; overlaps or containment breaks keep it at or below 0.5."""
    critical = len(metrics.overlapping_nodes) + len(metrics.parent_child_containment)
    if critical > 0:
        return max(0.0, min(0.5, metrics.weighted_score / 100 - 0.2))
    return min(1.0, metrics.weighted_score / 100)


class LayoutAuditor:
    """Scores the diagram currently rendered in a browser page.

    ``page`` needs the Playwright async surface used here: ``wait_for_selector``,
    ``evaluate``, ``screenshot`` and ``viewport_size``. The node/edge graph is
    read through ``provider``, which defaults to the page's window global.
    """

    def __init__(
        self,
        page: Any,
        provider: Optional[GraphSnapshotProvider] = None,
        options: Optional[AuditOptions] = None,
    ) -> None:
        self.page = page
        self.options = options or AuditOptions()
        self.provider = provider or WindowGraphProvider(page, self.options.graph_global)

    async def audit_layout(self) -> AuditResult:
        opts = self.options
        await self.wait_for_graph_ready()

        snapshot = snapshot_from_dict(dict(await self.provider.snapshot()))
        if not snapshot.nodes:
            logger.info("Audit finished: no nodes rendered")
            return AuditResult(score=0.0, violations=[NO_NODES_MESSAGE], metrics=DiagramQualityMetrics.empty())

        metrics = analyze(
            snapshot.nodes,
            snapshot.edges,
            viewport_size=self.viewport_size(),
            weights=opts.weights,
            level=opts.level,
            thresholds=opts.thresholds,
        )
        violations = generate_violation_messages(metrics)
        score = calculate_audit_score(metrics)
        logger.info("Audit finished: score=%.3f violations=%d", score, len(violations))

        screenshot_path = None
        if opts.capture_screenshot and violations:
            screenshot_path = await self.capture_screenshot(opts.screenshot_dir)

        return AuditResult(score=score, violations=violations, metrics=metrics, screenshot_path=screenshot_path)

    async def wait_for_graph_ready(self) -> None:
        opts = self.options
        half = opts.timeout_ms / 2

        logger.debug("Waiting for loading indicator %s to clear", opts.loading_selector)
        try:
            await self.page.wait_for_selector(opts.loading_selector, state="hidden", timeout=half)
        except Exception as exc:  # optional element, never fatal
            logger.debug("Loading indicator wait gave up: %s", exc)

        logger.debug("Waiting for diagram container %s", opts.container_selector)
        try:
            await self.page.wait_for_selector(opts.container_selector, timeout=half)
        except Exception as exc:
            raise GraphNotReadyError(
                f"Diagram container '{opts.container_selector}' did not appear within {half:.0f}ms"
            ) from exc

        logger.debug("Polling graph snapshot for nodes")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + opts.timeout_ms / 1000
        while True:
            payload = await self.provider.snapshot()
            nodes = payload.get("nodes") if isinstance(payload, Mapping) else None
            if isinstance(nodes, list) and nodes:
                break
            if loop.time() >= deadline:
                raise GraphNotReadyError(f"Graph reported no nodes within {opts.timeout_ms}ms")
            await asyncio.sleep(opts.poll_interval_ms / 1000)

        logger.debug("Graph ready, settling for %dms", opts.settle_ms)
        await asyncio.sleep(opts.settle_ms / 1000)

    def viewport_size(self) -> Size:
        size = getattr(self.page, "viewport_size", None)
        if callable(size):
            size = size()
        if isinstance(size, Mapping) and size.get("width") and size.get("height"):
            return Size(float(size["width"]), float(size["height"]))
        return DEFAULT_VIEWPORT

    async def capture_screenshot(self, directory: str) -> str:
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / f"audit-{int(time.time() * 1000)}.png"
        await self.page.screenshot(path=str(path), full_page=True)
        logger.info("Saved audit screenshot to %s", path)
        return str(path)


async def audit_layout(
    page: Any,
    options: Optional[AuditOptions] = None,
    provider: Optional[GraphSnapshotProvider] = None,
) -> AuditResult:
    return await LayoutAuditor(page, provider=provider, options=options).audit_layout()


def audit_result_summary(result: AuditResult) -> Dict[str, Any]:
    metrics = result.metrics
    return {
        "score": round(result.score, 4),
        "grade": metrics.grade,
        "weighted_score": round(metrics.weighted_score, 2),
        "violations": len(result.violations),
        "screenshot_path": result.screenshot_path,
    }

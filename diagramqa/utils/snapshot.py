from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .structured_data import load_structured_file
from .types import DEFAULT_NODE_SIZE, DiagramEdge, DiagramNode, GraphSnapshot, Point, Size


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _size_value(raw: Dict[str, Any], key: str) -> Optional[float]:
    for container in (raw, raw.get("measured"), raw.get("style"), raw.get("size")):
        if isinstance(container, dict) and container.get(key) is not None:
            value = _number(container.get(key), -1.0)
            if value > 0:
                return value
    return None


def _point(raw: Any) -> Optional[Point]:
    if not isinstance(raw, dict):
        return None
    if not isinstance(raw.get("x"), (int, float)) or not isinstance(raw.get("y"), (int, float)):
        return None
    return Point(_number(raw["x"], 0.0), _number(raw["y"], 0.0))


def node_from_dict(raw: Dict[str, Any]) -> DiagramNode:
    """Accepts React-Flow style nodes (``position`` + ``data``) and flat records."""
    data = raw.get("data") if isinstance(raw.get("data"), dict) else {}
    position = raw.get("position") if isinstance(raw.get("position"), dict) else raw

    width = _size_value(raw, "width")
    height = _size_value(raw, "height")
    size = None
    if width is not None or height is not None:
        size = Size(width or DEFAULT_NODE_SIZE, height or DEFAULT_NODE_SIZE)

    parent_id = raw.get("parentId") or raw.get("parentNode") or raw.get("parent_id")
    kind = data.get("type") or raw.get("kind") or raw.get("c4Type") or "unknown"
    is_external = bool(data.get("isExternal", raw.get("is_external", False)))
    if str(kind).startswith("external"):
        is_external = True

    child_count = data.get("childCount")
    expanded = bool(data.get("expanded", raw.get("expanded", False)))
    if not expanded and isinstance(child_count, (int, float)) and child_count > 0 and parent_id:
        expanded = True

    return DiagramNode(
        id=str(raw.get("id", "")),
        position=Point(_number(position.get("x"), 0.0), _number(position.get("y"), 0.0)),
        size=size,
        parent_id=str(parent_id) if parent_id else None,
        kind=str(kind),
        is_external=is_external,
        label=str(data.get("label") or raw.get("label") or ""),
        technology=str(data.get("technology") or raw.get("technology") or ""),
        description=str(data.get("description") or raw.get("description") or ""),
        expanded=expanded,
    )


def edge_from_dict(raw: Dict[str, Any], index: int = 0) -> DiagramEdge:
    data = raw.get("data") if isinstance(raw.get("data"), dict) else {}

    raw_points = data.get("points", raw.get("points"))
    points: Optional[List[Point]] = None
    if isinstance(raw_points, list):
        parsed = [_point(item) for item in raw_points]
        points = [item for item in parsed if item is not None]

    label_position = _point(data.get("labelPosition", raw.get("labelPosition", raw.get("label_position"))))
    source = str(raw.get("source", ""))
    target = str(raw.get("target", ""))

    return DiagramEdge(
        id=str(raw.get("id") or f"{source}->{target}#{index}"),
        source=source,
        target=target,
        label=str(raw.get("label") or data.get("label") or ""),
        technology=str(data.get("technology") or raw.get("technology") or ""),
        points=points,
        label_position=label_position,
        interaction=str(data.get("interaction") or raw.get("interaction") or "sync"),
    )


def nodes_from_dicts(items: Iterable[Any]) -> List[DiagramNode]:
    return [node_from_dict(item) for item in items if isinstance(item, dict) and item.get("id")]


def edges_from_dicts(items: Iterable[Any]) -> List[DiagramEdge]:
    return [
        edge_from_dict(item, index)
        for index, item in enumerate(items)
        if isinstance(item, dict) and item.get("source") and item.get("target")
    ]


def snapshot_from_dict(payload: Any) -> GraphSnapshot:
    if not isinstance(payload, dict):
        return GraphSnapshot()

    nodes = payload.get("nodes") if isinstance(payload.get("nodes"), list) else []
    edges = payload.get("edges") if isinstance(payload.get("edges"), list) else []

    viewport = None
    raw_viewport = payload.get("viewport")
    if isinstance(raw_viewport, dict):
        width = _number(raw_viewport.get("width"), 0.0)
        height = _number(raw_viewport.get("height"), 0.0)
        if width > 0 and height > 0:
            viewport = Size(width, height)

    return GraphSnapshot(nodes=nodes_from_dicts(nodes), edges=edges_from_dicts(edges), viewport=viewport)


def load_snapshot(path: Path) -> GraphSnapshot:
    return snapshot_from_dict(load_structured_file(path))

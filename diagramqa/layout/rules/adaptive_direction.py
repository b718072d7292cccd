from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "adaptive-direction"
NAME = "Adaptive Direction Layout"
PRIORITY = 52


def _aspect_mismatch(context: LayoutContext) -> bool:
    estimated = context.estimated_aspect_ratio
    if context.viewport_aspect_ratio:
        return abs(estimated - context.viewport_aspect_ratio) > 0.5
    return estimated < 0.6 or estimated > 1.8


def condition(context: LayoutContext) -> bool:
    return context.edge_flow_direction != "mixed" or _aspect_mismatch(context)


def choose_direction(context: LayoutContext) -> str:
    """Edge flow first, then the diagram/viewport shape, then hierarchy depth."""
    direction = "RIGHT" if context.edge_flow_direction == "horizontal" else "DOWN"
    estimated = context.estimated_aspect_ratio
    viewport = context.viewport_aspect_ratio

    if viewport:
        if viewport > 1.5 and estimated < 0.8:
            direction = "RIGHT"
        elif viewport < 0.7 and estimated > 1.5:
            direction = "DOWN"
    elif estimated > 1.5:
        direction = "RIGHT"
    elif estimated < 0.7:
        direction = "DOWN"

    if context.has_hierarchy and estimated < 1.0:
        direction = "DOWN"
    return direction


def action(context: LayoutContext) -> LayoutConfig:
    direction = choose_direction(context)
    horizontal = direction == "RIGHT"
    return LayoutConfig(
        engine="sruja",
        direction=direction,
        options={
            "nodeSpacing": 200 if horizontal else 250,
            "layerSpacing": 220 if horizontal else 280,
        },
    )

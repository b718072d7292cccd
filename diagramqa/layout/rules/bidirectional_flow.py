from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "bidirectional-flow"
NAME = "Bidirectional Flow Layout"
PRIORITY = 55


def condition(context: LayoutContext) -> bool:
    return context.has_bidirectional_edges and context.node_count > 5


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="RIGHT", options={"nodeSpacing": 180, "layerSpacing": 200})

from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "complex-l1"
NAME = "Complex L1 Layout"
PRIORITY = 86


def condition(context: LayoutContext) -> bool:
    return context.current_level == "L1" and not context.has_expanded_nodes and context.edge_count > 10


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(
        engine="sruja",
        direction="DOWN",
        options={"nodeSpacing": 240, "layerSpacing": 280, "edgeRouting": "orthogonal"},
    )

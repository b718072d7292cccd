from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "simple-c4"
NAME = "Simple C4 Layout"
PRIORITY = 100


def condition(context: LayoutContext) -> bool:
    return context.complexity == "simple" and not context.has_hierarchy and not context.has_expanded_nodes


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={"nodeSpacing": 200, "layerSpacing": 220})

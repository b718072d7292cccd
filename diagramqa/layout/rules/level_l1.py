from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "level-l1"
NAME = "L1 System Context Layout"
PRIORITY = 85


def condition(context: LayoutContext) -> bool:
    return context.current_level == "L1" and not context.has_expanded_nodes and not context.has_hierarchy


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={"nodeSpacing": 220, "layerSpacing": 240})

from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "level-l2"
NAME = "L2 Container Layout"
PRIORITY = 75


def condition(context: LayoutContext) -> bool:
    return context.current_level == "L2"


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={"nodeSpacing": 200, "layerSpacing": 220})

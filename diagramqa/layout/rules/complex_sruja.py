from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "complex-sruja"
NAME = "Complex Sruja Layout"
PRIORITY = 60


def condition(context: LayoutContext) -> bool:
    return context.complexity == "complex" and context.edge_count > 30


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={"nodeSpacing": 280, "layerSpacing": 300})

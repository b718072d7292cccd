from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "dense-graph"
NAME = "Dense Graph Layout"
PRIORITY = 58


def condition(context: LayoutContext) -> bool:
    return context.relationship_density > 2.0


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(
        engine="sruja",
        direction="DOWN",
        options={"nodeSpacing": 300, "layerSpacing": 320, "edgeRouting": "orthogonal"},
    )

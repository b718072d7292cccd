from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "expanded-hierarchical"
NAME = "Expanded Hierarchical Layout"
PRIORITY = 96

BASE_NODE_SPACING = 320
BASE_LAYER_SPACING = 380
COMPLEXITY_MULTIPLIERS = {"simple": 1.0, "medium": 1.15, "complex": 1.3}


def condition(context: LayoutContext) -> bool:
    return context.has_hierarchy and context.has_expanded_nodes


def action(context: LayoutContext) -> LayoutConfig:
    multiplier = COMPLEXITY_MULTIPLIERS.get(context.complexity, 1.0)
    if context.relationship_density > 2.0:
        multiplier *= 1.2
    return LayoutConfig(
        engine="sruja",
        direction="DOWN",
        options={
            "nodeSpacing": int(round(BASE_NODE_SPACING * multiplier)),
            "layerSpacing": int(round(BASE_LAYER_SPACING * multiplier)),
        },
    )

from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "hierarchical-sruja"
NAME = "Hierarchical Sruja Layout"
PRIORITY = 95


def condition(context: LayoutContext) -> bool:
    return context.has_hierarchy


def action(context: LayoutContext) -> LayoutConfig:
    # Wider gaps leave room for parent padding around nested children.
    return LayoutConfig(engine="sruja", direction="DOWN", options={"nodeSpacing": 250, "layerSpacing": 280})

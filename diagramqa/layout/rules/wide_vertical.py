from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "wide-vertical"
NAME = "Wide Diagram Vertical Layout"
PRIORITY = 50


def condition(context: LayoutContext) -> bool:
    return context.average_node_aspect > 2.0 and context.node_count > 15


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={})

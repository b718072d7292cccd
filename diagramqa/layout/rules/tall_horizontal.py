from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "tall-horizontal"
NAME = "Tall Diagram Horizontal Layout"
PRIORITY = 45


def condition(context: LayoutContext) -> bool:
    return context.average_node_aspect < 0.5 and context.node_count > 15


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="RIGHT", options={})

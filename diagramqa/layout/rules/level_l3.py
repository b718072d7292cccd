from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "level-l3"
NAME = "L3 Component Layout"
PRIORITY = 70


def condition(context: LayoutContext) -> bool:
    return context.current_level == "L3"


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={})

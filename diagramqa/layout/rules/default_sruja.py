from __future__ import annotations

from diagramqa.layout.rules.base import LayoutContext
from diagramqa.utils.types import LayoutConfig


RULE_ID = "default-sruja"
NAME = "Default Sruja Layout"
PRIORITY = 10


def condition(context: LayoutContext) -> bool:
    return True


def action(context: LayoutContext) -> LayoutConfig:
    return LayoutConfig(engine="sruja", direction="DOWN", options={})

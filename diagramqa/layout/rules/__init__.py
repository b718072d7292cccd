from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from . import (
    adaptive_direction,
    bidirectional_flow,
    complex_l1,
    complex_sruja,
    default_sruja,
    dense_graph,
    expanded_hierarchical,
    hierarchical_sruja,
    level_l1,
    level_l2,
    level_l3,
    simple_c4,
    tall_horizontal,
    wide_vertical,
)
from .base import LayoutContext, LayoutRule

_RULE_MODULES = (
    simple_c4,
    expanded_hierarchical,
    hierarchical_sruja,
    complex_l1,
    level_l1,
    level_l2,
    level_l3,
    complex_sruja,
    dense_graph,
    bidirectional_flow,
    adaptive_direction,
    wide_vertical,
    tall_horizontal,
    default_sruja,
)


def get_rule_registry() -> Dict[str, LayoutRule]:
    rules = [
        LayoutRule(
            id=module.RULE_ID,
            name=module.NAME,
            priority=module.PRIORITY,
            condition=module.condition,
            action=module.action,
        )
        for module in _RULE_MODULES
    ]
    return {rule.id: rule for rule in rules}


def list_rule_descriptors() -> List[dict]:
    registry = get_rule_registry()
    return [
        {"rule_id": rule.id, "name": rule.name, "priority": rule.priority}
        for rule in sorted(registry.values(), key=lambda item: (-item.priority, item.id))
    ]


def resolve_enabled_rules(enable: Optional[Iterable[str]]) -> List[LayoutRule]:
    registry = get_rule_registry()
    if not enable:
        return sorted(registry.values(), key=lambda item: (-item.priority, item.id))

    selected: List[LayoutRule] = []
    for rule_id in enable:
        if rule_id not in registry:
            available = ", ".join(sorted(registry.keys()))
            raise ValueError(f"Unknown layout rule '{rule_id}'. Available: {available}")
        selected.append(registry[rule_id])
    return selected


__all__ = [
    "LayoutContext",
    "LayoutRule",
    "get_rule_registry",
    "list_rule_descriptors",
    "resolve_enabled_rules",
]

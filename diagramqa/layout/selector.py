from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from diagramqa.layout.context import analyze_layout_context
from diagramqa.layout.rules import LayoutContext, LayoutRule, resolve_enabled_rules
from diagramqa.layout.rules.base import RuleAction, RuleCondition
from diagramqa.utils.types import DiagramEdge, DiagramNode, LayoutConfig, LayoutConstraints, Size

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_RULES: List[LayoutRule] = resolve_enabled_rules(None)

# Lower ranks render nearer the top for L1/L2 views.
KIND_RANKS: Dict[str, int] = {
    "person": 0,
    "datastore": 100,
    "queue": 90,
    "topic": 95,
    "cache": 85,
    "filesystem": 85,
}
EXTERNAL_RANK = 60
SIBLING_KIND_BY_LEVEL = {"L2": "container", "L3": "component"}


def create_layout_rule(
    id: str,
    name: str,
    priority: int,
    condition: RuleCondition,
    action: RuleAction,
) -> LayoutRule:
    return LayoutRule(id=id, name=name, priority=priority, condition=condition, action=action)


def merge_layout_rules(
    custom_rules: Iterable[LayoutRule],
    default_rules: Optional[Sequence[LayoutRule]] = None,
) -> List[LayoutRule]:
    """Defaults first, then custom rules; a custom rule replaces the default with the same id."""
    merged: Dict[str, LayoutRule] = {}
    for rule in DEFAULT_LAYOUT_RULES if default_rules is None else default_rules:
        merged[rule.id] = rule
    for rule in custom_rules:
        merged[rule.id] = rule
    return list(merged.values())


def _is_external_service(node: DiagramNode) -> bool:
    if node.kind in ("external-component", "external-container"):
        return True
    return node.kind == "system" and node.is_external


def build_constraints(nodes: Sequence[DiagramNode], level: Optional[str]) -> LayoutConstraints:
    """Deterministic tie-breaks so repeated runs on identical input order nodes identically."""
    ordered = sorted(nodes, key=lambda node: ((node.label or node.id).casefold(), node.id))
    order_hint = {node.id: index for index, node in enumerate(ordered)}

    persons = [node.id for node in nodes if node.kind == "person"]
    datastores = [node.id for node in nodes if node.kind == "datastore"]
    same_rank: List[List[str]] = []
    if len(persons) > 1:
        same_rank.append(persons)
    if len(datastores) > 1:
        same_rank.append(datastores)

    rank_of: Dict[str, int] = {}
    if level in ("L1", "L2"):
        for node in nodes:
            if node.kind in KIND_RANKS:
                rank_of[node.id] = KIND_RANKS[node.kind]
            elif _is_external_service(node):
                rank_of[node.id] = EXTERNAL_RANK

    sibling_kind = SIBLING_KIND_BY_LEVEL.get(level or "")
    if sibling_kind:
        by_parent: Dict[str, List[str]] = {}
        for node in nodes:
            if node.kind == sibling_kind and node.parent_id:
                by_parent.setdefault(node.parent_id, []).append(node.id)
        same_rank.extend(group for group in by_parent.values() if len(group) > 1)

    return LayoutConstraints(order_hint=order_hint, rank_of=rank_of, same_rank=same_rank)


def choose_rule(context: LayoutContext, rules: Sequence[LayoutRule]) -> Optional[LayoutRule]:
    for rule in sorted(rules, key=lambda item: -item.priority):
        if rule.condition(context):
            return rule
    return None


def select_layout_config(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    level: Optional[str],
    focused_system_id: Optional[str] = None,
    focused_container_id: Optional[str] = None,
    expanded_nodes: Optional[Iterable[str]] = None,
    rules: Optional[Sequence[LayoutRule]] = None,
    viewport_size: Optional[Size] = None,
) -> LayoutConfig:
    context = analyze_layout_context(
        nodes,
        edges,
        level,
        focused_system_id=focused_system_id,
        focused_container_id=focused_container_id,
        expanded_nodes=expanded_nodes,
        viewport_size=viewport_size,
    )
    rule = choose_rule(context, DEFAULT_LAYOUT_RULES if rules is None else rules)
    if rule is None:
        return LayoutConfig(
            engine="sruja",
            direction="DOWN",
            options={},
            constraints=LayoutConstraints(order_hint={node.id: index for index, node in enumerate(nodes)}),
        )

    config = rule.action(context)
    logger.info("Layout rule matched: %s -> %s-%s", rule.name, config.engine, config.direction)
    return replace(
        config,
        options=dict(config.options),
        constraints=build_constraints(context.nodes, context.current_level),
    )

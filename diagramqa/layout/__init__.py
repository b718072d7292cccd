from .context import analyze_layout_context
from .rules import LayoutContext, LayoutRule, get_rule_registry, list_rule_descriptors, resolve_enabled_rules
from .selector import DEFAULT_LAYOUT_RULES, create_layout_rule, merge_layout_rules, select_layout_config

__all__ = [
    "analyze_layout_context",
    "LayoutContext",
    "LayoutRule",
    "get_rule_registry",
    "list_rule_descriptors",
    "resolve_enabled_rules",
    "DEFAULT_LAYOUT_RULES",
    "create_layout_rule",
    "merge_layout_rules",
    "select_layout_config",
]

from __future__ import annotations

import unittest

from diagramqa.layout import (
    analyze_layout_context,
    create_layout_rule,
    get_rule_registry,
    list_rule_descriptors,
    merge_layout_rules,
    resolve_enabled_rules,
    select_layout_config,
)
from diagramqa.layout.rules import adaptive_direction
from diagramqa.utils.types import DiagramEdge, DiagramNode, LayoutConfig, Size


def flat_nodes(count: int):
    return [DiagramNode(f"n{index}") for index in range(count)]


def chain_edges(count: int, node_count: int, step: int = 1):
    return [
        DiagramEdge(f"e{index}", f"n{index % node_count}", f"n{(index + step) % node_count}")
        for index in range(count)
    ]


def hierarchy():
    return [
        DiagramNode("shop", kind="system", label="Shop"),
        DiagramNode("api", parent_id="shop", kind="container", label="API"),
        DiagramNode("web", parent_id="shop", kind="container", label="Web"),
    ]


class RuleRegistryTests(unittest.TestCase):
    def test_registry_contains_default_rules(self) -> None:
        registry = get_rule_registry()
        self.assertEqual(len(registry), 14)
        self.assertEqual(registry["level-l1"].priority, 85)
        self.assertEqual(registry["complex-l1"].priority, 86)
        self.assertEqual(registry["default-sruja"].priority, 10)

    def test_descriptors_sorted_by_priority(self) -> None:
        descriptors = list_rule_descriptors()
        self.assertEqual(descriptors[0], {"rule_id": "simple-c4", "name": "Simple C4 Layout", "priority": 100})
        self.assertEqual(descriptors[-1]["rule_id"], "default-sruja")
        priorities = [item["priority"] for item in descriptors]
        self.assertEqual(priorities, sorted(priorities, reverse=True))

    def test_resolve_enabled_rules_subset(self) -> None:
        rules = resolve_enabled_rules(["level-l2", "default-sruja"])
        self.assertEqual([rule.id for rule in rules], ["level-l2", "default-sruja"])

    def test_unknown_rule_id(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            resolve_enabled_rules(["nope"])
        self.assertIn("Unknown layout rule 'nope'", str(ctx.exception))
        self.assertIn("simple-c4", str(ctx.exception))


class RuleSelectionTests(unittest.TestCase):
    def test_hierarchy_selects_hierarchical_spacing(self) -> None:
        config = select_layout_config(hierarchy(), [], "L2")
        self.assertEqual(config.engine, "sruja")
        self.assertEqual(config.direction, "DOWN")
        self.assertEqual(config.options["nodeSpacing"], 250)

    def test_expanded_hierarchy_selects_wider_variant(self) -> None:
        config = select_layout_config(hierarchy(), [], "L2", expanded_nodes=["shop"])
        self.assertEqual(config.options, {"nodeSpacing": 320, "layerSpacing": 380})

    def test_expanded_spacing_grows_with_complexity(self) -> None:
        nodes = hierarchy() + flat_nodes(10)
        config = select_layout_config(nodes, [], "L2", expanded_nodes=["shop"])
        self.assertEqual(config.options, {"nodeSpacing": 368, "layerSpacing": 437})

    def test_simple_flat_diagram(self) -> None:
        config = select_layout_config(flat_nodes(3), chain_edges(2, 3), "L1")
        self.assertEqual(config.options["nodeSpacing"], 200)

    def test_level_l1_default(self) -> None:
        config = select_layout_config(flat_nodes(12), chain_edges(5, 12), "l1")
        self.assertEqual(config.options, {"nodeSpacing": 220, "layerSpacing": 240})

    def test_busy_l1_uses_orthogonal_routing(self) -> None:
        config = select_layout_config(flat_nodes(12), chain_edges(12, 12), "L1")
        self.assertEqual(config.options["edgeRouting"], "orthogonal")
        self.assertEqual(config.options["nodeSpacing"], 240)

    def test_dense_graph(self) -> None:
        edges = chain_edges(12, 12) + [
            DiagramEdge(f"x{index}", f"n{index}", f"n{(index + 2) % 12}") for index in range(13)
        ]
        config = select_layout_config(flat_nodes(12), edges, None)
        self.assertEqual(config.options, {"nodeSpacing": 300, "layerSpacing": 320, "edgeRouting": "orthogonal"})

    def test_no_matching_rule_falls_back(self) -> None:
        nodes = [DiagramNode("b", label="Zed"), DiagramNode("a", label="Alpha")]
        config = select_layout_config(nodes, [], "L1", rules=[])
        self.assertEqual(config.direction, "DOWN")
        self.assertEqual(config.options, {})
        self.assertEqual(config.constraints.order_hint, {"b": 0, "a": 1})

    def test_custom_rule_shadows_default(self) -> None:
        custom = create_layout_rule(
            "simple-c4",
            "Left To Right",
            100,
            lambda context: True,
            lambda context: LayoutConfig(direction="LEFT"),
        )
        merged = merge_layout_rules([custom])
        self.assertEqual(len(merged), 14)
        config = select_layout_config(flat_nodes(3), [], "L1", rules=merged)
        self.assertEqual(config.direction, "LEFT")

        extra = create_layout_rule("always-up", "Up", 500, lambda context: True, lambda context: LayoutConfig(direction="UP"))
        self.assertEqual(len(merge_layout_rules([custom, extra])), 15)

    def test_selection_is_deterministic(self) -> None:
        nodes = hierarchy() + flat_nodes(4)
        edges = chain_edges(4, 4)
        self.assertEqual(
            select_layout_config(nodes, edges, "L2").to_dict(),
            select_layout_config(list(nodes), list(edges), "L2").to_dict(),
        )


class ConstraintTests(unittest.TestCase):
    def test_l1_ranks_and_order(self) -> None:
        nodes = [
            DiagramNode("web", kind="system", label="Web App"),
            DiagramNode("customer", kind="person", label="Customer"),
            DiagramNode("admin", kind="person", label="admin"),
            DiagramNode("db", kind="datastore", label="Orders DB"),
            DiagramNode("pay", kind="system", label="Payment Gateway", is_external=True),
        ]
        constraints = select_layout_config(nodes, [], "L1").constraints

        self.assertEqual(constraints.rank_of, {"customer": 0, "admin": 0, "db": 100, "pay": 60})
        self.assertEqual(constraints.order_hint, {"admin": 0, "customer": 1, "db": 2, "pay": 3, "web": 4})
        self.assertEqual(constraints.same_rank, [["customer", "admin"]])

    def test_l3_has_no_rank_forcing(self) -> None:
        nodes = [DiagramNode("customer", kind="person"), DiagramNode("db", kind="datastore")]
        self.assertEqual(select_layout_config(nodes, [], "L3").constraints.rank_of, {})

    def test_l2_groups_sibling_containers(self) -> None:
        constraints = select_layout_config(hierarchy(), [], "L2").constraints
        self.assertIn(["api", "web"], constraints.same_rank)


class LayoutContextTests(unittest.TestCase):
    def test_context_signals(self) -> None:
        nodes = hierarchy()
        edges = [DiagramEdge("1", "api", "web"), DiagramEdge("2", "web", "api")]
        context = analyze_layout_context(nodes, edges, "l2", viewport_size=Size(1920, 1080))

        self.assertEqual(context.current_level, "L2")
        self.assertTrue(context.has_hierarchy)
        self.assertFalse(context.has_expanded_nodes)
        self.assertTrue(context.has_bidirectional_edges)
        self.assertEqual(context.edge_flow_direction, "horizontal")
        self.assertEqual(context.complexity, "simple")
        self.assertAlmostEqual(context.viewport_aspect_ratio, 1920 / 1080)

    def test_expanded_flag_on_node(self) -> None:
        nodes = [DiagramNode("shop", expanded=True)]
        self.assertTrue(analyze_layout_context(nodes, [], None).has_expanded_nodes)

    def test_choose_direction_prefers_horizontal_flow(self) -> None:
        context = analyze_layout_context(flat_nodes(4), chain_edges(12, 4), None)
        self.assertEqual(context.edge_flow_direction, "horizontal")
        self.assertEqual(adaptive_direction.choose_direction(context), "RIGHT")


if __name__ == "__main__":
    unittest.main()

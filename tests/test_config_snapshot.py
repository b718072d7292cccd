from __future__ import annotations

import json
import logging
import tempfile
import unittest
from pathlib import Path

from diagramqa.utils.config import DEFAULT_CONFIG, config_hash, load_config
from diagramqa.utils.logging import configure_logging
from diagramqa.utils.snapshot import edge_from_dict, load_snapshot, node_from_dict, snapshot_from_dict
from diagramqa.utils.structured_data import load_structured_file
from diagramqa.utils.types import Point, Size


class ConfigTests(unittest.TestCase):
    def test_defaults_when_file_missing(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_config(Path(tmpdir) / "diagramqa.yaml")
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertIsNot(config["quality"], DEFAULT_CONFIG["quality"])

    def test_yaml_overrides_merge_deeply(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "diagramqa.yaml"
            path.write_text("quality:\n  viewport:\n    width: 1280\naudit:\n  timeout_ms: 2000\n", encoding="utf-8")
            config = load_config(path)

        self.assertEqual(config["quality"]["viewport"], {"width": 1280, "height": 1080})
        self.assertEqual(config["quality"]["min_node_spacing"], 30)
        self.assertEqual(config["audit"]["timeout_ms"], 2000)
        self.assertEqual(config["audit"]["settle_ms"], 300)

    def test_merged_config_is_independent_of_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "diagramqa.yaml"
            path.write_text("quality:\n  weights:\n    overlap: 0.5\n", encoding="utf-8")
            config = load_config(path)
            empty = Path(tmpdir) / "empty.yaml"
            empty.write_text("", encoding="utf-8")
            self.assertEqual(load_config(empty), DEFAULT_CONFIG)

        config["quality"]["viewport"]["width"] = 1
        self.assertEqual(config["quality"]["weights"], {"overlap": 0.5})
        self.assertEqual(DEFAULT_CONFIG["quality"]["weights"], {})
        self.assertEqual(DEFAULT_CONFIG["quality"]["viewport"]["width"], 1920)

    def test_non_mapping_config_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "diagramqa.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(RuntimeError):
                load_config(path)

    def test_unparseable_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.yaml"
            path.write_text("key: [unclosed\n", encoding="utf-8")
            with self.assertRaises(RuntimeError):
                load_structured_file(path)

    def test_config_hash_is_stable(self) -> None:
        first = {"a": 1, "b": {"c": 2}}
        second = {"b": {"c": 2}, "a": 1}
        self.assertEqual(config_hash(first), config_hash(second))
        self.assertNotEqual(config_hash(first), config_hash({"a": 2, "b": {"c": 2}}))


class SnapshotParsingTests(unittest.TestCase):
    def test_react_flow_node(self) -> None:
        node = node_from_dict(
            {
                "id": "api",
                "position": {"x": 10, "y": 20},
                "measured": {"width": 180, "height": 90},
                "parentId": "shop",
                "data": {"label": "API", "type": "container", "technology": "Go", "childCount": 2},
            }
        )
        self.assertEqual(node.position, Point(10.0, 20.0))
        self.assertEqual(node.size, Size(180.0, 90.0))
        self.assertEqual(node.parent_id, "shop")
        self.assertEqual(node.kind, "container")
        self.assertEqual(node.technology, "Go")
        self.assertTrue(node.expanded)

    def test_flat_node_without_size(self) -> None:
        node = node_from_dict({"id": "ext", "x": "5", "y": None, "kind": "external-system"})
        self.assertEqual(node.position, Point(5.0, 0.0))
        self.assertIsNone(node.size)
        self.assertTrue(node.is_external)

    def test_edge_defaults(self) -> None:
        edge = edge_from_dict(
            {"source": "a", "target": "b", "data": {"points": [{"x": 0, "y": 0}, {"x": "bad"}, {"x": 5, "y": 5}]}},
            index=3,
        )
        self.assertEqual(edge.id, "a->b#3")
        self.assertEqual(edge.points, [Point(0.0, 0.0), Point(5.0, 5.0)])
        self.assertEqual(edge.interaction, "sync")

    def test_snapshot_filters_incomplete_records(self) -> None:
        snapshot = snapshot_from_dict(
            {
                "nodes": [{"id": "a"}, {"position": {"x": 1, "y": 1}}, "junk"],
                "edges": [{"source": "a", "target": "a"}, {"source": "a"}],
                "viewport": {"width": 800, "height": 600},
            }
        )
        self.assertEqual([node.id for node in snapshot.nodes], ["a"])
        self.assertEqual(len(snapshot.edges), 1)
        self.assertEqual(snapshot.viewport, Size(800.0, 600.0))
        self.assertEqual(snapshot_from_dict([1, 2]).nodes, [])

    def test_load_snapshot_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "diagram.yaml"
            path.write_text(
                "nodes:\n  - id: a\n    x: 0\n    y: 0\n  - id: b\n    x: 300\n    y: 0\nedges:\n  - source: a\n    target: b\n",
                encoding="utf-8",
            )
            snapshot = load_snapshot(path)
        self.assertEqual([node.id for node in snapshot.nodes], ["a", "b"])
        self.assertEqual(snapshot.edges[0].id, "a->b#0")

    def test_load_snapshot_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "diagram.json"
            path.write_text(json.dumps({"nodes": [{"id": "only"}], "edges": []}), encoding="utf-8")
            self.assertEqual(len(load_snapshot(path).nodes), 1)


class LoggingSetupTests(unittest.TestCase):
    def test_configure_logging_keeps_one_handler(self) -> None:
        configure_logging()
        logger = configure_logging(verbose=True)
        marked = [handler for handler in logger.handlers if getattr(handler, "_diagramqa", False)]

        self.assertEqual(len(marked), 1)
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertFalse(logger.propagate)

        configure_logging()
        self.assertEqual(logger.level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

try:
    from typer.testing import CliRunner
    from diagramqa.cli import app
except ModuleNotFoundError:  # pragma: no cover - environment fallback
    CliRunner = None  # type: ignore[assignment]
    app = None  # type: ignore[assignment]

from diagramqa import __version__


CLEAN_DIAGRAM = {
    "nodes": [
        {"id": "a", "position": {"x": 0, "y": 0}, "width": 100, "height": 100},
        {"id": "b", "position": {"x": 300, "y": 0}, "width": 100, "height": 100},
        {"id": "c", "position": {"x": 600, "y": 0}, "width": 100, "height": 100},
    ],
    "edges": [{"source": "a", "target": "b"}],
}

NESTED_DIAGRAM = {
    "nodes": [
        {"id": "shop", "x": 0, "y": 0, "width": 600, "height": 400, "kind": "system"},
        {"id": "api", "x": 100, "y": 100, "parent_id": "shop", "kind": "container"},
        {"id": "web", "x": 300, "y": 100, "parent_id": "shop", "kind": "container"},
    ],
    "edges": [],
}


@unittest.skipIf(CliRunner is None or app is None, "typer is not installed in this environment")
class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = Path(self._tmp.name)
        self.config = self.tmpdir / "diagramqa.yaml"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, name: str, payload: dict) -> Path:
        path = self.tmpdir / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def invoke(self, *args: str):
        return self.runner.invoke(app, ["--config", str(self.config), *args])

    def test_version(self) -> None:
        result = self.runner.invoke(app, ["--version"])
        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertIn(__version__, result.stdout)

    def test_analyze_as_json(self) -> None:
        snapshot = self._write("clean.json", CLEAN_DIAGRAM)
        result = self.invoke("analyze", str(snapshot), "--as-json", "--level", "l1")

        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        payload = json.loads(result.stdout)
        self.assertEqual(len(payload["config_hash"]), 64)
        self.assertEqual(payload["metrics"]["overlapping_nodes"], [])
        self.assertEqual(payload["metrics"]["edge_crossings"], 0)

    def test_analyze_report(self) -> None:
        snapshot = self._write("clean.json", CLEAN_DIAGRAM)
        result = self.invoke("analyze", str(snapshot), "--report")

        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertIn("Diagram Quality Report: clean.json", result.stdout)

    def test_analyze_summary_table(self) -> None:
        snapshot = self._write("clean.json", CLEAN_DIAGRAM)
        result = self.invoke("analyze", str(snapshot))

        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertIn("Weighted score", result.stdout)
        self.assertIn("Grade", result.stdout)

    def test_analyze_rejects_unknown_level(self) -> None:
        snapshot = self._write("clean.json", CLEAN_DIAGRAM)
        result = self.invoke("analyze", str(snapshot), "--level", "L7")
        self.assertNotEqual(result.exit_code, 0)

    def test_analyze_rejects_bad_weights_in_config(self) -> None:
        self.config.write_text("quality:\n  weights:\n    sparkle: 1\n", encoding="utf-8")
        snapshot = self._write("clean.json", CLEAN_DIAGRAM)
        result = self.invoke("analyze", str(snapshot))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unknown quality weight 'sparkle'", result.stdout)

    def test_select_layout_as_json(self) -> None:
        snapshot = self._write("nested.json", NESTED_DIAGRAM)
        result = self.invoke("select-layout", str(snapshot), "--level", "L2", "--as-json")

        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        payload = json.loads(result.stdout)
        self.assertEqual(payload["options"]["nodeSpacing"], 250)
        self.assertIn(["api", "web"], payload["constraints"]["same_rank"])

    def test_select_layout_expanded(self) -> None:
        snapshot = self._write("nested.json", NESTED_DIAGRAM)
        result = self.invoke("select-layout", str(snapshot), "--level", "L2", "--expanded", "shop")

        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertIn("Engine: sruja", result.stdout)
        self.assertIn("- nodeSpacing: 320", result.stdout)

    def test_rules_lists_registry(self) -> None:
        result = self.invoke("rules")
        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertIn("simple-c4", result.stdout)
        self.assertIn("default-sruja", result.stdout)

    def test_audit_validates_min_score(self) -> None:
        result = self.invoke("audit", "http://localhost:3000", "--min-score", "1.5")
        self.assertNotEqual(result.exit_code, 0)
        self.assertNotEqual(result.exit_code, 1)

    def test_memory_round_trip(self) -> None:
        bank = self.tmpdir / "memory" / "bank.json"
        spec = self._write("spec.json", {"nodes": [{"id": "a"}]})

        added = self.invoke("memory", "add", "Checkout flow", str(spec), "--score", "0.97", "--path", str(bank))
        self.assertEqual(added.exit_code, 0, msg=added.stdout)

        count = self.invoke("memory", "count", "--path", str(bank))
        self.assertEqual(count.stdout.strip(), "1")

        listed = self.invoke("memory", "list", "--as-json", "--path", str(bank))
        self.assertEqual(json.loads(listed.stdout)[0]["prompt"], "Checkout flow")

        prompt = self.invoke("memory", "prompt", "--path", str(bank))
        self.assertIn("Prompt: Checkout flow", prompt.stdout)

        cleared = self.invoke("memory", "clear", "--path", str(bank))
        self.assertEqual(cleared.exit_code, 0, msg=cleared.stdout)
        self.assertEqual(self.invoke("memory", "count", "--path", str(bank)).stdout.strip(), "0")

    def test_memory_add_rejects_low_score(self) -> None:
        bank = self.tmpdir / "bank.json"
        spec = self._write("spec.json", {"nodes": []})
        result = self.invoke("memory", "add", "weak", str(spec), "--score", "0.5", "--path", str(bank))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Rejected", result.stdout)
        self.assertFalse(bank.exists())

    def test_memory_uses_configured_path(self) -> None:
        bank = self.tmpdir / "configured.json"
        self.config.write_text(f"memory:\n  path: {bank.as_posix()}\n", encoding="utf-8")
        spec = self._write("spec.json", {"nodes": []})

        result = self.invoke("memory", "add", "configured", str(spec), "--score", "0.99")
        self.assertEqual(result.exit_code, 0, msg=result.stdout)
        self.assertTrue(bank.exists())


if __name__ == "__main__":
    unittest.main()

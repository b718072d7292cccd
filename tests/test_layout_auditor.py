from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict, List, Optional

from diagramqa.audits.layout_auditor import (
    NO_NODES_MESSAGE,
    AuditOptions,
    GraphNotReadyError,
    LayoutAuditor,
    WindowGraphProvider,
    audit_layout,
    audit_result_summary,
    calculate_audit_score,
)
from diagramqa.quality.analyzer import analyze
from diagramqa.utils.types import DiagramNode, Point, Size


def flat(node_id: str, x: float, y: float, **extra: Any) -> Dict[str, Any]:
    payload = {"id": node_id, "position": {"x": x, "y": y}, "width": 100, "height": 100}
    payload.update(extra)
    return payload


class FakePage:
    def __init__(self, missing: tuple = (), graph: Optional[Dict[str, Any]] = None) -> None:
        self.viewport_size = {"width": 1280, "height": 720}
        self.missing = set(missing)
        self.graph = graph or {"nodes": [], "edges": []}
        self.waits: List[tuple] = []
        self.evaluations: List[Any] = []
        self.screenshots: List[str] = []

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: float = 0) -> None:
        self.waits.append((selector, state, timeout))
        if selector in self.missing:
            raise TimeoutError(f"waiting for {selector} timed out")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluations.append(arg)
        return self.graph

    async def screenshot(self, path: str, full_page: bool = False) -> None:
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)


class SequenceProvider:
    """Returns each payload once, then repeats the last one."""

    def __init__(self, *payloads: Dict[str, Any]) -> None:
        self.payloads = list(payloads)
        self.calls = 0

    async def snapshot(self) -> Dict[str, Any]:
        self.calls += 1
        if len(self.payloads) > 1:
            return self.payloads.pop(0)
        return self.payloads[0]


def fast_options(**overrides: Any) -> AuditOptions:
    values = {"timeout_ms": 200, "settle_ms": 0, "poll_interval_ms": 5, "capture_screenshot": False}
    values.update(overrides)
    return AuditOptions(**values)


class LayoutAuditorTests(unittest.IsolatedAsyncioTestCase):
    async def test_clean_layout(self) -> None:
        graph = {"nodes": [flat("a", 0, 0), flat("b", 300, 0), flat("c", 600, 0)], "edges": []}
        page = FakePage()
        result = await LayoutAuditor(page, provider=SequenceProvider(graph), options=fast_options()).audit_layout()

        self.assertEqual(result.violations, [])
        self.assertAlmostEqual(result.score, min(1.0, result.metrics.weighted_score / 100))
        self.assertIsNone(result.screenshot_path)
        self.assertEqual(
            [(selector, state) for selector, state, _ in page.waits],
            [(".loading-overlay", "hidden"), (".react-flow", "visible")],
        )
        self.assertEqual(page.waits[0][2], 100)

    async def test_overlap_is_critical_and_captured(self) -> None:
        graph = {"nodes": [flat("a", 0, 0), flat("b", 0, 0)], "edges": []}
        page = FakePage()
        with tempfile.TemporaryDirectory() as tmpdir:
            options = fast_options(capture_screenshot=True, screenshot_dir=str(Path(tmpdir) / "shots"))
            result = await audit_layout(page, options=options, provider=SequenceProvider(graph))

            self.assertTrue(result.violations[0].startswith("CRITICAL: Node 'a' overlaps with 'b'"))
            self.assertIn("100.0% overlap", result.violations[0])
            self.assertLessEqual(result.score, 0.5)
            self.assertIsNotNone(result.screenshot_path)
            self.assertTrue(Path(result.screenshot_path).exists())
            self.assertTrue(Path(result.screenshot_path).name.startswith("audit-"))

    async def test_containment_message_order(self) -> None:
        graph = {
            "nodes": [
                {"id": "parent", "position": {"x": 0, "y": 0}, "width": 300, "height": 300},
                {"id": "child", "position": {"x": 250, "y": 250}, "width": 100, "height": 100, "parentId": "parent"},
                flat("other", 0, 0),
            ],
            "edges": [],
        }
        result = await audit_layout(FakePage(), options=fast_options(), provider=SequenceProvider(graph))

        severities = [message.split(":", 1)[0] for message in result.violations]
        self.assertEqual(severities[0], "CRITICAL")
        self.assertIn("CONSTRAINT", severities)
        constraint = next(message for message in result.violations if message.startswith("CONSTRAINT"))
        self.assertIn("'child' is outside its parent 'parent'", constraint)
        self.assertLessEqual(result.score, 0.5)

    async def test_zero_nodes_is_a_valid_result(self) -> None:
        provider = SequenceProvider({"nodes": [flat("a", 0, 0)], "edges": []}, {"nodes": [], "edges": []})
        page = FakePage()
        result = await LayoutAuditor(page, provider=provider, options=fast_options(capture_screenshot=True)).audit_layout()

        self.assertEqual(result.score, 0.0)
        self.assertEqual(result.violations, [NO_NODES_MESSAGE])
        self.assertEqual(result.metrics.grade, "F")
        self.assertIsNone(result.screenshot_path)
        self.assertEqual(page.screenshots, [])

    async def test_missing_container_raises(self) -> None:
        page = FakePage(missing=(".react-flow",))
        provider = SequenceProvider({"nodes": [flat("a", 0, 0)], "edges": []})
        with self.assertRaises(GraphNotReadyError):
            await LayoutAuditor(page, provider=provider, options=fast_options()).audit_layout()
        self.assertEqual(provider.calls, 0)

    async def test_empty_graph_times_out(self) -> None:
        provider = SequenceProvider({"nodes": [], "edges": []})
        with self.assertRaises(TimeoutError):
            await LayoutAuditor(FakePage(), provider=provider, options=fast_options(timeout_ms=40)).audit_layout()
        self.assertGreater(provider.calls, 1)

    async def test_missing_loading_indicator_is_not_fatal(self) -> None:
        page = FakePage(missing=(".loading-overlay",))
        provider = SequenceProvider({"nodes": [flat("a", 0, 0)], "edges": []})
        result = await LayoutAuditor(page, provider=provider, options=fast_options()).audit_layout()
        self.assertEqual(result.violations, [])

    async def test_window_provider_reads_page_global(self) -> None:
        graph = {
            "nodes": [
                {"id": "a", "position": {"x": 0, "y": 0}, "width": 100, "height": 100, "data": {"label": "A"}},
                {"id": "b", "position": {"x": 300, "y": 0}, "width": 100, "height": 100, "data": {"label": "B"}},
            ],
            "edges": [{"id": "e1", "source": "a", "target": "b", "data": {"points": None}}],
        }
        page = FakePage(graph=graph)
        options = fast_options(graph_global="__TEST_GRAPH__")
        result = await LayoutAuditor(page, options=options).audit_layout()

        self.assertIn("__TEST_GRAPH__", page.evaluations)
        self.assertEqual(result.metrics.edge_crossings, 0)
        self.assertEqual(audit_result_summary(result)["grade"], result.metrics.grade)

    async def test_window_provider_tolerates_missing_graph(self) -> None:
        page = FakePage()
        page.graph = None  # type: ignore[assignment]
        payload = await WindowGraphProvider(page).snapshot()
        self.assertEqual(payload, {"nodes": [], "edges": []})

    def test_viewport_size_from_page(self) -> None:
        auditor = LayoutAuditor(FakePage(), provider=SequenceProvider({"nodes": []}))
        self.assertEqual(auditor.viewport_size(), Size(1280, 720))

        page = FakePage()
        page.viewport_size = None  # type: ignore[assignment]
        self.assertEqual(LayoutAuditor(page).viewport_size(), Size(1920, 1080))


class AuditOptionsTests(unittest.TestCase):
    def test_from_config_ignores_unset_overrides(self) -> None:
        config = {"audit": {"timeout_ms": 5000, "screenshot_dir": "shots", "unknown": 1}}
        options = AuditOptions.from_config(config, timeout_ms=None, capture_screenshot=False)
        self.assertEqual(options.timeout_ms, 5000)
        self.assertEqual(options.screenshot_dir, "shots")
        self.assertFalse(options.capture_screenshot)

    def test_score_bounds(self) -> None:
        overlapping = analyze([DiagramNode("a", Point(0, 0), Size()), DiagramNode("b", Point(0, 0), Size())], [])
        self.assertLessEqual(calculate_audit_score(overlapping), 0.5)
        self.assertGreaterEqual(calculate_audit_score(overlapping), 0.0)


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import math
import unittest

from diagramqa.utils.geometry import (
    bounding_box,
    crossing_angle,
    edge_to_edge_distance,
    parent_map,
    polyline_length,
    rect_overlap_area,
    resolve_absolute_rects,
    segment_intersects_rect,
    segments_properly_intersect,
)
from diagramqa.utils.types import DiagramNode, Point, Rect, Size


class GeometryTests(unittest.TestCase):
    def test_overlap_area(self) -> None:
        self.assertEqual(rect_overlap_area(Rect(0, 0, 100, 100), Rect(50, 50, 100, 100)), 2500)
        self.assertEqual(rect_overlap_area(Rect(0, 0, 100, 100), Rect(300, 0, 100, 100)), 0)
        # Touching edges share no area.
        self.assertEqual(rect_overlap_area(Rect(0, 0, 100, 100), Rect(100, 0, 100, 100)), 0)
        self.assertEqual(rect_overlap_area(Rect(0, 0, 0, 0), Rect(0, 0, 100, 100)), 0)

    def test_edge_to_edge_distance(self) -> None:
        self.assertAlmostEqual(edge_to_edge_distance(Rect(0, 0, 100, 100), Rect(150, 0, 100, 100)), 50.0)
        diagonal = edge_to_edge_distance(Rect(0, 0, 100, 100), Rect(130, 140, 100, 100))
        self.assertAlmostEqual(diagonal, 50.0)
        self.assertLess(edge_to_edge_distance(Rect(0, 0, 100, 100), Rect(0, 0, 100, 100)), 0)

    def test_non_finite_distance_never_reports_violation(self) -> None:
        self.assertEqual(edge_to_edge_distance(Rect(math.nan, 0, 10, 10), Rect(0, 0, 10, 10)), math.inf)
        self.assertEqual(rect_overlap_area(Rect(math.nan, 0, 10, 10), Rect(0, 0, 10, 10)), 0.0)

    def test_segments_properly_intersect(self) -> None:
        self.assertTrue(segments_properly_intersect(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0)))
        # A shared endpoint is not a crossing.
        self.assertFalse(segments_properly_intersect(Point(0, 0), Point(10, 10), Point(10, 10), Point(20, 0)))
        # Collinear overlap is not a crossing.
        self.assertFalse(segments_properly_intersect(Point(0, 0), Point(10, 0), Point(5, 0), Point(15, 0)))
        self.assertFalse(segments_properly_intersect(Point(0, 0), Point(0, 0), Point(0, 0), Point(0, 0)))

    def test_segment_intersects_rect(self) -> None:
        rect = Rect(100, 0, 100, 100)
        self.assertTrue(segment_intersects_rect(Point(50, 50), Point(250, 50), rect))
        self.assertFalse(segment_intersects_rect(Point(50, 150), Point(250, 150), rect))
        self.assertTrue(segment_intersects_rect(Point(150, 50), Point(400, 400), rect))
        self.assertFalse(segment_intersects_rect(Point(50, 50), Point(250, 50), Rect(100, 0, 0, 100)))

    def test_crossing_angle(self) -> None:
        self.assertAlmostEqual(crossing_angle(Point(0, 0), Point(10, 0), Point(5, -5), Point(5, 5)), 90.0)
        self.assertAlmostEqual(crossing_angle(Point(0, 0), Point(10, 0), Point(0, 1), Point(10, 1)), 0.0)
        self.assertIsNone(crossing_angle(Point(0, 0), Point(0, 0), Point(0, 1), Point(10, 1)))

    def test_polyline_length_and_bounding_box(self) -> None:
        self.assertAlmostEqual(polyline_length([Point(0, 0), Point(3, 4), Point(3, 10)]), 11.0)
        self.assertEqual(polyline_length([Point(0, 0)]), 0.0)
        self.assertIsNone(bounding_box([]))
        self.assertEqual(
            bounding_box([Rect(0, 0, 10, 10), Rect(50, -20, 10, 10)]),
            Rect(0, -20, 60, 30),
        )

    def test_resolve_absolute_rects_nested(self) -> None:
        nodes = [
            DiagramNode("grandchild", Point(5, 5), Size(20, 20), parent_id="child"),
            DiagramNode("root", Point(100, 100), Size(400, 400)),
            DiagramNode("child", Point(10, 20), Size(200, 200), parent_id="root"),
        ]
        rects = resolve_absolute_rects(nodes)
        self.assertEqual(rects["root"], Rect(100, 100, 400, 400))
        self.assertEqual(rects["child"], Rect(110, 120, 200, 200))
        self.assertEqual(rects["grandchild"], Rect(115, 125, 20, 20))

    def test_unknown_size_uses_default(self) -> None:
        rects = resolve_absolute_rects([DiagramNode("a", Point(0, 0))], default_size=80)
        self.assertEqual(rects["a"], Rect(0, 0, 80, 80))

    def test_parent_map_breaks_cycles_and_dangling_parents(self) -> None:
        nodes = [
            DiagramNode("a", parent_id="b"),
            DiagramNode("b", parent_id="a"),
            DiagramNode("c", parent_id="missing"),
        ]
        parents = parent_map(nodes)
        self.assertEqual(parents, {"a": None, "b": "a", "c": None})
        rects = resolve_absolute_rects(nodes, parents)
        self.assertEqual(set(rects), {"a", "b", "c"})


if __name__ == "__main__":
    unittest.main()

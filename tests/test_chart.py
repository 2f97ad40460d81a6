import json
import tempfile
import unittest
from pathlib import Path

import pandas as pd

from dumbbell_reporter.core.aggregate import aggregate
from dumbbell_reporter.core.chart import ChartBuilder, build
from dumbbell_reporter.core.errors import InconsistentCategory
from dumbbell_reporter.core.model import CategoryStats
from dumbbell_reporter.core.plotting import render
from dumbbell_reporter.core.transform import pair_by_year, to_long

CATS = ("A", "B")


def _inputs(rows=((1990, 100, 150), (1991, 110, 140), (1992, 120, 135))):
    records = pd.DataFrame(list(rows), columns=["year", "A", "B"])
    long = to_long(records, CATS)
    return long, aggregate(long), pair_by_year(long, CATS)


class ChartBuildTests(unittest.TestCase):
    def test_mark_counts(self):
        long, stats, paired = _inputs()
        spec = build(long, stats, paired, {})
        self.assertEqual(6, len(spec.marks_of("point")))
        self.assertEqual(3, len(spec.marks_of("segment")))
        self.assertEqual(3, len(spec.marks_of("text")))
        self.assertEqual(2, len(spec.marks_of("rect")))
        self.assertEqual(2, len(spec.marks_of("vline")))
        self.assertEqual((1990, 1991, 1992), spec.facet_order)
        self.assertEqual("year", spec.facet_field)

    def test_build_is_deterministic(self):
        long, stats, paired = _inputs()
        cfg = {"chart": {"title": "t"}}
        self.assertEqual(build(long, stats, paired, cfg), build(long, stats, paired, cfg))
        self.assertEqual(build(long, stats, paired, cfg).to_dict(),
                         build(long.copy(), stats, paired.copy(), cfg).to_dict())

    def test_encodings(self):
        long, stats, paired = _inputs()
        spec = build(long, stats, paired, {"chart": {"palette": ["red", "blue"]}})
        self.assertEqual("red", spec.color_for("A"))
        self.assertEqual("blue", spec.color_for("B"))

        point = next(m for m in spec.marks_of("point") if m.year == 1990 and m.category == "B")
        self.assertEqual(150.0, point.get("x"))
        self.assertEqual(1990, point.get("y"))
        self.assertEqual("blue", point.get("color"))

        seg = next(m for m in spec.marks_of("segment") if m.year == 1991)
        self.assertEqual((110.0, 140.0), (seg.get("x"), seg.get("x2")))

        text = next(m for m in spec.marks_of("text") if m.year == 1990)
        self.assertEqual(125.0, text.get("x"))
        self.assertEqual("+50", text.get("label"))

        a = next(s for s in stats if s.category == "A")
        band = next(m for m in spec.marks_of("rect") if m.category == "A")
        self.assertEqual((a.lower_bound, a.upper_bound), (band.get("x"), band.get("x2")))
        mean = next(m for m in spec.marks_of("vline") if m.category == "A")
        self.assertEqual(a.mean, mean.get("x"))

    def test_lone_category_years_keep_point_but_no_segment_or_label(self):
        long, stats, paired = _inputs(((1990, 100, 150), (1991, 110, float("nan")),
                                       (1992, float("nan"), 135), (1993, 120, 130)))
        spec = build(long, stats, paired, {})
        self.assertEqual(6, len(spec.marks_of("point")))
        self.assertEqual(2, len(spec.marks_of("segment")))
        self.assertEqual(2, len(spec.marks_of("text")))
        self.assertEqual((1990, 1991, 1992, 1993), spec.facet_order)
        self.assertEqual([1990, 1993], [m.year for m in spec.marks_of("segment")])
        lone = [(m.year, m.category) for m in spec.marks_of("point") if m.year in (1991, 1992)]
        self.assertEqual([(1991, "A"), (1992, "B")], lone)

    def test_negative_difference_label(self):
        long, stats, paired = _inputs(((1990, 150, 100), (1991, 140, 110)))
        spec = build(long, stats, paired, {})
        self.assertEqual(["-50", "-30"], [m.get("label") for m in spec.marks_of("text")])

    def test_unknown_category_raises(self):
        long, stats, paired = _inputs()
        only_a = tuple(s for s in stats if s.category == "A")
        with self.assertRaises(InconsistentCategory):
            build(long, only_a, paired, {})

    def test_empty_inputs_build_empty_spec(self):
        long, stats, paired = _inputs(())
        spec = build(long, stats, paired, {})
        self.assertEqual((), spec.marks)
        self.assertEqual((), spec.facet_order)

    def test_spec_serializes_to_json(self):
        long, stats, paired = _inputs()
        payload = json.loads(json.dumps(build(long, stats, paired, {}).to_dict()))
        self.assertEqual(["A", "B"], payload["color_scale"]["domain"])
        self.assertEqual(16, len(payload["marks"]))

    def test_builder_refuses_marks_after_finalize(self):
        builder = ChartBuilder().set_categories(["A"])
        builder.add_band(CategoryStats("A", 1.0, 0.0, 1.0, 1.0, 1))
        builder.finalize()
        with self.assertRaises(RuntimeError):
            builder.add_point("A", 1990, 1.0)


class RenderTests(unittest.TestCase):
    def test_render_writes_png(self):
        long, stats, paired = _inputs()
        spec = build(long, stats, paired, {"chart": {"title": "demo", "subtitle": "sub"}})
        with tempfile.TemporaryDirectory() as tmpdir:
            out = render(spec, Path(tmpdir) / "chart.png", dpi=60, labels={"A": "Women"})
            self.assertTrue(out.exists())
            self.assertEqual(b"\x89PNG", out.read_bytes()[:4])

    def test_render_empty_spec(self):
        long, stats, paired = _inputs(())
        spec = build(long, stats, paired, {})
        with tempfile.TemporaryDirectory() as tmpdir:
            out = render(spec, Path(tmpdir) / "empty.png", dpi=60)
            self.assertTrue(out.exists())


if __name__ == "__main__":
    unittest.main()

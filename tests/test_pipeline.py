import json
import tempfile
import unittest
from pathlib import Path

import pandas as pd
import yaml

from dumbbell_reporter.core.errors import ConfigError, InconsistentCategory, InsufficientData
from dumbbell_reporter.core.pipeline import prepare, run_pipeline
from dumbbell_reporter.main import main


def _records():
    return pd.DataFrame({
        "year": [1988, 1990, 1991, 1992],
        "Female": [95.0, 100.0, 110.0, 118.0],
        "Male": [152.0, 150.0, 140.0, 139.0],
    })


BASE_CFG = {
    "columns": {"year": "Year", "categories": ["Female", "Male"], "labels": {"Female": "Women"}},
    "filter": {"min_year": 1990},
    "chart": {"title": "Enrollment", "dpi": 60},
    "reports": {"format": "csv"},
}


class PipelineTests(unittest.TestCase):
    def test_outputs_written(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            result = run_pipeline(_records(), BASE_CFG, out_root)

            self.assertEqual([1990, 1991, 1992], result.records["year"].tolist())
            self.assertEqual(6, len(result.long))
            self.assertEqual([50.0, 30.0, 21.0], result.paired["difference"].tolist())

            for name in ("dumbbell.png", "stats.csv", "pairs.csv", "chart_spec.json", "report.html"):
                self.assertTrue((out_root / name).exists(), f"{name} missing")

            stats = pd.read_csv(out_root / "stats.csv")
            self.assertEqual(["Female", "Male"], stats["category"].tolist())

            spec = json.loads((out_root / "chart_spec.json").read_text(encoding="utf-8"))
            self.assertEqual([1990, 1991, 1992], spec["facet"]["order"])

            html = (out_root / "report.html").read_text(encoding="utf-8")
            self.assertIn("data:image/png;base64,", html)
            self.assertIn("Enrollment", html)

    def test_mat_format(self):
        cfg = {**BASE_CFG, "reports": {"format": "both", "html": False, "spec_json": False}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            result = run_pipeline(_records(), cfg, out_root)
            self.assertTrue((out_root / "stats.mat").exists())
            self.assertTrue((out_root / "pairs.mat").exists())
            self.assertNotIn("html", result.outputs)

    def test_min_year_past_data_gives_empty_run(self):
        cfg = {**BASE_CFG, "filter": {"min_year": 2100}}
        with tempfile.TemporaryDirectory() as tmpdir:
            result = run_pipeline(_records(), cfg, Path(tmpdir))
            self.assertTrue(result.long.empty)
            self.assertTrue(result.paired.empty)
            self.assertEqual((), result.stats)
            self.assertEqual((), result.spec.marks)
            self.assertTrue((Path(tmpdir) / "dumbbell.png").exists())

    def test_failure_writes_nothing(self):
        cfg = {**BASE_CFG, "filter": {"min_year": 1992}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            with self.assertRaises(InsufficientData):
                run_pipeline(_records(), cfg, out_root)
            self.assertFalse(out_root.exists())

    def test_degenerate_zero_policy(self):
        cfg = {**BASE_CFG, "filter": {"min_year": 1992}, "stats": {"degenerate": "zero"}}
        result = prepare(_records(), cfg)
        self.assertTrue(all(s.stdev == 0.0 for s in result.stats))

    def test_bad_report_format_rejected_before_render(self):
        cfg = {**BASE_CFG, "reports": {"format": "xlsx"}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir) / "out"
            with self.assertRaises(ConfigError):
                run_pipeline(_records(), cfg, out_root)
            self.assertFalse(out_root.exists())

    def test_bad_settings_raise_config_error(self):
        for cfg in ({**BASE_CFG, "stats": {"degenerate": "drop"}},
                    {**BASE_CFG, "filter": {"min_year": "nineteen-ninety"}}):
            with self.assertRaises(ConfigError):
                prepare(_records(), cfg)

    def test_inconsistent_category_propagates(self):
        from dumbbell_reporter.core.chart import build
        result = prepare(_records(), BASE_CFG)
        with self.assertRaises(InconsistentCategory):
            build(result.long, result.stats[:1], result.paired, BASE_CFG)


class MainTests(unittest.TestCase):
    def _write(self, tmp: Path, source: str, **overrides) -> Path:
        cfg = {**BASE_CFG, "input": {"source": source}, "output": {"root": str(tmp / "out")},
               "logging": {"verbose": False}, **overrides}
        path = tmp / "config.yaml"
        path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
        return path

    def test_main_end_to_end(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "data.csv").write_text(
                "Year,Female,Male\n1990,100,150\n1991,110,140\n", encoding="utf-8")
            self.assertEqual(0, main(self._write(tmp, "data.csv")))
            self.assertTrue((tmp / "out" / "report.html").exists())

    def test_main_header_only_source_gives_empty_report(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "data.csv").write_text("Year,Female,Male\n", encoding="utf-8")
            self.assertEqual(0, main(self._write(tmp, "data.csv")))
            self.assertTrue((tmp / "out" / "dumbbell.png").exists())
            self.assertIn("no rows", (tmp / "out" / "report.html").read_text(encoding="utf-8"))
            spec = json.loads((tmp / "out" / "chart_spec.json").read_text(encoding="utf-8"))
            self.assertEqual([], spec["marks"])

    def test_main_reports_missing_source(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            self.assertEqual(1, main(self._write(tmp, "missing.csv")))
            self.assertFalse((tmp / "out").exists())

    def test_main_reports_bad_config_setting(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "data.csv").write_text(
                "Year,Female,Male\n1990,100,150\n1991,110,140\n", encoding="utf-8")
            path = self._write(tmp, "data.csv", reports={"format": "xlsx"})
            self.assertEqual(1, main(path))
            self.assertFalse((tmp / "out").exists())

    def test_main_reports_unreadable_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            self.assertEqual(1, main(tmp / "absent.yaml"))
            broken = tmp / "broken.yaml"
            broken.write_text("input: [unclosed\n", encoding="utf-8")
            self.assertEqual(1, main(broken))


class ReportTemplateTests(unittest.TestCase):
    def test_html_escapes_title_and_cells(self):
        cfg = {**BASE_CFG, "chart": {"title": "<b>Women & Men</b>", "dpi": 60},
               "reports": {"format": "csv", "spec_json": False}}
        with tempfile.TemporaryDirectory() as tmpdir:
            out_root = Path(tmpdir)
            run_pipeline(_records(), cfg, out_root)
            html = (out_root / "report.html").read_text(encoding="utf-8")
            self.assertIn("&lt;b&gt;Women &amp; Men&lt;/b&gt;", html)
            self.assertNotIn("<b>Women", html)
            self.assertIn("<td>109.33</td>", html)


if __name__ == "__main__":
    unittest.main()

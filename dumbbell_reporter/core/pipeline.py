# dumbbell_reporter/core/pipeline.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging
import pandas as pd

from .aggregate import aggregate
from .chart import build
from .config import (category_columns, category_labels, degenerate_policy, min_year,
                     report_format)
from .model import CategoryStats, ChartSpec
from .plotting import render
from .reports import write_html_report, write_spec, write_tables
from .transform import filter_by_year, pair_by_year, to_long

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    records: pd.DataFrame         # filtered wide records
    long: pd.DataFrame            # one row per (year, category)
    paired: pd.DataFrame          # one row per year with both categories
    stats: tuple[CategoryStats, ...]
    spec: ChartSpec
    outputs: dict[str, Path] = field(default_factory=dict)


def prepare(records: pd.DataFrame, cfg: dict) -> PipelineResult:
    """Transform -> aggregate -> build, without touching the file system."""
    cats = category_columns(cfg)
    degenerate = degenerate_policy(cfg)
    start_year = min_year(cfg)

    filtered = filter_by_year(records, start_year)
    if filtered.empty:
        print(f"[INFO] no records at or after year {start_year}; chart will be empty.")
    long = to_long(filtered, cats)
    paired = pair_by_year(long, cats)
    stats = aggregate(long, degenerate=degenerate)
    spec = build(long, stats, paired, cfg)
    _LOG.debug("prepared %d long row(s), %d pair(s), %d mark(s)", len(long), len(paired), len(spec.marks))
    return PipelineResult(records=filtered, long=long, paired=paired, stats=stats, spec=spec)


def run_pipeline(records: pd.DataFrame, cfg: dict, out_root: Path) -> PipelineResult:
    chart_cfg = cfg.get("chart", {}) or {}
    rep_cfg = cfg.get("reports", {}) or {}
    fmt = report_format(cfg)

    # every stage must succeed before anything is written
    result = prepare(records, cfg)

    out_root.mkdir(parents=True, exist_ok=True)
    outputs: dict[str, Path] = {}

    outputs["chart"] = render(result.spec, out_root / "dumbbell.png",
                              dpi=int(chart_cfg.get("dpi", 160)),
                              labels=category_labels(cfg))

    mat_var = str(rep_cfg.get("mat_variable", "report"))
    for p in write_tables(result.paired, result.stats, out_root, fmt=fmt, mat_variable=mat_var):
        outputs[p.name] = p

    if bool(rep_cfg.get("spec_json", True)):
        outputs["spec"] = write_spec(result.spec, out_root / "chart_spec.json")
    if bool(rep_cfg.get("html", True)):
        outputs["html"] = write_html_report(
            outputs["chart"], result.stats, result.paired, out_root / "report.html",
            title=result.spec.title, subtitle=result.spec.subtitle,
        )

    return PipelineResult(records=result.records, long=result.long, paired=result.paired,
                          stats=result.stats, spec=result.spec, outputs=outputs)

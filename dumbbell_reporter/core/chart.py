# dumbbell_reporter/core/chart.py
from __future__ import annotations
from typing import Any, Iterable
import pandas as pd

from .config import DEFAULT_PALETTE
from .errors import InconsistentCategory
from .model import (CATEGORY, DIFFERENCE, VALUE, X_POS, YEAR,
                    CategoryStats, ChartSpec, Mark, MarkKind)

DEFAULT_LABEL_FORMAT = "{:+,.0f}"
DEFAULT_THEME: dict[str, Any] = {
    "background": "white",
    "grid": "x",
    "legend_position": "top",
    "facet_label_side": "left",
}


def _py(v: Any) -> Any:
    """numpy scalars -> plain python, so specs compare and serialize cleanly."""
    if hasattr(v, "item"):
        return v.item()
    return v


def _props(**kwargs) -> tuple[tuple[str, Any], ...]:
    return tuple(sorted((k, _py(v)) for k, v in kwargs.items()))


class ChartBuilder:
    """Accumulates typed marks; ``finalize()`` freezes them into a ChartSpec."""

    def __init__(self, palette: Iterable[str] = DEFAULT_PALETTE,
                 label_format: str = DEFAULT_LABEL_FORMAT):
        self._palette = tuple(palette)
        self._label_format = label_format
        self._marks: list[Mark] = []
        self._years: set[int] = set()
        self._colors: dict[str, str] = {}
        self._finalized = False

    # ----- colour scale -----
    def set_categories(self, categories: Iterable[str]) -> "ChartBuilder":
        cats = list(categories)
        if len(cats) > len(self._palette):
            raise ValueError(f"palette has {len(self._palette)} colour(s) for {len(cats)} categories")
        self._colors = {c: self._palette[i] for i, c in enumerate(cats)}
        return self

    def check_category(self, category: str) -> None:
        self._color(category)

    def _color(self, category: str) -> str:
        try:
            return self._colors[category]
        except KeyError:
            raise InconsistentCategory(
                f"category {category!r} has no statistics (known: {list(self._colors)})") from None

    def _add(self, kind: MarkKind, category: str | None, year: int | None, **props) -> None:
        if self._finalized:
            raise RuntimeError("ChartBuilder already finalized")
        if year is not None:
            year = int(year)
            self._years.add(year)
        self._marks.append(Mark(kind=kind, category=category, year=year, props=_props(**props)))

    # ----- marks -----
    def add_band(self, stats: CategoryStats) -> "ChartBuilder":
        color = self._color(stats.category)
        self._add("rect", stats.category, None, x=stats.lower_bound, x2=stats.upper_bound,
                  color=color, opacity=0.15)
        self._add("vline", stats.category, None, x=stats.mean, color=color, linestyle="dashed")
        return self

    def add_segment(self, year: int, x: float, x2: float) -> "ChartBuilder":
        self._add("segment", None, year, x=x, x2=x2, y=year, color="#9e9e9e")
        return self

    def add_point(self, category: str, year: int, value: float) -> "ChartBuilder":
        self._add("point", category, year, x=value, y=year, color=self._color(category))
        return self

    def add_delta_label(self, year: int, x_pos: float, difference: float) -> "ChartBuilder":
        self._add("text", None, year, x=x_pos, y=year,
                  label=self._label_format.format(difference), color="black")
        return self

    def finalize(self, title: str = "", subtitle: str = "",
                 theme: dict[str, Any] | None = None) -> ChartSpec:
        self._finalized = True
        return ChartSpec(
            marks=tuple(self._marks),
            facet_field=YEAR,
            facet_order=tuple(sorted(self._years)),
            color_scale=tuple(self._colors.items()),
            title=title,
            subtitle=subtitle,
            theme=_props(**{**DEFAULT_THEME, **(theme or {})}),
        )


def build(long_records: pd.DataFrame,
          category_stats: tuple[CategoryStats, ...],
          paired_by_year: pd.DataFrame,
          cfg: dict | None = None) -> ChartSpec:
    """
    Assemble the extended dumbbell chart:
      band + mean line per category, segment per paired year,
      point per long record, signed delta label per paired year.
    """
    chart_cfg = (cfg or {}).get("chart", {}) or {}
    builder = ChartBuilder(
        palette=chart_cfg.get("palette", DEFAULT_PALETTE),
        label_format=str(chart_cfg.get("label_format", DEFAULT_LABEL_FORMAT)),
    )
    builder.set_categories(s.category for s in category_stats)

    # bands first so they sit underneath everything else
    for s in category_stats:
        builder.add_band(s)

    meta = {YEAR, DIFFERENCE, X_POS}
    pair_cats = [c for c in paired_by_year.columns if c not in meta]
    if not paired_by_year.empty:
        for c in pair_cats:
            builder.check_category(c)
    paired = paired_by_year.sort_values(YEAR, kind="stable")

    if len(pair_cats) == 2:
        first, second = pair_cats
        for year, x, x2 in paired[[YEAR, first, second]].itertuples(index=False):
            builder.add_segment(int(year), float(x), float(x2))

    for year, cat, value in long_records.sort_values(YEAR, kind="stable")[[YEAR, CATEGORY, VALUE]].itertuples(index=False):
        builder.add_point(str(cat), int(year), float(value))

    if len(pair_cats) == 2:
        for year, x_pos, diff in paired[[YEAR, X_POS, DIFFERENCE]].itertuples(index=False):
            builder.add_delta_label(int(year), float(x_pos), float(diff))

    return builder.finalize(
        title=str(chart_cfg.get("title", "")),
        subtitle=str(chart_cfg.get("subtitle", "")),
        theme=chart_cfg.get("theme", None),
    )

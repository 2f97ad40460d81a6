# dumbbell_reporter/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Literal

# canonical column names of the long table
YEAR = "year"
CATEGORY = "category"
VALUE = "value"
DIFFERENCE = "difference"
X_POS = "x_pos"

LONG_COLUMNS = [YEAR, CATEGORY, VALUE, DIFFERENCE]

MarkKind = Literal["point", "segment", "text", "rect", "vline"]


@dataclass(frozen=True)
class CategoryStats:
    category: str
    mean: float
    stdev: float
    lower_bound: float        # mean - 1*stdev
    upper_bound: float        # mean + 1*stdev
    n: int

    def as_row(self) -> dict:
        return {
            "category": self.category,
            "mean": self.mean,
            "stdev": self.stdev,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
            "n": self.n,
        }


@dataclass(frozen=True)
class Mark:
    kind: MarkKind
    category: str | None          # None for marks spanning both categories
    year: int | None              # None for marks drawn on every facet
    props: tuple[tuple[str, Any], ...] = ()   # sorted (key, value) pairs

    def get(self, key: str, default: Any = None) -> Any:
        for k, v in self.props:
            if k == key:
                return v
        return default

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "category": self.category,
            "year": self.year,
            **dict(self.props),
        }


@dataclass(frozen=True)
class ChartSpec:
    marks: tuple[Mark, ...]
    facet_field: str                              # always "year"
    facet_order: tuple[int, ...]
    color_scale: tuple[tuple[str, str], ...]      # (category, colour)
    title: str = ""
    subtitle: str = ""
    theme: tuple[tuple[str, Any], ...] = field(default_factory=tuple)

    def marks_of(self, kind: MarkKind) -> list[Mark]:
        return [m for m in self.marks if m.kind == kind]

    def color_for(self, category: str) -> str:
        return dict(self.color_scale)[category]

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "subtitle": self.subtitle,
            "facet": {"field": self.facet_field, "order": list(self.facet_order)},
            "color_scale": {
                "domain": [c for c, _ in self.color_scale],
                "range": [col for _, col in self.color_scale],
            },
            "theme": dict(self.theme),
            "marks": [m.to_dict() for m in self.marks],
        }

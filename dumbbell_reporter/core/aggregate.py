# dumbbell_reporter/core/aggregate.py
from __future__ import annotations
import logging
from typing import Literal
import pandas as pd

from .errors import InsufficientData
from .model import CATEGORY, VALUE, CategoryStats

DegeneratePolicy = Literal["raise", "zero"]

_LOG = logging.getLogger(__name__)

STATS_COLUMNS = ["category", "mean", "stdev", "lower_bound", "upper_bound", "n"]


def aggregate(long_records: pd.DataFrame, degenerate: DegeneratePolicy = "raise") -> tuple[CategoryStats, ...]:
    """
    Per-category mean and sample standard deviation (n-1) of ``value``,
    with one-sigma bounds. Groups come out in first-appearance order.

    degenerate="raise" -> InsufficientData for a group with fewer than 2 rows
    degenerate="zero"  -> such a group gets stdev = 0
    """
    if degenerate not in ("raise", "zero"):
        raise ValueError(f"unknown degenerate policy {degenerate!r}")
    if long_records.empty:
        return ()

    grouped = long_records.groupby(CATEGORY, sort=False)[VALUE].agg(["mean", "std", "count"])
    out: list[CategoryStats] = []
    for cat, row in grouped.iterrows():
        n = int(row["count"])
        if n < 2:
            if degenerate == "raise":
                raise InsufficientData(f"category {cat!r} has {n} row(s); need at least 2 for a standard deviation")
            _LOG.info("category %r has %d row(s); using stdev = 0", cat, n)
            stdev = 0.0
        else:
            stdev = float(row["std"])
        mean = float(row["mean"])
        out.append(CategoryStats(
            category=str(cat),
            mean=mean,
            stdev=stdev,
            lower_bound=mean - stdev,
            upper_bound=mean + stdev,
            n=n,
        ))
    return tuple(out)


def stats_frame(stats: tuple[CategoryStats, ...]) -> pd.DataFrame:
    return pd.DataFrame([s.as_row() for s in stats], columns=STATS_COLUMNS)

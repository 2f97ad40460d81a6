# dumbbell_reporter/core/transform.py
from __future__ import annotations
import logging
from typing import Sequence
import numpy as np
import pandas as pd

from .errors import InvalidSchema
from .model import CATEGORY, DIFFERENCE, LONG_COLUMNS, VALUE, X_POS, YEAR

_LOG = logging.getLogger(__name__)


def filter_by_year(records: pd.DataFrame, min_year: int | None) -> pd.DataFrame:
    """Keep records with year >= min_year (None keeps everything)."""
    if min_year is None:
        return records.copy()
    return records.loc[records[YEAR] >= int(min_year)].reset_index(drop=True)


def _check_categories(records: pd.DataFrame, category_columns: Sequence[str]) -> tuple[str, str]:
    cats = list(category_columns)
    if len(cats) != 2 or cats[0] == cats[1]:
        raise InvalidSchema(f"expected exactly two distinct category columns, got {cats!r}")
    missing = [c for c in cats if c not in records.columns]
    if missing or YEAR not in records.columns:
        raise InvalidSchema(f"records missing columns {missing or [YEAR]}. Found: {list(records.columns)}")
    return cats[0], cats[1]


def to_long(records: pd.DataFrame, category_columns: Sequence[str]) -> pd.DataFrame:
    """
    Wide -> long: one row per (year, category), carrying
    difference = value(second) - value(first), computed once per year.
    A category with a missing value for a year is not emitted for that year.
    """
    first, second = _check_categories(records, category_columns)
    if records.empty:
        return pd.DataFrame({YEAR: pd.Series(dtype="int64"),
                             CATEGORY: pd.Series(dtype="object"),
                             VALUE: pd.Series(dtype=float),
                             DIFFERENCE: pd.Series(dtype=float)})

    dupes = records[YEAR].duplicated()
    if dupes.any():
        raise InvalidSchema(f"duplicate years in records: {sorted(records.loc[dupes, YEAR].unique())}")

    wide = records[[YEAR, first, second]].copy()
    wide[DIFFERENCE] = wide[second] - wide[first]

    long = wide.melt(id_vars=[YEAR, DIFFERENCE], value_vars=[first, second],
                     var_name=CATEGORY, value_name=VALUE)
    long = long.dropna(subset=[VALUE])
    # keep year order, first category before second within a year
    order = {first: 0, second: 1}
    long = (long.assign(_cat_order=long[CATEGORY].map(order))
                .sort_values([YEAR, "_cat_order"], kind="stable")
                .drop(columns="_cat_order"))
    return long[LONG_COLUMNS].reset_index(drop=True)


def split_by_category(long_records: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """Partition into one year-ordered table per category (first-appearance order)."""
    out: dict[str, pd.DataFrame] = {}
    for cat in pd.unique(long_records[CATEGORY]):
        sub = long_records.loc[long_records[CATEGORY] == cat]
        out[str(cat)] = sub.sort_values(YEAR, kind="stable").reset_index(drop=True)
    return out


def label_position(long_records_for_one_category: pd.DataFrame) -> pd.DataFrame:
    """x_pos = value + difference/2, the midpoint between the paired points."""
    df = long_records_for_one_category
    cats = pd.unique(df[CATEGORY]) if not df.empty else []
    if len(cats) > 1:
        raise InvalidSchema(f"label_position expects a single category, got {list(cats)}")
    out = df.copy()
    out[X_POS] = out[VALUE] + out[DIFFERENCE] / 2.0
    return out


def pair_by_year(long_records: pd.DataFrame, categories: Sequence[str]) -> pd.DataFrame:
    """
    Explicit zip-by-year join of the two categories.
    Columns: year, <first>, <second>, difference, x_pos. Years lacking either
    category are skipped (their lone point is still drawn from the long table).
    """
    first, second = list(categories)
    cols = [YEAR, first, second, DIFFERENCE, X_POS]
    parts = split_by_category(long_records)
    if first not in parts or second not in parts:
        return pd.DataFrame(columns=cols).astype({YEAR: "int64"})

    ref = label_position(parts[first])[[YEAR, VALUE, DIFFERENCE, X_POS]].rename(columns={VALUE: first})
    other = parts[second][[YEAR, VALUE]].rename(columns={VALUE: second})
    paired = ref.merge(other, on=YEAR, how="inner", validate="one_to_one")

    lone = sorted(set(parts[first][YEAR]) ^ set(parts[second][YEAR]))
    if lone:
        _LOG.info("years without a category pair (no segment/label): %s", lone)

    paired = paired.loc[np.isfinite(paired[DIFFERENCE])]
    return paired[cols].sort_values(YEAR, kind="stable").reset_index(drop=True)

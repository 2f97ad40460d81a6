# dumbbell_reporter/core/normalize.py
from __future__ import annotations
import pandas as pd


def _key(name) -> str:
    return str(name).strip().lower()


def resolve_columns(df: pd.DataFrame, wanted: list[str]) -> dict[str, str | None]:
    """Map each wanted column name to the actual header (case/space-insensitive)."""
    cmap = {_key(c): c for c in df.columns}
    return {w: cmap.get(_key(w)) for w in wanted}


def to_float(s) -> pd.Series:
    if pd.api.types.is_numeric_dtype(s):
        return s.astype(float)
    # the separator that comes last is the decimal one ("1.234,5" / "1,234.5");
    # a lone comma is a thousands separator only in the "1,234" / "12,345,678" shape
    txt = s.astype(str).str.strip().str.replace(" ", "", regex=False)
    last_comma = txt.str.rfind(",")
    last_dot = txt.str.rfind(".")
    comma_decimal = (last_comma > last_dot) & (last_dot >= 0)
    dot_decimal = (last_dot > last_comma) & (last_comma >= 0)
    comma_only = (last_comma >= 0) & (last_dot < 0)
    thousands = comma_only & txt.str.fullmatch(r"-?\d{1,3}(,\d{3})+")

    out = txt.copy()
    out = out.where(~comma_decimal, txt.str.replace(".", "", regex=False).str.replace(",", ".", regex=False))
    out = out.where(~dot_decimal, txt.str.replace(",", "", regex=False))
    out = out.where(~thousands, txt.str.replace(",", "", regex=False))
    out = out.where(~(comma_only & ~thousands), txt.str.replace(",", ".", regex=False))
    return pd.to_numeric(out, errors="coerce")


def to_year(s) -> pd.Series:
    """Coerce a year column to nullable ints; '1990-91' style academic years keep the first year."""
    if pd.api.types.is_integer_dtype(s):
        return s.astype("Int64")
    txt = s.astype(str).str.strip().str.extract(r"^(\d{4})", expand=False)
    return pd.to_numeric(txt, errors="coerce").astype("Int64")

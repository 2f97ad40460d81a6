# dumbbell_reporter/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal
import base64, json, re
import numpy as np
import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape
from scipy.io import savemat

from .aggregate import stats_frame
from .model import CategoryStats, ChartSpec

ReportFormat = Literal["csv", "mat", "both"]


def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")


def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr


def _mat_field(name: str) -> str:
    # MATLAB struct fields: letter first, then [A-Za-z0-9_]
    s = re.sub(r"[^A-Za-z0-9_]+", "_", str(name)).strip("_") or "field"
    return s if s[0].isalpha() else f"f_{s}"


def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with one field per column.
    Strings become cell arrays (Nx1), numerics become double (Nx1).
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct = {}
    for col in df_out.columns:
        if pd.api.types.is_numeric_dtype(df_out[col]):
            mat_struct[_mat_field(col)] = df_out[col].to_numpy(dtype=float).reshape(-1, 1)
        else:
            mat_struct[_mat_field(col)] = _to_mat_cellstr(df_out[col].astype(str).tolist())
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")


def write_table(df_out: pd.DataFrame, out_base: Path, title: str,
                fmt: ReportFormat = "csv", mat_variable: str = "report") -> list[Path]:
    """
    - out_base is a *base path without extension* (e.g., .../stats)
    - fmt: "csv" | "mat" | "both"
    """
    if fmt not in ("csv", "mat", "both"):
        raise ValueError(f"unknown report format {fmt!r}")
    written: list[Path] = []
    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
        written.append(out_base.with_suffix(".csv"))
    if fmt in ("mat", "both"):
        _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
        written.append(out_base.with_suffix(".mat"))
    return written


def write_tables(paired: pd.DataFrame, stats: tuple[CategoryStats, ...], out_dir: Path,
                 fmt: ReportFormat = "csv", mat_variable: str = "report") -> list[Path]:
    written = write_table(stats_frame(stats), out_dir / "stats", "category stats",
                          fmt=fmt, mat_variable=f"{mat_variable}_stats")
    written += write_table(paired, out_dir / "pairs", "paired years",
                           fmt=fmt, mat_variable=f"{mat_variable}_pairs")
    return written


def write_spec(spec: ChartSpec, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(spec.to_dict(), indent=2), encoding="utf-8")
    print(f"[OK] wrote chart spec → {out_path}")
    return out_path


def _template_env() -> Environment:
    templates_path = Path(__file__).resolve().parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_path)),
        autoescape=select_autoescape(enabled_extensions=("html", "xml", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _format_cell(value) -> str:
    if isinstance(value, float):
        return "" if np.isnan(value) else f"{value:,.2f}"
    return str(value)


def _table_context(df: pd.DataFrame) -> dict:
    return {
        "columns": [str(c) for c in df.columns],
        "rows": [[_format_cell(v) for v in row] for row in df.itertuples(index=False)],
    }


def write_html_report(image_path: Path, stats: tuple[CategoryStats, ...], paired: pd.DataFrame,
                      out_path: Path, title: str = "", subtitle: str = "") -> Path:
    """Self-contained HTML: the chart (base64 PNG) followed by the stats and pairs tables."""
    template = _template_env().get_template("report.html.j2")
    rendered = template.render(
        title=title or "Extended dumbbell plot",
        subtitle=subtitle,
        image_b64=base64.b64encode(image_path.read_bytes()).decode("ascii"),
        stats_table=_table_context(stats_frame(stats)),
        pairs_table=_table_context(paired),
    )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(rendered, encoding="utf-8")
    print(f"[OK] wrote HTML report → {out_path}")
    return out_path

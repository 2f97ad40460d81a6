# dumbbell_reporter/core/plotting.py
from __future__ import annotations
from pathlib import Path
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D

from .model import ChartSpec, Mark


def _draw_shared(ax, marks: list[Mark]) -> None:
    """Bands and mean lines are repeated on every facet."""
    for m in marks:
        if m.kind == "rect":
            ax.axvspan(m.get("x"), m.get("x2"), color=m.get("color"),
                       alpha=m.get("opacity", 0.15), linewidth=0, zorder=0)
        elif m.kind == "vline":
            ax.axvline(m.get("x"), color=m.get("color"), linestyle=m.get("linestyle", "dashed"),
                       linewidth=1.0, zorder=1)


def _draw_facet(ax, marks: list[Mark]) -> None:
    for m in marks:
        if m.kind == "segment":
            ax.hlines(0, m.get("x"), m.get("x2"), color=m.get("color"), linewidth=2.5, zorder=2)
    for m in marks:
        if m.kind == "point":
            ax.scatter([m.get("x")], [0], s=60, color=m.get("color"), zorder=3)
    for m in marks:
        if m.kind == "text":
            ax.annotate(m.get("label"), (m.get("x"), 0), xytext=(0, 6), textcoords="offset points",
                        ha="center", va="bottom", fontsize=8, color=m.get("color", "black"), zorder=4)


def render(spec: ChartSpec, out_path: Path, dpi: int = 160,
           labels: dict[str, str] | None = None) -> Path:
    """
    Draw the spec: one row per facet year (shared x axis), colour legend on top.
    An empty spec still yields an (empty) figure.
    """
    labels = labels or {}
    theme = dict(spec.theme)
    years = list(spec.facet_order)
    shared = [m for m in spec.marks if m.year is None]
    by_year: dict[int, list[Mark]] = {y: [] for y in years}
    for m in spec.marks:
        if m.year is not None:
            by_year[m.year].append(m)

    nrows = max(1, len(years))
    fig, axes = plt.subplots(nrows=nrows, ncols=1, sharex=True,
                             figsize=(9, 1.2 + 0.45 * nrows), squeeze=False)
    fig.patch.set_facecolor(theme.get("background", "white"))

    for i, ax in enumerate(axes[:, 0]):
        _draw_shared(ax, shared)
        ax.set_yticks([])
        ax.set_ylim(-1, 1.4)
        for side in ("top", "right", "left"):
            ax.spines[side].set_visible(False)
        if theme.get("grid") == "x":
            ax.grid(True, axis="x", alpha=0.3)
        if not years:
            ax.text(0.5, 0.5, "no data", transform=ax.transAxes, ha="center", va="center")
            continue
        year = years[i]
        _draw_facet(ax, by_year[year])
        if theme.get("facet_label_side", "left") == "left":
            ax.set_ylabel(str(year), rotation=0, ha="right", va="center", fontsize=8)
        else:
            ax.set_title(str(year), fontsize=8, loc="left")

    handles = [Line2D([0], [0], marker="o", linestyle="", color=color, label=labels.get(cat, cat))
               for cat, color in spec.color_scale]
    if handles:
        fig.legend(handles=handles, loc="upper center", ncol=len(handles), frameon=False,
                   bbox_to_anchor=(0.5, 0.995 if not spec.title else 0.94))
    if spec.title:
        fig.suptitle(spec.title + (f"\n{spec.subtitle}" if spec.subtitle else ""), fontsize=11)

    fig.tight_layout(rect=[0, 0, 1, 0.9 if spec.title else 0.95])
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    print(f"[OK] chart: {len(years)} facet(s), {len(spec.marks)} mark(s) → {out_path}")
    return out_path

# dumbbell_reporter/main.py
from __future__ import annotations
from pathlib import Path
import logging
import sys

from dumbbell_reporter.core.config import load_config
from dumbbell_reporter.core.errors import DumbbellError
from dumbbell_reporter.core.pipeline import run_pipeline
from dumbbell_reporter.loaders import csv_loader
from dumbbell_reporter.utils.detect import is_url

_LOG = logging.getLogger(__name__)


def _resolve(value: str, base: Path) -> str | Path:
    if is_url(value):
        return value
    p = Path(value)
    return (p if p.is_absolute() else base / p).resolve()


def main(cfg_path: Path | None = None) -> int:
    # ---------- config ----------
    here = Path(__file__).resolve().parent
    cfg_path = cfg_path or here / "config.yaml"
    try:
        cfg = load_config(cfg_path)
    except DumbbellError as e:
        print(f"[ERROR] {e}")
        return 1

    verbose = bool((cfg.get("logging", {}) or {}).get("verbose", True))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    # input resolves against the config file, output against the working directory
    source = _resolve(str((cfg.get("input", {}) or {}).get("source", "")), cfg_path.resolve().parent)
    out_root = Path(_resolve(str((cfg.get("output", {}) or {}).get("root", "out")), Path.cwd()))
    if verbose:
        print(f"[cfg] source={source}")
        print(f"[cfg] output={out_root}")

    # ---------- load + run ----------
    try:
        records = csv_loader.load(source, cfg)
        if verbose:
            print(f"[load] {len(records)} record(s), years "
                  f"{records['year'].min() if len(records) else '-'}–{records['year'].max() if len(records) else '-'}")
        result = run_pipeline(records, cfg, out_root)
    except DumbbellError as e:
        _LOG.error("%s: %s", type(e).__name__, e)
        print(f"[ERROR] run aborted, no chart written: {e}")
        return 1

    if verbose:
        print(f"[summary] {len(result.paired)} paired year(s), "
              f"{len(result.stats)} category band(s) → {out_root}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

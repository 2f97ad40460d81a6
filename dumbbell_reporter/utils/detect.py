# dumbbell_reporter/utils/detect.py
from __future__ import annotations
from pathlib import Path
from urllib.parse import urlparse
import zipfile
from typing import Literal

SourceKind = Literal["url", "csv", "csvzip", "unknown"]


def is_url(source: str | Path) -> bool:
    if isinstance(source, Path):
        return False
    return urlparse(str(source)).scheme.lower() in ("http", "https")


def _is_zip_with_csv(p: Path) -> bool:
    if not p.is_file():
        return False
    try:
        if not zipfile.is_zipfile(p):
            return False
        with zipfile.ZipFile(p, "r") as zf:
            return any(name.lower().endswith(".csv") for name in zf.namelist())
    except (OSError, zipfile.BadZipFile):
        return False


def detect_kind(source: str | Path) -> SourceKind:
    """
    Classify a data source.
    - http(s)://...              -> 'url'
    - .csv                       -> 'csv'
    - .zip (with any .csv member) -> 'csvzip'
    else                         -> 'unknown'
    """
    if is_url(source):
        return "url"
    p = Path(source)
    suffix = p.suffix.lower()
    if suffix == ".csv":
        return "csv"
    if suffix == ".zip" and _is_zip_with_csv(p):
        return "csvzip"
    return "unknown"

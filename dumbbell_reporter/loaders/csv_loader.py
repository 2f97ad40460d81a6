# dumbbell_reporter/loaders/csv_loader.py
from __future__ import annotations
from pathlib import Path
import io, logging, zipfile
import pandas as pd
import requests

from ..core.config import (DEFAULT_RETRIES, DEFAULT_TIMEOUT_S,
                           category_columns, year_column)
from ..core.errors import InvalidSchema, ParseError, SourceUnavailable
from ..core.model import YEAR
from ..core.normalize import resolve_columns, to_float, to_year
from ..utils.detect import detect_kind

_LOG = logging.getLogger(__name__)

_TRANSIENT = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


# ---------- raw bytes ----------
def _fetch_url(url: str, timeout_s: float, retries: int) -> bytes:
    attempts = 1 + max(0, retries)
    last_exc: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            res = requests.get(url, timeout=timeout_s)
            if res.status_code >= 500:
                raise requests.exceptions.HTTPError(f"server error {res.status_code}", response=res)
            res.raise_for_status()
            return res.content
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status is not None and status < 500:
                raise SourceUnavailable(f"GET {url} failed: HTTP {status}") from e
            last_exc = e
        except _TRANSIENT as e:
            last_exc = e
        except requests.exceptions.RequestException as e:
            raise SourceUnavailable(f"GET {url} failed: {e}") from e
        if attempt < attempts:
            _LOG.warning("transient failure fetching %s (%s); retrying", url, last_exc)
    raise SourceUnavailable(f"GET {url} failed after {attempts} attempt(s): {last_exc}") from last_exc


def _read_zip_member(path: Path) -> bytes:
    try:
        with zipfile.ZipFile(path, "r") as zf:
            members = sorted(m for m in zf.namelist() if m.lower().endswith(".csv"))
            if not members:
                raise ParseError(f"{path.name}: zip archive has no CSV member")
            if len(members) > 1:
                _LOG.info("%s holds %d CSV members; using %s", path.name, len(members), members[0])
            return zf.read(members[0])
    except zipfile.BadZipFile as e:
        raise ParseError(f"{path.name}: not a valid zip archive") from e


def read_source_bytes(source: str | Path, cfg: dict | None = None) -> bytes:
    inp = (cfg or {}).get("input", {}) or {}
    kind = detect_kind(source)
    if kind == "url":
        return _fetch_url(str(source),
                          timeout_s=float(inp.get("timeout_s", DEFAULT_TIMEOUT_S)),
                          retries=int(inp.get("retries", DEFAULT_RETRIES)))

    path = Path(source)
    if not path.is_file():
        raise SourceUnavailable(f"no such file: {path}")
    if kind == "csvzip" or path.suffix.lower() == ".zip":
        return _read_zip_member(path)
    try:
        return path.read_bytes()
    except OSError as e:
        raise SourceUnavailable(f"cannot read {path}: {e}") from e


# ---------- CSV normalization ----------
def _df_from_csv_bytes(buff: bytes, cfg: dict | None) -> pd.DataFrame:
    try:
        raw = pd.read_csv(io.BytesIO(buff), sep=",", low_memory=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"malformed CSV: {e}") from e
    if raw.shape[1] < 2:
        raise ParseError(f"CSV has no usable table (shape {raw.shape})")

    ycol = year_column(cfg)
    cats = list(category_columns(cfg))
    resolved = resolve_columns(raw, [ycol] + cats)
    missing = [w for w, actual in resolved.items() if actual is None]
    if missing:
        raise InvalidSchema(f"CSV missing required columns {missing}. Found: {list(raw.columns)}")

    cols = {YEAR: to_year(raw[resolved[ycol]])}
    for c in cats:
        cols[c] = to_float(raw[resolved[c]])
    out = pd.DataFrame(cols)
    dropped = int(out[YEAR].isna().sum())
    if dropped:
        _LOG.info("dropping %d row(s) without a parseable year", dropped)
    out = out.dropna(subset=[YEAR]).astype({YEAR: "int64"})
    return out.sort_values(YEAR, kind="stable").reset_index(drop=True)


# ---------- public loader ----------
def load(source: str | Path, cfg: dict | None = None) -> pd.DataFrame:
    """
    Accepts: an http(s) URL, a loose .csv file, or a .zip with CSV members.
    Returns: Records as a DataFrame with columns ``year`` + the two category columns.
    """
    buff = read_source_bytes(source, cfg)
    df = _df_from_csv_bytes(buff, cfg)
    _LOG.debug("loaded %d record(s) from %s", len(df), source)
    return df

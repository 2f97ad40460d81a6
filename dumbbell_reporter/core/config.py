# dumbbell_reporter/core/config.py
from __future__ import annotations
from pathlib import Path
import yaml

from .errors import ConfigError, InvalidSchema

# ----- defaults (used when a config section is missing) -----
DEFAULT_YEAR_COLUMN = "Year"
DEFAULT_CATEGORIES: tuple[str, str] = ("Female", "Male")
DEFAULT_PALETTE: tuple[str, str] = ("#762a83", "#009688")
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_RETRIES = 1


def load_config(cfg_path: Path) -> dict:
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config {cfg_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"malformed config {cfg_path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"config {cfg_path} must be a mapping, got {type(cfg).__name__}")
    return cfg


def year_column(cfg: dict | None) -> str:
    cols = (cfg or {}).get("columns", {}) or {}
    return str(cols.get("year", DEFAULT_YEAR_COLUMN))


def category_columns(cfg: dict | None) -> tuple[str, str]:
    """The two category columns; the first one is the label reference."""
    cols = (cfg or {}).get("columns", {}) or {}
    cats = cols.get("categories", DEFAULT_CATEGORIES)
    if isinstance(cats, (str, bytes)) or len(cats) != 2:
        raise InvalidSchema(f"columns.categories must name exactly two columns, got {cats!r}")
    first, second = (str(c) for c in cats)
    if first == second:
        raise InvalidSchema(f"columns.categories must be distinct, got {first!r} twice")
    return first, second


def category_labels(cfg: dict | None) -> dict[str, str]:
    cols = (cfg or {}).get("columns", {}) or {}
    return {str(k): str(v) for k, v in (cols.get("labels", {}) or {}).items()}


def min_year(cfg: dict | None) -> int | None:
    value = ((cfg or {}).get("filter", {}) or {}).get("min_year", None)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"filter.min_year must be an integer year, got {value!r}") from e


def degenerate_policy(cfg: dict | None) -> str:
    value = str(((cfg or {}).get("stats", {}) or {}).get("degenerate", "raise")).lower()
    if value not in ("raise", "zero"):
        raise ConfigError(f"stats.degenerate must be raise or zero, got {value!r}")
    return value


def report_format(cfg: dict | None) -> str:
    value = str(((cfg or {}).get("reports", {}) or {}).get("format", "csv")).lower()
    if value not in ("csv", "mat", "both"):
        raise ConfigError(f"reports.format must be csv, mat or both, got {value!r}")
    return value

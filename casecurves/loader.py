"""
Dataset loader (wide CSV -> normalized rows)
============================================

This module reads the JHU CSSE time-series CSVs (and the optional lockdown
table) and converts them into typed, immutable objects.

Key ideas:
- Cells are read as strings (`dtype=str`, no NA coercion) so that an empty
  Province/State stays "" instead of turning into NaN.
- Every non-metadata column is a date; columns are sorted by parsed date
  because CSV headers are not guaranteed to be in order.
- Sources may be local paths or URLs; pandas handles both. Downloads can be
  cached on disk.
"""

from __future__ import annotations
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional
import hashlib
import logging
import os
import re
import pandas as pd

from .models import COUNTRY, LAT, LONG, METADATA_COLUMNS, PROVINCE, PartialSeries, RegionKey
from .parsing import display_name, parse_count, parse_date

logger = logging.getLogger(__name__)

# JHU CSSE time series (the early-2020 file layout the charts were built on)
ROOT_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
)
CONFIRMED_URL = ROOT_URL + "time_series_19-covid-Confirmed.csv"
DEATHS_URL = ROOT_URL + "time_series_19-covid-Deaths.csv"
RECOVERED_URL = ROOT_URL + "time_series_19-covid-Recovered.csv"

DATE_OF_ACTION = "Date of action"
ACTION_TYPE = "Action type"

# Re-download cached files older than this
CACHE_MAX_AGE_DAYS = 1

LockdownEvents = Dict[RegionKey, Dict[date, str]]


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(cols: Iterable[str], *names: str) -> Optional[str]:
    """Find a column by exact name, then by loose (case/punctuation-free) name."""
    cols = list(cols)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    return None


def _require(cols: Iterable[str], *names: str) -> str:
    cols = list(cols)
    found = _col(cols, *names)
    if found is None:
        raise KeyError(f"Missing required column. Tried={names}. Available={cols}")
    return found


def _cache_path(source: str, cache_dir: str) -> str:
    """Cache file for a URL: digest of the full URL + its basename."""
    name = os.path.basename(source.split("?", 1)[0]) or "table.csv"
    digest = hashlib.sha1(source.encode("utf-8")).hexdigest()[:12]
    return os.path.join(cache_dir, f"{digest}_{name}")


def read_table(source: str, cache_dir: Optional[str] = None, force: bool = False) -> pd.DataFrame:
    """Read a CSV (path or URL) with every cell as a string.

    Args:
        source: Local path or http(s) URL
        cache_dir: If given, URLs are cached here and reused while fresh
        force: Ignore a fresh cache and download again

    Returns:
        pd.DataFrame of str cells, stripped column names
    """
    is_url = source.startswith(("http://", "https://"))
    cached = _cache_path(source, cache_dir) if (cache_dir and is_url) else None

    if cached and not force and os.path.exists(cached):
        mod_time = datetime.fromtimestamp(os.path.getmtime(cached))
        if (datetime.now() - mod_time).days < CACHE_MAX_AGE_DAYS:
            logger.info("Using cached %s", cached)
            return _read(cached)

    try:
        df = _read(source)
    except Exception as e:
        if cached and os.path.exists(cached):
            logger.warning("Failed to read %s (%s); using cached copy", source, e)
            return _read(cached)
        raise

    if cached:
        os.makedirs(cache_dir, exist_ok=True)
        df.to_csv(cached, index=False)
        logger.info("Cached %d rows to %s", len(df), cached)
    return df


def _read(source: str) -> pd.DataFrame:
    df = pd.read_csv(source, dtype=str, keep_default_na=False)
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df


def load_rows(source: str, cache_dir: Optional[str] = None, force: bool = False) -> List[Dict[str, str]]:
    """Read a wide CSV into a list of {column: string} rows."""
    df = read_table(source, cache_dir=cache_dir, force=force)
    logger.info("Loaded %d rows from %s", len(df), source)
    return df.to_dict(orient="records")


def normalize_row(row: Mapping[str, str]) -> PartialSeries:
    """Split one wide row into metadata and an ascending (date, count) tuple."""
    if COUNTRY not in row:
        raise KeyError(f"Missing required column. Tried=({COUNTRY!r},). Available={list(row)}")
    country = str(row[COUNTRY])
    # Empty string is kept as-is; display_name relies on it
    province = str(row.get(PROVINCE, ""))

    counts = []
    for column, value in row.items():
        if column in METADATA_COLUMNS:
            continue
        d = parse_date(column)
        if d is None:
            logger.warning("Skipping non-date column %r for %s", column, display_name(country, province))
            continue
        counts.append((d, parse_count(value)))
    counts.sort(key=lambda pair: pair[0])

    return PartialSeries(
        key=RegionKey(country, province),
        display_name=display_name(country, province),
        lat=str(row.get(LAT, "")),
        long=str(row.get(LONG, "")),
        counts=tuple(counts),
    )


def process_lockdown(rows: Iterable[Mapping[str, str]]) -> LockdownEvents:
    """Build {RegionKey: {date: action label}} from the lockdown table.

    Rows without a date of action are dropped. Two actions on the same day
    for the same region are joined with "; ".
    """
    rows = list(rows)
    if not rows:
        return {}
    cols = list(rows[0].keys())
    country_col = _require(cols, COUNTRY, "Country", "Country/Area")
    province_col = _col(cols, PROVINCE, "Province", "State")
    date_col = _require(cols, DATE_OF_ACTION, "Action date", "Date")
    action_col = _col(cols, ACTION_TYPE, "Action", "Type")

    out: LockdownEvents = {}
    for row in rows:
        raw_date = str(row.get(date_col, "") or "").strip()
        if raw_date == "":
            continue
        key = RegionKey(str(row[country_col]), str(row.get(province_col, "")) if province_col else "")
        d = parse_date(raw_date)
        if d is None:
            logger.warning("Dropping lockdown row for %s: bad date %r", key, raw_date)
            continue
        label = str(row.get(action_col, "")).strip() if action_col else ""
        label = label or "Lockdown"
        per_region = out.setdefault(key, {})
        per_region[d] = f"{per_region[d]}; {label}" if d in per_region else label
    return out


def load_lockdown(source: str, cache_dir: Optional[str] = None, force: bool = False) -> LockdownEvents:
    return process_lockdown(load_rows(source, cache_dir=cache_dir, force=force))

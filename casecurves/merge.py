"""
Series merger (confirmed + deaths + recovered -> RegionSeries)
==============================================================

The three CSSE files share one layout: one row per region, one column per
date. This module joins them per region and builds one `DailyRecord` per date.

Rules:
- confirmed drives the iteration; a region must also exist in deaths and
  recovered, otherwise it is reported as skipped (not fatal)
- rows are joined on `RegionKey`, never on the display name, so two regions
  that happen to share a name cannot overwrite each other
- lockdown labels are attached on exact date matches only
"""

from __future__ import annotations
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional
import logging

from .loader import LockdownEvents, normalize_row
from .models import DailyRecord, MergeOutcome, PartialSeries, RegionKey, RegionSeries
from .parsing import INVALID_COUNT

logger = logging.getLogger(__name__)


def _index(rows: Iterable[Mapping[str, str]], source: str) -> Dict[RegionKey, PartialSeries]:
    out: Dict[RegionKey, PartialSeries] = {}
    for row in rows:
        partial = normalize_row(row)
        if partial.key in out:
            logger.warning("Duplicate region %s in %s; keeping the later row", partial.key, source)
        out[partial.key] = partial
    return out


def annotate_events(region: RegionSeries, events: Optional[Mapping[date, str]]) -> RegionSeries:
    """Return a copy of `region` with lockdown labels set on matching days.

    Dates with no matching record are ignored.
    """
    if not events:
        return region
    series = tuple(
        replace(r, event=events[r.date]) if r.date in events else r
        for r in region.series
    )
    unmatched = len(set(events) - {r.date for r in region.series})
    if unmatched:
        logger.debug("%d lockdown date(s) for %s fall outside the series", unmatched, region.display_name)
    return replace(region, series=series)


def merge_series(
    confirmed_rows: Iterable[Mapping[str, str]],
    deaths_rows: Iterable[Mapping[str, str]],
    recovered_rows: Iterable[Mapping[str, str]],
    lockdown: Optional[LockdownEvents] = None,
) -> List[MergeOutcome]:
    """Join the three sources into one outcome per confirmed region.

    Dates come from the confirmed row; a date missing from a parallel row
    yields NaN for that count.
    """
    confirmed = _index(confirmed_rows, "confirmed")
    deaths = _index(deaths_rows, "deaths")
    recovered = _index(recovered_rows, "recovered")
    lockdown = lockdown or {}

    outcomes: List[MergeOutcome] = []
    for key, c in confirmed.items():
        missing = [name for name, table in (("deaths", deaths), ("recovered", recovered)) if key not in table]
        if missing:
            reason = f"missing from {' and '.join(missing)}"
            logger.warning("Skipping %s: %s", c.display_name, reason)
            outcomes.append(MergeOutcome(key=key, display_name=c.display_name, reason=reason))
            continue

        d_by_date = deaths[key].by_date()
        r_by_date = recovered[key].by_date()
        records = tuple(
            DailyRecord(
                date=day,
                cases=cases,
                deaths=d_by_date.get(day, INVALID_COUNT),
                recovered=r_by_date.get(day, INVALID_COUNT),
            )
            for day, cases in c.counts
        )
        region = RegionSeries(key=key, display_name=c.display_name, series=records, lat=c.lat, long=c.long)
        region = annotate_events(region, lockdown.get(key))
        outcomes.append(MergeOutcome(key=key, display_name=c.display_name, series=region))

    ok = sum(1 for o in outcomes if o.ok)
    logger.info("Merged %d regions (%d skipped)", ok, len(outcomes) - ok)
    return outcomes


def merged_regions(outcomes: Iterable[MergeOutcome]) -> List[RegionSeries]:
    return [o.series for o in outcomes if o.series is not None]


def skipped_regions(outcomes: Iterable[MergeOutcome]) -> List[MergeOutcome]:
    return [o for o in outcomes if not o.ok]

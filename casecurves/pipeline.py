"""
View pipeline (trim -> select -> extents)
=========================================

Pure functions that derive what the chart shows from the base dataset.
Nothing here mutates its input; `recompute` can be called on every
interaction and always starts again from the untouched base.

Steps:
1) `drop_cases_under`: align regions on "day 0 = first day above threshold"
2) `has_cases`: drop regions that never got there
3) `select_series`: keep the selected regions, cut to `max_days`
4) `get_extent` / `get_max_days`: axis domains for the renderer
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import math

from .models import METRICS, SCALES, DailyRecord, RegionSeries, ViewState, VisibleView


def drop_cases_under(
    series: Sequence[DailyRecord], threshold: float, metric: str = "cases"
) -> Tuple[DailyRecord, ...]:
    """Drop days until the metric first exceeds `threshold` (strictly).

    Assumes ascending date order. Returns () if the threshold is never exceeded.
    """
    for i, record in enumerate(series):
        # NaN compares False, so an invalid cell never starts the series
        if record.value(metric) > threshold:
            return tuple(series[i:])
    return ()


def has_cases(region: RegionSeries) -> bool:
    return any(r.cases > 0 for r in region.series)


def trim_all(data: Iterable[RegionSeries], threshold: float) -> List[RegionSeries]:
    """Trim every region and drop the ones left without cases."""
    out: List[RegionSeries] = []
    for region in data:
        trimmed = replace(region, series=drop_cases_under(region.series, threshold))
        if has_cases(trimmed):
            out.append(trimmed)
    return out


def make_is_selected(data: Iterable[RegionSeries], selected_names: Iterable[str]) -> Dict[str, bool]:
    """Seed every region as unselected, then switch on the given names.

    Names that are not in the data are still recorded (they may come from a
    shared URL).
    """
    is_selected: Dict[str, bool] = {}
    for region in data:
        is_selected[region.display_name] = False
    for name in selected_names:
        is_selected[name] = True
    return is_selected


def select_series(
    data: Iterable[RegionSeries], selection: Mapping[str, bool], max_days: Optional[int] = None
) -> List[RegionSeries]:
    """Selected regions in input order, each cut to at most `max_days` records."""
    if max_days is not None and max_days < 0:
        raise ValueError("max_days must be >= 0")
    out: List[RegionSeries] = []
    for region in data:
        if not selection.get(region.display_name, False):
            continue
        if max_days is not None and len(region.series) > max_days:
            region = replace(region, series=region.series[:max_days])
        out.append(region)
    return out


def get_max_days(data: Iterable[RegionSeries]) -> int:
    """Longest series length; 0 for no data."""
    return max((len(r.series) for r in data), default=0)


def get_extent(
    data: Iterable[RegionSeries], metric: str = "cases", max_days: Optional[int] = None
) -> Optional[Tuple[float, float]]:
    """(min, max) of `metric` over all visible records.

    NaN cells are skipped. Returns None when there is nothing to measure.
    """
    if metric not in METRICS:
        raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
    lo = math.inf
    hi = -math.inf
    for region in data:
        records = region.series if max_days is None else region.series[:max_days]
        for r in records:
            v = r.value(metric)
            if math.isnan(v):
                continue
            if v < lo:
                lo = v
            if v > hi:
                hi = v
    if lo == math.inf:
        return None
    return (lo, hi)


def recompute(base: Sequence[RegionSeries], view: ViewState) -> VisibleView:
    """Derive the visible view from the untouched base dataset."""
    if view.metric not in METRICS:
        raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
    if view.scale not in SCALES:
        raise ValueError(f"scale must be one of: {', '.join(SCALES)}")
    trimmed = trim_all(base, view.threshold)
    visible = select_series(trimmed, view.is_selected(), view.max_days)
    return VisibleView(
        series=tuple(visible),
        max_days=get_max_days(visible),
        extent=get_extent(visible, view.metric),
        view=view,
    )

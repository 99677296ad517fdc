"""
Data model (RegionSeries / DailyRecord)
=======================================

Each wide CSV row becomes one `RegionSeries`: a region plus an ordered tuple
of `DailyRecord` objects, one per date column.

Everything here is immutable (`frozen=True`, tuples instead of lists) so that:
- the base dataset cannot drift when views are derived from it, and
- trimming / selecting always builds new objects instead of editing old ones.

Regions are joined on `RegionKey` (the raw Country/Region + Province/State
pair). `display_name` is only for people and charts.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

COUNTRY = "Country/Region"
PROVINCE = "Province/State"
LAT = "Lat"
LONG = "Long"
METADATA_COLUMNS = (COUNTRY, LAT, LONG, PROVINCE)

METRICS = ("cases", "deaths", "recovered", "current_cases")
SCALES = ("log", "linear")
DEFAULT_THRESHOLD = 100


@dataclass(frozen=True)
class RegionKey:
    """Composite join key: raw country and raw province strings."""
    region_key: str
    sub_region_key: str = ""

    def __str__(self) -> str:
        return f"{self.region_key} / {self.sub_region_key}" if self.sub_region_key else self.region_key


@dataclass(frozen=True)
class DailyRecord:
    """One day's counts for one region.

    Counts are ints, or NaN when the CSV cell was not numeric.
    """
    date: date
    cases: float
    deaths: float
    recovered: float
    event: Optional[str] = None

    @property
    def current_cases(self) -> float:
        """Active cases, always derived from the other three counts."""
        return self.cases - self.deaths - self.recovered

    def value(self, metric: str) -> float:
        if metric not in METRICS:
            raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
        return getattr(self, metric)


@dataclass(frozen=True)
class PartialSeries:
    """Output of the row normalizer: one metric for one region, ascending by date."""
    key: RegionKey
    display_name: str
    lat: str
    long: str
    counts: Tuple[Tuple[date, float], ...]

    def by_date(self) -> Dict[date, float]:
        return dict(self.counts)


@dataclass(frozen=True)
class RegionSeries:
    """One region's merged time series (ascending by date, unique dates)."""
    key: RegionKey
    display_name: str
    series: Tuple[DailyRecord, ...]
    lat: str = ""
    long: str = ""

    @property
    def region_key(self) -> str:
        return self.key.region_key

    @property
    def sub_region_key(self) -> str:
        return self.key.sub_region_key

    def __len__(self) -> int:
        return len(self.series)

    def events(self) -> Tuple[DailyRecord, ...]:
        """Records that carry a lockdown annotation."""
        return tuple(r for r in self.series if r.event is not None)


@dataclass(frozen=True)
class MergeOutcome:
    """Per-region result of the merge step.

    Exactly one of `series` / `reason` is set.
    """
    key: RegionKey
    display_name: str
    series: Optional[RegionSeries] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.series is not None


@dataclass(frozen=True)
class ViewState:
    """Everything the user can change about the chart.

    The session replaces this object on every interaction; the pipeline only
    reads it.
    """
    selection: Tuple[Tuple[str, bool], ...] = ()
    max_days: Optional[int] = None
    metric: str = "cases"
    scale: str = "log"
    threshold: float = DEFAULT_THRESHOLD

    def is_selected(self) -> Dict[str, bool]:
        return dict(self.selection)


@dataclass(frozen=True)
class VisibleView:
    """What a rendering surface needs for one redraw."""
    series: Tuple[RegionSeries, ...]
    max_days: int
    extent: Optional[Tuple[float, float]]
    view: ViewState = field(default_factory=ViewState)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(r.display_name for r in self.series)

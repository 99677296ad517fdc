"""
Session (orchestrator)
======================

The session is the only stateful object in casecurves:

1) It holds the base dataset (merged RegionSeries list, never modified)
2) It holds the current `ViewState` (selection, day count, metric, scale,
   threshold) and replaces it on each interaction
3) `visible()` re-derives the chart view from the base with `recompute`
4) Undo/redo stacks keep previous view states

Selection persistence is done by the caller: `toggle` / `set_selected` return
the (name, selected) pair to store, and `query_string` encodes the whole
selection as URL query keys (key present = selected).
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qs, urlencode
import csv
import json

from .indices import Indices, build_indices
from .merge import merged_regions, skipped_regions
from .models import METRICS, SCALES, MergeOutcome, RegionSeries, ViewState, VisibleView
from .parsing import is_invalid
from .pipeline import make_is_selected, recompute

EXPORT_COLUMNS = ["name", "country", "province", "day", "date",
                  "cases", "deaths", "recovered", "current_cases", "event"]


def names_from_query(query: str) -> List[str]:
    """Selected names encoded as query-string keys ("?Italy&Hubei%2C+China")."""
    return list(parse_qs(query.lstrip("?"), keep_blank_values=True).keys())


@dataclass
class Session:
    """Owns the base dataset and the current view of it."""
    base: List[RegionSeries]
    idx: Indices
    skipped: List[MergeOutcome] = field(default_factory=list)
    sources: Dict[str, str] = field(default_factory=dict)
    # Stores CLI commands (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)
    view: ViewState = field(init=False)

    # Stacks for undo/redo (ViewState is immutable, so no copies needed)
    _initial: ViewState = field(init=False)
    _undo: List[ViewState] = field(default_factory=list, init=False)
    _redo: List[ViewState] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.view = ViewState(selection=_pairs(make_is_selected(self.base, [])))
        self._initial = self.view

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[MergeOutcome], **kwargs) -> "Session":
        outcomes = list(outcomes)
        base = merged_regions(outcomes)
        skipped = skipped_regions(outcomes)
        return cls(base=base, idx=build_indices(base), skipped=skipped, **kwargs)

    # ---------------- Seeding ----------------
    def seed_selection(self, names: Iterable[str], threshold: Optional[float] = None) -> None:
        """Initial selection (e.g. from a URL). Clears history."""
        view = replace(self.view, selection=_pairs(make_is_selected(self.base, names)))
        if threshold is not None:
            view = replace(view, threshold=threshold)
        self.view = view
        self._initial = view
        self._undo.clear()
        self._redo.clear()

    def seed_from_query(self, query: str, threshold: Optional[float] = None) -> None:
        self.seed_selection(names_from_query(query), threshold=threshold)

    # ---------------- History (Stacks) ----------------
    def _push(self, view: ViewState) -> None:
        if view == self.view:
            return
        self._undo.append(self.view)
        self._redo.clear()
        self.view = view

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.view)
        self.view = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.view)
        self.view = self._redo.pop()
        return True

    def reset(self) -> None:
        """Back to the seeded view."""
        self._push(self._initial)

    # ---------------- Selection ----------------
    def is_selected(self) -> Dict[str, bool]:
        return self.view.is_selected()

    def selected_names(self) -> List[str]:
        return [n for n, on in self.view.selection if on]

    def set_selected(self, name: str, value: bool) -> Tuple[str, bool]:
        """Set one region; returns the pair to persist."""
        state = self.is_selected()
        if name not in state:
            raise ValueError(f"Unknown region: {name!r}")
        state[name] = bool(value)
        self._push(replace(self.view, selection=_pairs(state)))
        return name, bool(value)

    def toggle(self, name: str) -> Tuple[str, bool]:
        state = self.is_selected()
        if name not in state:
            raise ValueError(f"Unknown region: {name!r}")
        return self.set_selected(name, not state[name])

    def select_only(self, names: Iterable[str]) -> None:
        names = set(names)
        state = self.is_selected()
        unknown = sorted(names - set(state))
        if unknown:
            raise ValueError(f"Unknown region(s): {', '.join(unknown)}")
        self._push(replace(self.view, selection=_pairs({n: n in names for n in state})))

    def select_all(self) -> None:
        self._push(replace(self.view, selection=_pairs({n: True for n in self.is_selected()})))

    def clear_selection(self) -> None:
        self._push(replace(self.view, selection=_pairs({n: False for n in self.is_selected()})))

    # ---------------- View settings ----------------
    def set_max_days(self, max_days: Optional[int]) -> None:
        if max_days is not None and max_days < 0:
            raise ValueError("max_days must be >= 0")
        self._push(replace(self.view, max_days=max_days))

    def set_metric(self, metric: str) -> None:
        if metric not in METRICS:
            raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
        self._push(replace(self.view, metric=metric))

    def set_scale(self, scale: str) -> None:
        if scale not in SCALES:
            raise ValueError(f"scale must be one of: {', '.join(SCALES)}")
        self._push(replace(self.view, scale=scale))

    def set_threshold(self, threshold: float) -> None:
        self._push(replace(self.view, threshold=threshold))

    # ---------------- Output operations ----------------
    def visible(self) -> VisibleView:
        return recompute(self.base, self.view)

    def query_string(self) -> str:
        return urlencode([(n, "") for n in self.selected_names()])

    def _export_rows(self) -> List[list]:
        rows = []
        for region in self.visible().series:
            for day, r in enumerate(region.series):
                rows.append([region.display_name, region.region_key, region.sub_region_key,
                             day, r.date.isoformat(),
                             _cell(r.cases), _cell(r.deaths), _cell(r.recovered),
                             _cell(r.current_cases), r.event])
        return rows

    def export_csv(self, path: str) -> int:
        rows = self._export_rows()
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(EXPORT_COLUMNS)
            for row in rows:
                w.writerow(["" if v is None else v for v in row])
        return len(rows)

    def export_json(self, path: str) -> int:
        """Export the visible series, one object per region-day.

        NaN counts become null so the file stays valid JSON.
        """
        payload = [dict(zip(EXPORT_COLUMNS, row)) for row in self._export_rows()]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        return len(payload)


# ---------------- Helpers ----------------
def _pairs(state: Dict[str, bool]) -> Tuple[Tuple[str, bool], ...]:
    return tuple(state.items())

def _cell(v):
    if is_invalid(v):
        return None
    return v

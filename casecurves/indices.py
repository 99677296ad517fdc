"""
Indices (precomputed lookup tables)
===================================

The base dataset is a list; these maps answer "where is region X?" without
scanning it.

Example:
- `by_name["Hubei, China"]` gives every position with that display name
  (a list, because names are not guaranteed unique).
- `by_country["China"]` gives all provinces of China.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence
from .models import RegionSeries

@dataclass
class Indices:
    """Container of precomputed indices over the base dataset."""
    by_name: Dict[str, List[int]]
    by_country: Dict[str, List[int]]
    names_sorted: List[str]

    def duplicate_names(self) -> List[str]:
        return [n for n in self.names_sorted if len(self.by_name[n]) > 1]

def build_indices(data: Sequence[RegionSeries]) -> Indices:
    """Build indices from the merged base dataset."""
    by_name: Dict[str, List[int]] = {}
    by_country: Dict[str, List[int]] = {}

    for pos, region in enumerate(data):
        by_name.setdefault(region.display_name, []).append(pos)
        by_country.setdefault(region.region_key, []).append(pos)

    names_sorted = sorted(by_name.keys())
    return Indices(by_name=by_name, by_country=by_country, names_sorted=names_sorted)

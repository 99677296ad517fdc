from datetime import date, timedelta

import matplotlib
import pytest

from casecurves.models import DailyRecord, RegionKey, RegionSeries
from casecurves.parsing import display_name

matplotlib.use("Agg")

DATES = ["1/22/20", "1/23/20", "1/24/20", "1/25/20", "1/26/20"]
START = date(2020, 1, 22)


def wide_row(country, province, values, dates=DATES):
    row = {"Province/State": province, "Country/Region": country, "Lat": "1.0", "Long": "2.0"}
    for d, v in zip(dates, values):
        row[d] = str(v)
    return row


@pytest.fixture
def make_region():
    """Build a RegionSeries straight from count lists (one day per value)."""
    def _make(country, cases, deaths=None, recovered=None, province="", start=START):
        deaths = deaths or [0] * len(cases)
        recovered = recovered or [0] * len(cases)
        records = tuple(
            DailyRecord(date=start + timedelta(days=i), cases=c, deaths=d, recovered=r)
            for i, (c, d, r) in enumerate(zip(cases, deaths, recovered))
        )
        return RegionSeries(key=RegionKey(country, province), display_name=display_name(country, province),
                            series=records)
    return _make


@pytest.fixture
def confirmed_rows():
    return [
        wide_row("Italy", "", [50, 90, 150, 400, 900]),
        wide_row("China", "Hubei", [400, 600, 800, 1000, 1200]),
        wide_row("US", "", [1, 2, 5, 20, 101]),
        wide_row("Atlantis", "", [500, 600, 700, 800, 900]),
    ]


@pytest.fixture
def deaths_rows():
    return [
        wide_row("Italy", "", [1, 2, 3, 4, 5]),
        wide_row("China", "Hubei", [10, 20, 30, 40, 50]),
        wide_row("US", "", [0, 0, 0, 0, 1]),
    ]


@pytest.fixture
def recovered_rows():
    return [
        wide_row("Italy", "", [0, 1, 2, 3, 4]),
        wide_row("China", "Hubei", [20, 30, 40, 50, 60]),
        wide_row("US", "", [0, 0, 0, 1, 2]),
        wide_row("Atlantis", "", [0, 0, 0, 0, 0]),
    ]


@pytest.fixture
def lockdown_rows():
    return [
        {"Country/Region": "Italy", "Province/State": "", "Date of action": "2020-01-25", "Action type": "Lockdown"},
        {"Country/Region": "Italy", "Province/State": "", "Date of action": "", "Action type": "Schools closed"},
        {"Country/Region": "China", "Province/State": "Hubei", "Date of action": "2020-01-23", "Action type": "Quarantine"},
        {"Country/Region": "China", "Province/State": "Hubei", "Date of action": "2020-03-01", "Action type": "Reopening"},
    ]


@pytest.fixture
def csv_files(tmp_path, confirmed_rows, deaths_rows, recovered_rows, lockdown_rows):
    """Write the fixture tables to disk, the way the CLI reads them."""
    import pandas as pd

    paths = {}
    for name, rows in (("confirmed", confirmed_rows), ("deaths", deaths_rows),
                       ("recovered", recovered_rows), ("lockdown", lockdown_rows)):
        p = tmp_path / f"{name}.csv"
        pd.DataFrame(rows).to_csv(p, index=False)
        paths[name] = str(p)
    return paths

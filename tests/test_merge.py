import math
from datetime import date

from casecurves.loader import process_lockdown
from casecurves.merge import annotate_events, merge_series, merged_regions, skipped_regions
from casecurves.models import RegionKey


def _row(country, province, values):
    row = {"Country/Region": country, "Province/State": province, "Lat": "0", "Long": "0"}
    row.update({f"1/{22 + i}/20": str(v) for i, v in enumerate(values)})
    return row


def test_current_cases_is_derived_per_day():
    outcomes = merge_series([_row("X", "", [10, 20])], [_row("X", "", [1, 2])], [_row("X", "", [2, 3])])
    (region,) = merged_regions(outcomes)
    assert [r.current_cases for r in region.series] == [7, 15]
    assert [r.event for r in region.series] == [None, None]


def test_region_missing_from_a_source_is_skipped(confirmed_rows, deaths_rows, recovered_rows):
    outcomes = merge_series(confirmed_rows, deaths_rows, recovered_rows)
    names = [r.display_name for r in merged_regions(outcomes)]
    assert names == ["Italy", "Hubei, China", "US"]
    (skipped,) = skipped_regions(outcomes)
    assert skipped.display_name == "Atlantis"
    assert skipped.reason == "missing from deaths"
    assert not skipped.ok and skipped.series is None


def test_same_display_name_does_not_collide():
    confirmed = [_row("France", "France", [1, 2]), _row("France", "", [100, 200])]
    deaths = [_row("France", "", [10, 20]), _row("France", "France", [0, 1])]
    recovered = [_row("France", "France", [0, 0]), _row("France", "", [0, 0])]
    regions = merged_regions(merge_series(confirmed, deaths, recovered))
    assert [r.display_name for r in regions] == ["France", "France"]
    by_key = {r.key: r for r in regions}
    assert [d.deaths for d in by_key[RegionKey("France", "France")].series] == [0, 1]
    assert [d.deaths for d in by_key[RegionKey("France", "")].series] == [10, 20]


def test_duplicate_key_later_row_wins():
    confirmed = [_row("X", "", [1, 1]), _row("X", "", [5, 6])]
    others = [_row("X", "", [0, 0])]
    (region,) = merged_regions(merge_series(confirmed, others, others))
    assert [r.cases for r in region.series] == [5, 6]


def test_invalid_cells_propagate_to_current_cases():
    confirmed = [_row("X", "", [10, "oops"])]
    (region,) = merged_regions(merge_series(confirmed, [_row("X", "", [1, 1])], [_row("X", "", [0, 0])]))
    assert region.series[0].current_cases == 9
    assert math.isnan(region.series[1].cases)
    assert math.isnan(region.series[1].current_cases)


def test_missing_parallel_date_is_nan():
    confirmed = [_row("X", "", [10, 20, 30])]
    (region,) = merged_regions(merge_series(confirmed, [_row("X", "", [1, 2])], [_row("X", "", [0, 0, 0])]))
    assert math.isnan(region.series[2].deaths)


def test_lockdown_events_attached_on_exact_date(confirmed_rows, deaths_rows, recovered_rows, lockdown_rows):
    lockdown = process_lockdown(lockdown_rows)
    regions = {r.display_name: r for r in merged_regions(
        merge_series(confirmed_rows, deaths_rows, recovered_rows, lockdown))}

    italy = regions["Italy"]
    assert [(r.date, r.event) for r in italy.events()] == [(date(2020, 1, 25), "Lockdown")]

    # 2020-03-01 is outside the data and is ignored
    hubei = regions["Hubei, China"]
    assert [(r.date, r.event) for r in hubei.events()] == [(date(2020, 1, 23), "Quarantine")]
    assert regions["US"].events() == ()


def test_annotate_events_returns_new_region(make_region):
    region = make_region("X", [1, 2, 3])
    annotated = annotate_events(region, {region.series[1].date: "Curfew"})
    assert annotated.series[1].event == "Curfew"
    assert region.series[1].event is None
    assert annotate_events(region, None) is region

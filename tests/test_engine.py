import csv
import json

import pytest

from casecurves.engine import Session, names_from_query
from casecurves.loader import process_lockdown
from casecurves.merge import merge_series


@pytest.fixture
def session(confirmed_rows, deaths_rows, recovered_rows, lockdown_rows):
    outcomes = merge_series(confirmed_rows, deaths_rows, recovered_rows, process_lockdown(lockdown_rows))
    return Session.from_outcomes(outcomes)


def test_session_starts_with_nothing_selected(session):
    assert session.is_selected() == {"Italy": False, "Hubei, China": False, "US": False}
    assert [o.display_name for o in session.skipped] == ["Atlantis"]
    assert session.visible().series == ()


def test_names_from_query():
    assert names_from_query("?Italy&Hubei%2C+China") == ["Italy", "Hubei, China"]
    assert names_from_query("") == []


def test_seed_from_query_and_query_string(session):
    session.seed_from_query("?Italy&Hubei%2C+China")
    assert session.selected_names() == ["Italy", "Hubei, China"]
    assert names_from_query(session.query_string()) == ["Italy", "Hubei, China"]
    assert not session.undo()


def test_seed_keeps_unknown_url_names(session):
    session.seed_selection(["Narnia"])
    assert session.is_selected()["Narnia"] is True
    assert session.toggle("Narnia") == ("Narnia", False)


def test_toggle_returns_pair_to_persist(session):
    assert session.toggle("Italy") == ("Italy", True)
    assert session.toggle("Italy") == ("Italy", False)
    assert session.set_selected("US", True) == ("US", True)
    with pytest.raises(ValueError):
        session.toggle("Atlantis")


def test_visible_follows_selection_and_days(session):
    session.select_only(["Italy", "Hubei, China"])
    view = session.visible()
    # Italy passes 100 on day 3 of 5; Hubei is above it from the start
    assert view.names == ("Italy", "Hubei, China")
    assert [len(r.series) for r in view.series] == [3, 5]
    session.set_max_days(2)
    view = session.visible()
    assert view.max_days == 2
    assert view.extent == (150, 600)


def test_undo_redo_and_reset(session):
    session.select_all()
    session.set_metric("deaths")
    session.set_scale("linear")
    assert session.view.scale == "linear"
    assert session.undo()
    assert session.view.scale == "log" and session.view.metric == "deaths"
    assert session.redo()
    assert session.view.scale == "linear"
    session.reset()
    assert session.selected_names() == []
    assert session.undo()
    assert len(session.selected_names()) == 3
    assert session.redo()
    assert session.selected_names() == []
    assert not session.redo()


def test_unchanged_view_is_not_recorded(session):
    session.set_metric("cases")
    assert not session.undo()


def test_view_setters_validate(session):
    with pytest.raises(ValueError):
        session.set_metric("tests")
    with pytest.raises(ValueError):
        session.set_scale("sqrt")
    with pytest.raises(ValueError):
        session.set_max_days(-2)
    with pytest.raises(ValueError):
        session.select_only(["Italy", "Mordor"])


def test_threshold_changes_day_zero(session):
    session.select_only(["US"])
    assert session.visible().names == ("US",)
    session.set_threshold(500)
    assert session.visible().names == ()


def test_base_is_untouched_by_interaction(session):
    before = list(session.base)
    session.select_all()
    session.set_max_days(1)
    session.visible()
    session.set_threshold(0)
    session.visible()
    assert session.base == before


def test_export_csv_and_json(session, tmp_path):
    session.select_only(["Italy"])
    n = session.export_csv(str(tmp_path / "out.csv"))
    with open(tmp_path / "out.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert n == len(rows) == 3
    assert rows[0]["name"] == "Italy"
    assert rows[0]["date"] == "2020-01-24"
    assert rows[1]["event"] == "Lockdown"
    assert rows[0]["current_cases"] == str(150 - 3 - 2)

    n = session.export_json(str(tmp_path / "out.json"))
    with open(tmp_path / "out.json", encoding="utf-8") as f:
        payload = json.load(f)
    assert n == len(payload) == 3
    assert payload[2]["day"] == 2
    assert payload[0]["event"] is None


def test_export_writes_invalid_counts_as_blank(tmp_path):
    bad = {"Country/Region": "X", "Province/State": "", "1/22/20": "200", "1/23/20": "oops"}
    zeros = {"Country/Region": "X", "Province/State": "", "1/22/20": "0", "1/23/20": "0"}
    session = Session.from_outcomes(merge_series([bad], [zeros], [zeros]))
    session.select_all()

    session.export_json(str(tmp_path / "out.json"))
    with open(tmp_path / "out.json", encoding="utf-8") as f:
        payload = json.load(f)
    assert [row["cases"] for row in payload] == [200, None]
    assert payload[1]["current_cases"] is None

    session.export_csv(str(tmp_path / "out.csv"))
    with open(tmp_path / "out.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [row["cases"] for row in rows] == ["200", ""]

import math
from datetime import date

import pytest

from casecurves.parsing import display_name, is_invalid, parse_count, parse_date


@pytest.mark.parametrize("text, expected", [
    ("1/22/20", date(2020, 1, 22)),
    ("03/05/20", date(2020, 3, 5)),
    ("2020-03-09", date(2020, 3, 9)),
    (" 12/31/21 ", date(2021, 12, 31)),
])
def test_parse_date_formats(text, expected):
    assert parse_date(text) == expected


@pytest.mark.parametrize("text", ["", "Lat", "13/40/20", "2020-02-30", None])
def test_parse_date_returns_none_on_bad_input(text):
    assert parse_date(text) is None


@pytest.mark.parametrize("text, expected", [
    ("12", 12), (" 7", 7), ("-3", -3), ("12abc", 12), ("3.7", 3), (0, 0), (42.0, 42),
])
def test_parse_count_reads_leading_integer(text, expected):
    assert parse_count(text) == expected


@pytest.mark.parametrize("text", ["", "n/a", "abc", None, float("nan")])
def test_parse_count_invalid_is_nan(text):
    v = parse_count(text)
    assert math.isnan(v)
    assert is_invalid(v)


def test_display_name_rules():
    assert display_name("US", "") == "US"
    assert display_name("France", "France") == "France"
    assert display_name("China", "Hubei") == "Hubei, China"

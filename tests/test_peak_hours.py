from datetime import datetime, timezone

import pytest

from tarana.rag.peak_hours import PeakPeriod, is_peak, parse_peak_hours, to_local


def test_parse_multiple_periods():
    assert parse_peak_hours("10 am - 11 am / 4 pm - 6 pm") == [
        PeakPeriod(600, 660),
        PeakPeriod(960, 1080),
    ]


def test_parse_minutes_and_compact_format():
    assert parse_peak_hours("10:30am-12pm") == [PeakPeriod(630, 720)]


def test_parse_skips_day_specific_ranges():
    assert parse_peak_hours("Saturday & Sunday 6 am - 5 pm") == []
    assert parse_peak_hours("Weekdays 7 am - 9 am / 5 pm - 7 pm") == [PeakPeriod(1020, 1140)]


@pytest.mark.parametrize("value", [None, "", "all day", "13 pm - 2 pm"])
def test_parse_unparseable_yields_nothing(value):
    assert parse_peak_hours(value) == []


@pytest.mark.parametrize("hour,minute,expected", [
    (10, 0, True),
    (11, 0, True),
    (11, 1, False),
    (9, 59, False),
    (17, 30, True),
])
def test_is_peak_is_inclusive(hour, minute, expected):
    moment = datetime(2025, 3, 4, hour, minute)
    assert is_peak("10 am - 11 am / 4 pm - 6 pm", moment) is expected


@pytest.mark.parametrize("hour,expected", [(21, True), (1, True), (3, False), (20, False)])
def test_is_peak_across_midnight(hour, expected):
    assert is_peak("9 pm - 2 am", datetime(2025, 3, 4, hour, 0)) is expected


def test_no_peak_hours_is_never_peak():
    assert is_peak(None, datetime(2025, 3, 4, 10, 30)) is False


def test_to_local_converts_aware_times():
    moment = datetime(2025, 3, 4, 2, 30, tzinfo=timezone.utc)

    local = to_local(moment, "Asia/Manila")

    assert (local.hour, local.minute) == (10, 30)


def test_to_local_keeps_naive_times():
    moment = datetime(2025, 3, 4, 10, 30)
    assert to_local(moment, "Asia/Manila") is moment

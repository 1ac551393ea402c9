from datetime import datetime
from types import SimpleNamespace

import pytest

from frontdesk.shifts import (
    classify_shift,
    current_shift,
    match_agent_assignment,
    parse_shift_range,
    range_contains,
    range_duration,
    shift_time_range,
)


@pytest.mark.parametrize(
    "hour,expected",
    [
        (0, "3rd"),
        (6, "3rd"),
        (7, "1st"),
        (14, "1st"),
        (15, "2nd"),
        (22, "2nd"),
        (23, "3rd"),
    ],
)
def test_classify_shift_boundaries(hour, expected):
    assert classify_shift(hour) == expected


@pytest.mark.parametrize("hour", [-1, 24, 99])
def test_classify_shift_rejects_out_of_range_hours(hour):
    with pytest.raises(ValueError):
        classify_shift(hour)


def test_current_shift_uses_given_time():
    assert current_shift(datetime(2026, 3, 1, 23, 30)) == "3rd"
    assert current_shift(datetime(2026, 3, 1, 8, 0)) == "1st"


def test_shift_time_range_labels():
    assert shift_time_range("1st") == "7:00 am to 3:00 pm"
    assert shift_time_range("2nd") == "3:00 pm to 11:00 pm"
    assert shift_time_range("3rd") == "11:00 pm to 7:00 am"
    with pytest.raises(ValueError):
        shift_time_range("4th")


def test_parse_shift_range_handles_meridiem_and_midnight():
    assert parse_shift_range("7:00 am to 3:00 pm") == (7, 15)
    assert parse_shift_range("11:00 pm to 7:00 am") == (23, 7)
    assert parse_shift_range("7:00 pm to 7:00 am") == (19, 7)
    assert parse_shift_range("12:00 am to 12:00 pm") == (0, 12)
    with pytest.raises(ValueError):
        parse_shift_range("morning")


def test_wrapping_range_containment_and_duration():
    assert range_contains(7, 15, 7)
    assert not range_contains(7, 15, 15)
    assert range_contains(23, 7, 23)
    assert range_contains(23, 7, 3)
    assert not range_contains(23, 7, 7)
    assert range_duration(7, 15) == 8
    assert range_duration(19, 7) == 12
    assert range_duration(7, 7) == 24


def _assignment(label, name):
    return SimpleNamespace(shift=label, agent_name=name)


def test_longer_roster_wins_when_ranges_overlap():
    rows = [
        _assignment("7:00 am to 3:00 pm", "Eight Hour"),
        _assignment("7:00 am to 7:00 pm", "Twelve Hour"),
    ]
    assert match_agent_assignment(rows, 10).agent_name == "Twelve Hour"
    assert match_agent_assignment(rows, 16).agent_name == "Twelve Hour"


def test_overnight_rosters_match_after_midnight():
    rows = [
        _assignment("11:00 pm to 7:00 am", "Night"),
        _assignment("3:00 pm to 11:00 pm", "Evening"),
    ]
    assert match_agent_assignment(rows, 2).agent_name == "Night"
    assert match_agent_assignment(rows, 22).agent_name == "Evening"
    assert match_agent_assignment(rows, 9) is None


def test_equal_length_overlap_keeps_input_order():
    rows = [
        _assignment("7:00 am to 3:00 pm", "First"),
        _assignment("7:00 am to 3:00 pm", "Second"),
    ]
    assert match_agent_assignment(rows, 8).agent_name == "First"
    assert match_agent_assignment(list(reversed(rows)), 8).agent_name == "Second"


def test_unparseable_labels_are_ignored():
    rows = [_assignment("whenever", "Nobody"), _assignment("7:00 am to 3:00 pm", "Day")]
    assert match_agent_assignment(rows, 8).agent_name == "Day"
    assert match_agent_assignment([], 8) is None


def test_three_shifts_partition_the_day():
    buckets = {}
    for hour in range(24):
        buckets.setdefault(classify_shift(hour), []).append(hour)
    assert set(buckets) == {"1st", "2nd", "3rd"}
    assert all(len(hours) == 8 for hours in buckets.values())
    assert buckets["3rd"] == [0, 1, 2, 3, 4, 5, 6, 23]

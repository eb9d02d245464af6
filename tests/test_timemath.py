from datetime import date, datetime, timedelta

from prod_log.timemath import (
    day_key,
    days_between,
    fixed_slot_boundaries,
    floor_to_hour,
    format_clock,
    format_countdown,
    next_fixed_boundary,
    overlaps,
    start_of_day,
)


def test_fixed_slot_contains_now():
    now = datetime(2026, 3, 10, 14, 5)
    assert fixed_slot_boundaries(now, 3) == (
        datetime(2026, 3, 10, 12, 0),
        datetime(2026, 3, 10, 15, 0),
    )
    assert next_fixed_boundary(now, 3) == datetime(2026, 3, 10, 15, 0)


def test_last_slot_of_day_rolls_to_midnight():
    now = datetime(2026, 3, 10, 23, 30)
    assert next_fixed_boundary(now, 12) == datetime(2026, 3, 11, 0, 0)
    assert next_fixed_boundary(now, 1) == datetime(2026, 3, 11, 0, 0)


def test_uneven_interval_never_spans_midnight():
    start, end = fixed_slot_boundaries(datetime(2026, 3, 10, 22, 30), 5)
    assert start == datetime(2026, 3, 10, 20, 0)
    assert end == datetime(2026, 3, 11, 0, 0)


def test_overlaps_is_half_open():
    nine, ten, eleven = (datetime(2026, 1, 1, hour) for hour in (9, 10, 11))
    assert not overlaps(nine, ten, ten, eleven)
    assert overlaps(nine, eleven, ten, eleven)
    assert overlaps(ten, eleven, nine, eleven)


def test_day_helpers():
    moment = datetime(2026, 3, 10, 14, 5, 33, 12)
    assert start_of_day(moment) == datetime(2026, 3, 10)
    assert floor_to_hour(moment) == datetime(2026, 3, 10, 14)
    assert day_key(moment) == date(2026, 3, 10)
    assert days_between(date(2026, 2, 27), date(2026, 3, 1)) == [
        date(2026, 2, 27),
        date(2026, 2, 28),
        date(2026, 3, 1),
    ]
    assert days_between(date(2026, 3, 2), date(2026, 3, 1)) == []


def test_formatting():
    assert format_countdown(timedelta(hours=1, minutes=2, seconds=3)) == "01:02:03"
    assert format_countdown(timedelta(seconds=-5)) == "00:00:00"
    moment = datetime(2026, 3, 10, 14, 5)
    assert format_clock(moment, True) == "14:05"
    assert format_clock(moment, False) == "2:05 PM"

"""Calendar and interval arithmetic for slot boundaries.

All functions work on naive local datetimes and take "now" explicitly so the
results are deterministic.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

HOURS_PER_DAY = 24


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_key(value: datetime | date) -> date:
    """Return the calendar day used to group ledger and history entries."""
    if isinstance(value, datetime):
        return value.date()
    return value


def floor_to_hour(value: datetime) -> datetime:
    return value.replace(minute=0, second=0, microsecond=0)


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open range overlap; touching endpoints do not overlap."""
    return not (a_end <= b_start or a_start >= b_end)


def fixed_slot_boundaries(now: datetime, interval_hours: int) -> tuple[datetime, datetime]:
    """Return the fixed-mode slot containing ``now``.

    Slots are aligned to multiples of ``interval_hours`` from local midnight
    and never cross into the next day.
    """
    interval = max(1, int(interval_hours))
    slot_hour = (now.hour // interval) * interval
    day_start = start_of_day(now)
    start = day_start + timedelta(hours=slot_hour)
    if slot_hour + interval >= HOURS_PER_DAY:
        end = day_start + timedelta(days=1)
    else:
        end = start + timedelta(hours=interval)
    return start, end


def next_fixed_boundary(now: datetime, interval_hours: int) -> datetime:
    return fixed_slot_boundaries(now, interval_hours)[1]


def days_between(first: date, last: date) -> list[date]:
    """Inclusive list of days from ``first`` to ``last``."""
    if last < first:
        return []
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def format_countdown(delta: timedelta) -> str:
    total_seconds = max(0, int(delta.total_seconds()))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_clock(value: datetime, use_24_hour: bool) -> str:
    if use_24_hour:
        return value.strftime("%H:%M")
    return value.strftime("%I:%M %p").lstrip("0")


def format_range(start: datetime, end: datetime, use_24_hour: bool) -> str:
    return f"{format_clock(start, use_24_hour)} - {format_clock(end, use_24_hour)}"

"""Slot scheduling: which slots still need categorizing, and when the next one opens.

Nothing here is stored between calls. Candidates are recomputed from the
completed-slot history, the interval setting and an explicit ``now``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from .config import AUTO_INTERVAL_CHOICES, TrackerSettings
from .history import SlotHistory
from .models import IntervalSetting, Slot
from .timemath import fixed_slot_boundaries, floor_to_hour, overlaps, start_of_day

logger = logging.getLogger(__name__)

ONE_HOUR = timedelta(hours=1)


def candidate_window_start(now: datetime, anchor_hour: int = 12) -> datetime:
    """Noon (by default) of the day before ``now``."""
    return start_of_day(now) - timedelta(days=1) + timedelta(hours=anchor_hour)


def _conflicts(start: datetime, end: datetime, completed: Iterable[Slot]) -> bool:
    return any(overlaps(start, end, slot.start_time, slot.end_time) for slot in completed)


def find_largest_possible_interval(
    start: datetime, completed: Sequence[Slot], now: datetime
) -> datetime:
    """Return the end of the next auto-mode step beginning at ``start``.

    The result is always later than ``start``.
    """
    for slot in completed:
        if slot.start_time <= start < slot.end_time:
            return slot.end_time

    for hours in AUTO_INTERVAL_CHOICES:
        end = start + timedelta(hours=hours)
        if end <= now and not _conflicts(start, end, completed):
            return end

    upcoming = [slot.start_time for slot in completed if slot.start_time > start]
    if upcoming:
        return min(upcoming)
    return start + ONE_HOUR


def _fixed_ranges(window_start: datetime, now: datetime, interval_hours: int):
    slot_start, slot_end = fixed_slot_boundaries(window_start, interval_hours)
    if slot_start < window_start:
        slot_start, slot_end = fixed_slot_boundaries(slot_end, interval_hours)
    while slot_end <= now:
        yield slot_start, slot_end
        slot_start, slot_end = fixed_slot_boundaries(slot_end, interval_hours)


def _auto_ranges(window_start: datetime, now: datetime, completed: Sequence[Slot]):
    cursor = window_start
    while cursor < now:
        end = find_largest_possible_interval(cursor, completed, now)
        yield cursor, end
        cursor = end


def generate_candidates(
    now: datetime,
    interval: IntervalSetting,
    completed: Sequence[Slot],
    anchor_hour: int = 12,
) -> list[Slot]:
    """Uncategorized slots in ``[yesterday noon, now]``, newest first."""
    window_start = candidate_window_start(now, anchor_hour)
    if interval.is_auto:
        ranges = _auto_ranges(window_start, now, completed)
    else:
        ranges = _fixed_ranges(window_start, now, interval.hours or 1)

    candidates = [
        Slot.candidate(start, end)
        for start, end in ranges
        if end <= now and not _conflicts(start, end, completed)
    ]
    candidates.sort(key=lambda slot: slot.start_time, reverse=True)
    return candidates


def next_boundary(
    now: datetime, interval: IntervalSetting, completed: Sequence[Slot] = ()
) -> datetime:
    if not interval.is_auto:
        return fixed_slot_boundaries(now, interval.hours or 1)[1]
    for slot in completed:
        if slot.start_time <= now < slot.end_time:
            return slot.end_time
    return floor_to_hour(now) + ONE_HOUR


def current_slot(now: datetime, interval: IntervalSetting) -> tuple[datetime, datetime]:
    if interval.is_auto:
        start = floor_to_hour(now)
        return start, start + ONE_HOUR
    return fixed_slot_boundaries(now, interval.hours or 1)


class SlotScheduler:
    """Binds the scheduling functions to a history and settings."""

    def __init__(self, history: SlotHistory, settings: Optional[TrackerSettings] = None) -> None:
        self._history = history
        self._settings = settings or TrackerSettings()

    def generate_candidates(self, now: datetime, interval: IntervalSetting) -> list[Slot]:
        candidates = generate_candidates(
            now,
            interval,
            self._history.all(),
            anchor_hour=self._settings.candidate_anchor_hour,
        )
        logger.debug("Generated %d candidate slot(s) for %s.", len(candidates), now)
        return candidates

    def next_boundary(self, now: datetime, interval: IntervalSetting) -> datetime:
        return next_boundary(now, interval, self._history.all())

    def current_slot(self, now: datetime, interval: IntervalSetting) -> tuple[datetime, datetime]:
        return current_slot(now, interval)

"""Application context wiring the tracker services together."""

from __future__ import annotations

import logging
import math
import threading
import uuid
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Mapping, Optional

from .categories import CategoryRegistry
from .config import Preferences, TrackerSettings
from .db import KeyValueStore, SQLiteKeyValueStore
from .events import (
    CATEGORIES_CHANGED,
    INTERVAL_CHANGED,
    INTERVAL_CHANGING,
    LOGS_RESET,
    SLOT_COMMITTED,
    EventChannel,
)
from .history import SlotHistory
from .ledger import PointsLedger, points_for_slot
from .models import Category, Color, IntervalSetting, Slot
from .scheduler import SlotScheduler
from .timemath import day_key, start_of_day

logger = logging.getLogger(__name__)

# Percentages must add up to 100 within this tolerance.
_TOTAL_TOLERANCE = 1e-6


def allocation_error(
    allocation: Mapping[uuid.UUID, float], active_ids: set[uuid.UUID]
) -> Optional[str]:
    """Describe why ``allocation`` cannot be committed, or return ``None``."""
    if not allocation:
        return "allocation is empty"
    total = 0.0
    for category_id, percentage in allocation.items():
        if category_id not in active_ids:
            return f"category {category_id} is not active"
        if not math.isfinite(percentage):
            return f"percentage {percentage} is not a finite number"
        if percentage < 0 or percentage > 100:
            return f"percentage {percentage} is outside 0-100"
        total += percentage
    if abs(total - 100.0) > _TOTAL_TOLERANCE:
        return f"percentages add up to {total:g}, not 100"
    return None


class TrackerContext:
    """Owns the store and the services built on top of it.

    Read-only queries and mutating commands used by presentation code live
    here. Access is serialized so timer threads can share the context.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[TrackerSettings] = None,
        events: Optional[EventChannel] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.settings = settings or TrackerSettings()
        self.events = events or EventChannel()
        self._clock = clock
        self._lock = threading.RLock()
        self.preferences = Preferences(store, self.settings)
        self.categories = CategoryRegistry(store, self.settings.category_grace_period)
        self.history = SlotHistory(store)
        self.ledger = PointsLedger(store)
        self.scheduler = SlotScheduler(self.history, self.settings)

    @classmethod
    def open(cls, db_path: Path, settings: Optional[TrackerSettings] = None) -> "TrackerContext":
        return cls(SQLiteKeyValueStore(db_path), settings=settings)

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()

    def now(self) -> datetime:
        return self._clock()

    # Queries

    @property
    def interval(self) -> IntervalSetting:
        return self.preferences.interval

    @property
    def use_24_hour_clock(self) -> bool:
        return self.preferences.use_24_hour_clock

    def active_categories(self, now: Optional[datetime] = None) -> list[Category]:
        with self._lock:
            return self.categories.active(now or self.now())

    def candidate_slots(self, now: Optional[datetime] = None) -> list[Slot]:
        with self._lock:
            return self.scheduler.generate_candidates(now or self.now(), self.interval)

    def find_candidate(self, start: datetime, now: Optional[datetime] = None) -> Optional[Slot]:
        for candidate in self.candidate_slots(now):
            if candidate.start_time == start:
                return candidate
        return None

    def completed_slots(self, day: date | datetime) -> list[Slot]:
        with self._lock:
            return self.history.for_day(day)

    def all_completed_slots(self) -> list[Slot]:
        with self._lock:
            return self.history.all()

    def daily_points(self, day: date | datetime) -> int:
        with self._lock:
            return self.ledger.daily_total(day)

    def category_points(self, day: date | datetime) -> list[tuple[Category, int]]:
        with self._lock:
            return self.ledger.category_totals(day, self.categories.all())

    def weekly_points(self, now: Optional[datetime] = None) -> int:
        with self._lock:
            return self.ledger.weekly_total(now or self.now())

    def next_boundary(self, now: Optional[datetime] = None) -> datetime:
        with self._lock:
            return self.scheduler.next_boundary(now or self.now(), self.interval)

    def time_until_next_slot(self, now: Optional[datetime] = None) -> timedelta:
        now = now or self.now()
        return max(timedelta(0), self.next_boundary(now) - now)

    def current_slot(self, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
        return self.scheduler.current_slot(now or self.now(), self.interval)

    # Commands

    def commit_slot(
        self,
        candidate: Slot,
        allocation: Mapping[uuid.UUID, float],
        now: Optional[datetime] = None,
    ) -> Optional[Slot]:
        """Store a categorized slot and award its points.

        Returns ``None`` without changing anything when the allocation is
        not committable.
        """
        with self._lock:
            now = now or self.now()
            active_ids = {category.id for category in self.categories.active(now)}
            problem = allocation_error(allocation, active_ids)
            if problem is None and candidate.end_time <= candidate.start_time:
                problem = "slot has no duration"
            if problem is not None:
                logger.info("Refusing to commit slot at %s: %s.", candidate.start_time, problem)
                return None

            cleaned = {
                category_id: float(percentage)
                for category_id, percentage in allocation.items()
                if percentage > 0
            }
            by_id = {category.id: category for category in self.categories.all()}
            slot = Slot(
                id=candidate.id,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                allocation=cleaned,
                is_complete=True,
                category_names={category_id: by_id[category_id].name for category_id in cleaned},
            )
            slot.points = points_for_slot(slot, by_id)

            for old in self.history.insert(slot):
                self.ledger.retract_points(old.points, old.start_time, old.allocation_by_name())
            self.ledger.record_points(slot.points, slot.start_time, slot.allocation_by_name())
            logger.info(
                "Committed slot %s - %s for %d points.", slot.start_time, slot.end_time, slot.points
            )
        self.events.emit(SLOT_COMMITTED, slot)
        return slot

    def add_category(self, name: str, color: Color, points_per_minute: float) -> Category:
        with self._lock:
            category = self.categories.add(name, color, points_per_minute)
        self.events.emit(CATEGORIES_CHANGED, category)
        return category

    def update_category(
        self, category_id: uuid.UUID, name: str, color: Color, points_per_minute: float
    ) -> Optional[Category]:
        with self._lock:
            category = self.categories.update(category_id, name, color, points_per_minute)
        if category is not None:
            self.events.emit(CATEGORIES_CHANGED, category)
        return category

    def remove_category(
        self, category_id: uuid.UUID, now: Optional[datetime] = None
    ) -> Optional[Category]:
        with self._lock:
            category = self.categories.remove(category_id, now or self.now())
        if category is not None:
            self.events.emit(CATEGORIES_CHANGED, category)
        return category

    def reset_to_defaults(self) -> list[Category]:
        with self._lock:
            categories = self.categories.reset_to_defaults()
        self.events.emit(CATEGORIES_CHANGED, None)
        return categories

    def reset_recent_logs(self, now: Optional[datetime] = None) -> list[Slot]:
        """Forget the recent window of logged slots and return the fresh candidates."""
        with self._lock:
            now = now or self.now()
            cutoff = now - self.settings.recent_log_window
            self.history.clear_since(cutoff)
            self.ledger.clear_window(cutoff, now)
            first_day, last_day = day_key(cutoff), day_key(now)
            for slot in self.history.all():
                if first_day <= day_key(slot.start_time) <= last_day:
                    self.ledger.record_points(slot.points, slot.start_time, slot.allocation_by_name())
            candidates = self.candidate_slots(now)
        self.events.emit(LOGS_RESET, candidates)
        return candidates

    def reset_today(self, now: Optional[datetime] = None) -> list[Slot]:
        """Forget today's slots and points."""
        with self._lock:
            now = now or self.now()
            self.history.clear_since(start_of_day(now))
            self.ledger.clear_window(now, now)
            candidates = self.candidate_slots(now)
        self.events.emit(LOGS_RESET, candidates)
        return candidates

    def reset_points(self) -> None:
        with self._lock:
            self.ledger.reset_all()

    def set_interval(self, interval: IntervalSetting) -> None:
        self.events.emit(INTERVAL_CHANGING, self.interval)
        with self._lock:
            self.preferences.set_interval(interval)
        logger.info("Time interval set to %s.", interval)
        self.events.emit(INTERVAL_CHANGED, interval)

    def set_24_hour_clock(self, enabled: bool) -> None:
        with self._lock:
            self.preferences.set_24_hour_clock(enabled)

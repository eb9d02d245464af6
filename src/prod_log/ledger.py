"""Per-day point totals derived from completed slots."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from .db import KeyValueStore, load_blob, save_blob
from .models import Category, Slot
from .schema import (
    decode_category_points,
    decode_daily_points,
    encode_category_points,
    encode_daily_points,
)
from .timemath import day_key, days_between

logger = logging.getLogger(__name__)

DAILY_POINTS_KEY = "daily_points"
CATEGORY_POINTS_KEY = "category_points"

_HUNDRED = Decimal(100)
_ONE = Decimal(1)


def _decimal(value: float) -> Decimal:
    # str() keeps 0.1 as 0.1 instead of its binary expansion.
    return Decimal(str(value))


def points_for_slot(slot: Slot, categories: Mapping[uuid.UUID, Category]) -> int:
    """Points earned by ``slot``; each category's share is truncated."""
    minutes = _decimal(slot.duration_seconds) / 60
    total = 0
    for category_id, percentage in slot.allocation.items():
        category = categories.get(category_id)
        if category is None:
            continue
        raw = minutes * _decimal(percentage) / _HUNDRED * _decimal(category.points_per_minute)
        total += int(raw.to_integral_value(rounding=ROUND_FLOOR))
    return max(0, total)


def split_points(points: int, allocation: Mapping[str, float]) -> dict[str, int]:
    """Distribute ``points`` across category names.

    Shares are rounded half up in name order and the last category takes the
    residual, so the shares always sum to ``points``.
    """
    points = max(0, int(points))
    entries = sorted((name, pct) for name, pct in allocation.items() if pct > 0)
    if not entries:
        return {}
    shares: dict[str, int] = {}
    remaining = points
    for name, percentage in entries[:-1]:
        raw = Decimal(points) * _decimal(percentage) / _HUNDRED
        share = min(int(raw.quantize(_ONE, rounding=ROUND_HALF_UP)), remaining)
        shares[name] = share
        remaining -= share
    last_name = entries[-1][0]
    shares[last_name] = remaining
    return shares


class PointsLedger:
    """Daily and per-category point totals keyed by calendar day."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._daily: dict[date, int] = decode_daily_points(load_blob(store, DAILY_POINTS_KEY)) or {}
        self._by_category: dict[date, dict[str, int]] = (
            decode_category_points(load_blob(store, CATEGORY_POINTS_KEY)) or {}
        )

    @staticmethod
    def points_for_slot(slot: Slot, categories: Mapping[uuid.UUID, Category]) -> int:
        return points_for_slot(slot, categories)

    def record_points(self, points: int, when: date | datetime, allocation: Mapping[str, float]) -> None:
        day = day_key(when)
        points = max(0, int(points))
        self._daily[day] = self._daily.get(day, 0) + points
        day_totals = self._by_category.setdefault(day, {})
        for name, share in split_points(points, allocation).items():
            day_totals[name] = day_totals.get(name, 0) + share
        self._save()
        logger.debug("Recorded %d points for %s.", points, day)

    def retract_points(self, points: int, when: date | datetime, allocation: Mapping[str, float]) -> None:
        """Undo an earlier :meth:`record_points` call with the same arguments."""
        day = day_key(when)
        points = max(0, int(points))
        if day in self._daily:
            self._daily[day] = max(0, self._daily[day] - points)
        day_totals = self._by_category.get(day)
        if day_totals is not None:
            for name, share in split_points(points, allocation).items():
                remaining = day_totals.get(name, 0) - share
                if remaining > 0:
                    day_totals[name] = remaining
                else:
                    day_totals.pop(name, None)
        self._save()
        logger.debug("Retracted %d points for %s.", points, day)

    def daily_total(self, when: date | datetime) -> int:
        return self._daily.get(day_key(when), 0)

    def weekly_total(self, today: date | datetime) -> int:
        last = day_key(today)
        return sum(self.daily_total(day) for day in days_between(last - timedelta(days=6), last))

    def raw_category_totals(self, when: date | datetime) -> dict[str, int]:
        return dict(self._by_category.get(day_key(when), {}))

    def category_totals(
        self, when: date | datetime, categories: Iterable[Category]
    ) -> list[tuple[Category, int]]:
        """Join name-keyed totals back to categories; unmatched names are dropped."""
        stored = self._by_category.get(day_key(when), {})
        joined: list[tuple[Category, int]] = []
        seen: set[str] = set()
        for category in categories:
            if category.name in seen or category.name not in stored:
                continue
            seen.add(category.name)
            joined.append((category, stored[category.name]))
        return joined

    def reset_all(self) -> None:
        self._daily.clear()
        self._by_category.clear()
        self._save()
        logger.info("Points ledger reset.")

    def clear_window(self, first: date | datetime, last: date | datetime) -> None:
        for day in days_between(day_key(first), day_key(last)):
            self._daily.pop(day, None)
            self._by_category.pop(day, None)
        self._save()

    def _save(self) -> None:
        save_blob(self._store, DAILY_POINTS_KEY, encode_daily_points(self._daily))
        save_blob(self._store, CATEGORY_POINTS_KEY, encode_category_points(self._by_category))

"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable

from .app import TrackerContext
from .models import Category, Slot
from .timemath import day_key, days_between, format_countdown, format_range


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, context: TrackerContext) -> None:
        self.context = context

    @property
    def use_24_hour(self) -> bool:
        return self.context.use_24_hour_clock

    def print_daily_summary(self, day: datetime) -> None:
        slots = self.context.completed_slots(day)
        points = self.context.daily_points(day)
        print(f"Summary for {day.strftime('%Y-%m-%d')}")
        print("-" * 40)
        if not slots and not points:
            print("No activity logged for the selected day.")
            return

        logged_seconds = sum(slot.duration_seconds for slot in slots)
        print(f"Logged time: {format_duration(logged_seconds)}")
        print(f"Points:      {points}")

        category_points = self.context.category_points(day)
        if category_points:
            print()
            print("Points by category:")
            for category, total in sorted(category_points, key=lambda item: item[1], reverse=True):
                print(f"  {category.name:<24} {total:>8}")

        if slots:
            print()
            print("Logged slots:")
            for slot in slots:
                print(f"  {self.describe_slot(slot)}")

    def print_weekly_summary(self, now: datetime) -> None:
        today = day_key(now)
        print(f"Weekly points: {self.context.weekly_points(now)}")
        print("-" * 40)
        for day in reversed(days_between(today - timedelta(days=6), today)):
            label = _day_label(day, today)
            print(f"  {label:<20} {self.context.daily_points(day):>8}")

    def print_candidates(self, candidates: list[Slot], now: datetime) -> None:
        if not candidates:
            print("All caught up: no slots awaiting categories.")
        else:
            print(f"{len(candidates)} slot(s) awaiting categories:")
            for slot in candidates:
                when = _day_label(day_key(slot.start_time), day_key(now))
                span = format_range(slot.start_time, slot.end_time, self.use_24_hour)
                print(f"  {slot.start_time:%Y-%m-%d %H:%M}  {when:<10} {span}")
        print()
        print(f"Next log card in: {format_countdown(self.context.time_until_next_slot(now))}")

    def print_history(self, slots: Iterable[Slot], now: datetime) -> None:
        grouped: defaultdict[date, list[Slot]] = defaultdict(list)
        for slot in slots:
            grouped[day_key(slot.start_time)].append(slot)
        if not grouped:
            print("No completed slots.")
            return
        today = day_key(now)
        for day in sorted(grouped, reverse=True):
            print(_day_label(day, today, long=True))
            for slot in grouped[day]:
                print(f"  {self.describe_slot(slot)}")

    def print_categories(self, categories: Iterable[Category], now: datetime) -> None:
        active_ids = {category.id for category in self.context.active_categories(now)}
        for category in categories:
            flags = []
            if category.is_default:
                flags.append("default")
            if category.deleted_at is not None:
                flags.append("deleted" if category.id not in active_ids else "deleted, in grace period")
            suffix = f" ({', '.join(flags)})" if flags else ""
            print(
                f"  {str(category.id)[:8]}  {category.name:<24} {category.color.to_hex():<10}"
                f" {category.points_per_minute:g} pts/min{suffix}"
            )

    def describe_slot(self, slot: Slot) -> str:
        span = format_range(slot.start_time, slot.end_time, self.use_24_hour)
        parts = []
        for category_id, percentage in sorted(
            slot.allocation.items(), key=lambda item: item[1], reverse=True
        ):
            current = self.context.categories.get(category_id)
            name = current.name if current else slot.category_names.get(category_id, "Unknown")
            parts.append(f"{name}: {percentage:g}%")
        return f"{span:<22} {slot.points:>6} pts  {', '.join(parts)}"


def _day_label(day: date, today: date, long: bool = False) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.strftime("%A, %b %d" if long else "%a %b %d")


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"

"""Configuration models and persisted preferences for the tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from .db import KeyValueStore, load_blob, save_blob
from .models import IntervalSetting

logger = logging.getLogger(__name__)

# Fixed intervals offered to the user.
AVAILABLE_INTERVALS: tuple[int, ...] = (1, 2, 3, 4, 6, 12)

# Slot lengths tried by auto mode, largest first.
AUTO_INTERVAL_CHOICES: tuple[int, ...] = (12, 8, 6, 4, 3, 2, 1)

INTERVAL_KEY = "time_interval"
CLOCK_KEY = "use_24_hour_clock"


@dataclass(slots=True)
class TrackerSettings:
    """Tunable constants for scheduling, resets and soft deletes."""

    default_interval_hours: int = 3
    recent_log_window: timedelta = timedelta(hours=36)
    category_grace_period: timedelta = timedelta(days=7)
    candidate_anchor_hour: int = 12
    display_tick: timedelta = timedelta(seconds=1)

    @classmethod
    def from_hours(
        cls,
        recent_window_hours: float,
        grace_days: float | None = None,
        default_interval_hours: int | None = None,
    ) -> "TrackerSettings":
        return cls(
            default_interval_hours=(
                default_interval_hours if default_interval_hours is not None else 3
            ),
            recent_log_window=timedelta(hours=recent_window_hours),
            category_grace_period=timedelta(days=grace_days if grace_days is not None else 7),
        )


class Preferences:
    """User preferences kept in the key-value store."""

    def __init__(self, store: KeyValueStore, settings: TrackerSettings) -> None:
        self._store = store
        self._default_interval = IntervalSetting.fixed(settings.default_interval_hours)
        self._interval = self._load_interval()
        self._use_24_hour_clock = self._load_clock()

    @property
    def interval(self) -> IntervalSetting:
        return self._interval

    @property
    def use_24_hour_clock(self) -> bool:
        return self._use_24_hour_clock

    def set_interval(self, interval: IntervalSetting) -> None:
        self._interval = interval
        save_blob(self._store, INTERVAL_KEY, str(interval).encode("utf-8"))

    def set_24_hour_clock(self, enabled: bool) -> None:
        self._use_24_hour_clock = enabled
        save_blob(self._store, CLOCK_KEY, b"1" if enabled else b"0")

    def _load_interval(self) -> IntervalSetting:
        blob = load_blob(self._store, INTERVAL_KEY)
        if blob is None:
            # First launch stores the default so later reads agree.
            save_blob(self._store, INTERVAL_KEY, str(self._default_interval).encode("utf-8"))
            return self._default_interval
        try:
            return IntervalSetting.parse(blob.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            logger.warning("Ignoring malformed interval setting %r.", blob)
            return self._default_interval

    def _load_clock(self) -> bool:
        blob = load_blob(self._store, CLOCK_KEY)
        if blob is None:
            return False
        return blob.strip() in (b"1", b"true")

"""Domain models for categories and logged time slots."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# Namespace for deterministic candidate ids.
SLOT_NAMESPACE = uuid.UUID("5b0f3c1e-8f43-4d0c-9a55-2f1d6c7a9e10")


@dataclass(frozen=True, slots=True)
class Color:
    """RGBA color with float channels in ``[0, 1]``."""

    red: float
    green: float
    blue: float
    alpha: float = 1.0

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        text = value.strip().lstrip("#")
        if len(text) not in (6, 8):
            raise ValueError(f"Expected #RRGGBB or #RRGGBBAA, got {value!r}")
        channels = [int(text[i : i + 2], 16) / 255.0 for i in range(0, len(text), 2)]
        if len(channels) == 3:
            channels.append(1.0)
        return cls(*channels)

    def to_hex(self) -> str:
        parts = (self.red, self.green, self.blue)
        text = "".join(f"{round(channel * 255):02x}" for channel in parts)
        if self.alpha < 1.0:
            text += f"{round(self.alpha * 255):02x}"
        return f"#{text}"


@dataclass(slots=True)
class Category:
    """A weighted activity category."""

    name: str
    color: Color
    points_per_minute: float
    is_default: bool = False
    deleted_at: Optional[datetime] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(frozen=True, slots=True)
class IntervalSetting:
    """Either a fixed slot length in hours or adaptive ("auto") sizing."""

    hours: Optional[int] = None

    AUTO_LABEL = "auto"

    @classmethod
    def auto(cls) -> "IntervalSetting":
        return cls(hours=None)

    @classmethod
    def fixed(cls, hours: float) -> "IntervalSetting":
        if not math.isfinite(hours):
            raise ValueError(f"Interval must be a finite number of hours, got {hours!r}")
        whole = int(hours)
        if whole < 1:
            raise ValueError(f"Interval must be at least one hour, got {hours!r}")
        return cls(hours=whole)

    @classmethod
    def parse(cls, value: str) -> "IntervalSetting":
        text = value.strip().lower()
        if text == cls.AUTO_LABEL:
            return cls.auto()
        return cls.fixed(float(text))

    @property
    def is_auto(self) -> bool:
        return self.hours is None

    def __str__(self) -> str:
        if self.hours is None:
            return self.AUTO_LABEL
        return str(self.hours)


@dataclass(slots=True)
class Slot:
    """A time range eligible for categorization.

    ``allocation`` maps category id to a percentage of the slot. Committed
    slots also carry the points they earned and the category names they were
    allocated to at commit time.
    """

    start_time: datetime
    end_time: datetime
    allocation: dict[uuid.UUID, float] = field(default_factory=dict)
    is_complete: bool = False
    points: int = 0
    category_names: dict[uuid.UUID, str] = field(default_factory=dict)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def candidate(cls, start_time: datetime, end_time: datetime) -> "Slot":
        slot_id = uuid.uuid5(
            SLOT_NAMESPACE, f"{start_time.isoformat()}|{end_time.isoformat()}"
        )
        return cls(start_time=start_time, end_time=end_time, id=slot_id)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60.0

    def allocation_by_name(self) -> dict[str, float]:
        """Percentages keyed by the category names captured at commit."""
        named: dict[str, float] = {}
        for category_id, percentage in self.allocation.items():
            name = self.category_names.get(category_id)
            if name is None:
                continue
            named[name] = named.get(name, 0.0) + percentage
        return named

"""Stable on-disk schema for persisted blobs.

Every blob is JSON validated through pydantic. Anything that fails to decode
is reported and treated as absent so callers fall back to defaults.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Annotated, Optional, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from .models import Category, Color, Slot

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_local_naive(value: datetime) -> datetime:
    # All in-memory times are naive local times.
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


LocalDatetime = Annotated[datetime, AfterValidator(_as_local_naive)]


class ColorRecord(BaseModel):
    red: float = Field(ge=0.0, le=1.0)
    green: float = Field(ge=0.0, le=1.0)
    blue: float = Field(ge=0.0, le=1.0)
    alpha: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="ignore")


class CategoryRecord(BaseModel):
    id: uuid.UUID
    name: str
    color: ColorRecord
    points_per_minute: float = Field(ge=0.0)
    is_default: bool = False
    deleted_at: Optional[LocalDatetime] = None

    model_config = ConfigDict(extra="ignore")


class AllocationRecord(BaseModel):
    category_id: uuid.UUID
    category_name: str
    percentage: float = Field(ge=0.0, le=100.0)

    model_config = ConfigDict(extra="ignore")


class SlotRecord(BaseModel):
    id: uuid.UUID
    start_time: LocalDatetime
    end_time: LocalDatetime
    allocation: list[AllocationRecord] = Field(default_factory=list)
    is_complete: bool = True
    points: int = 0

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_range(self) -> "SlotRecord":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


CATEGORY_LIST = TypeAdapter(list[CategoryRecord])
SLOT_LIST = TypeAdapter(list[SlotRecord])
DAILY_POINTS = TypeAdapter(dict[date, int])
CATEGORY_POINTS = TypeAdapter(dict[date, dict[str, int]])


def _decode(adapter: TypeAdapter[T], blob: Optional[bytes], label: str) -> Optional[T]:
    if blob is None:
        return None
    try:
        return adapter.validate_json(blob)
    except (ValidationError, ValueError, UnicodeDecodeError) as exc:
        logger.warning("Discarding malformed %s data: %s", label, exc)
        return None


def encode_categories(categories: list[Category]) -> bytes:
    records = [
        CategoryRecord(
            id=category.id,
            name=category.name,
            color=ColorRecord(
                red=category.color.red,
                green=category.color.green,
                blue=category.color.blue,
                alpha=category.color.alpha,
            ),
            points_per_minute=category.points_per_minute,
            is_default=category.is_default,
            deleted_at=category.deleted_at,
        )
        for category in categories
    ]
    return CATEGORY_LIST.dump_json(records)


def decode_categories(blob: Optional[bytes]) -> Optional[list[Category]]:
    records = _decode(CATEGORY_LIST, blob, "category")
    if records is None:
        return None
    return [
        Category(
            id=record.id,
            name=record.name,
            color=Color(
                record.color.red, record.color.green, record.color.blue, record.color.alpha
            ),
            points_per_minute=record.points_per_minute,
            is_default=record.is_default,
            deleted_at=record.deleted_at,
        )
        for record in records
    ]


def encode_slots(slots: list[Slot]) -> bytes:
    records = [
        SlotRecord(
            id=slot.id,
            start_time=slot.start_time,
            end_time=slot.end_time,
            allocation=[
                AllocationRecord(
                    category_id=category_id,
                    category_name=slot.category_names.get(category_id, ""),
                    percentage=percentage,
                )
                for category_id, percentage in slot.allocation.items()
            ],
            is_complete=slot.is_complete,
            points=slot.points,
        )
        for slot in slots
    ]
    return SLOT_LIST.dump_json(records)


def decode_slots(blob: Optional[bytes]) -> Optional[list[Slot]]:
    records = _decode(SLOT_LIST, blob, "slot history")
    if records is None:
        return None
    return [
        Slot(
            id=record.id,
            start_time=record.start_time,
            end_time=record.end_time,
            allocation={entry.category_id: entry.percentage for entry in record.allocation},
            is_complete=record.is_complete,
            points=record.points,
            category_names={
                entry.category_id: entry.category_name for entry in record.allocation
            },
        )
        for record in records
    ]


def encode_daily_points(points: dict[date, int]) -> bytes:
    return DAILY_POINTS.dump_json(points)


def decode_daily_points(blob: Optional[bytes]) -> Optional[dict[date, int]]:
    return _decode(DAILY_POINTS, blob, "daily points")


def encode_category_points(points: dict[date, dict[str, int]]) -> bytes:
    return CATEGORY_POINTS.dump_json(points)


def decode_category_points(blob: Optional[bytes]) -> Optional[dict[date, dict[str, int]]]:
    return _decode(CATEGORY_POINTS, blob, "category points")

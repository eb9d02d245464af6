"""Weighted activity categories with soft deletion."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .db import KeyValueStore, load_blob, save_blob
from .models import Category, Color
from .schema import decode_categories, encode_categories

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "categories"

DEFAULT_POINTS_PER_MINUTE = 5.0

_DEFAULT_CATEGORY_COLORS: tuple[tuple[str, Color], ...] = (
    ("Entertainment", Color(0.0, 0.478, 1.0)),
    ("Sleep", Color(0.686, 0.322, 0.871)),
    ("Physical Activity", Color(0.204, 0.780, 0.349)),
    ("Work", Color(1.0, 0.584, 0.0)),
    ("Relax", Color(0.188, 0.690, 0.780)),
)


def default_categories() -> list[Category]:
    """Build a fresh copy of the built-in category list."""
    return [
        Category(
            name=name,
            color=color,
            points_per_minute=DEFAULT_POINTS_PER_MINUTE,
            is_default=True,
        )
        for name, color in _DEFAULT_CATEGORY_COLORS
    ]


def filter_active(
    categories: Iterable[Category], as_of: datetime, grace_period: timedelta
) -> list[Category]:
    """Drop categories deleted more than ``grace_period`` before ``as_of``."""
    return [
        category
        for category in categories
        if category.deleted_at is None or as_of - category.deleted_at <= grace_period
    ]


class CategoryRegistry:
    """Mutable set of categories, persisted on every change."""

    def __init__(
        self,
        store: KeyValueStore,
        grace_period: timedelta = timedelta(days=7),
    ) -> None:
        self._store = store
        self.grace_period = grace_period
        loaded = decode_categories(load_blob(store, CATEGORIES_KEY))
        if loaded is None:
            self._categories = default_categories()
            self._save()
        else:
            self._categories = loaded

    def all(self) -> list[Category]:
        return list(self._categories)

    def get(self, category_id: uuid.UUID) -> Optional[Category]:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    def find_by_name(self, name: str, as_of: Optional[datetime] = None) -> Optional[Category]:
        """Case-insensitive lookup, limited to active categories when ``as_of`` is given."""
        wanted = name.strip().casefold()
        pool = self.active(as_of) if as_of is not None else self._categories
        for category in pool:
            if category.name.casefold() == wanted:
                return category
        return None

    def active(self, as_of: datetime) -> list[Category]:
        return filter_active(self._categories, as_of, self.grace_period)

    def add(self, name: str, color: Color, points_per_minute: float) -> Category:
        category = Category(
            name=name.strip(),
            color=color,
            points_per_minute=max(0.0, float(points_per_minute)),
            is_default=False,
        )
        self._categories.append(category)
        self._save()
        logger.info("Added category %s (%s).", category.name, category.id)
        return category

    def update(
        self,
        category_id: uuid.UUID,
        name: str,
        color: Color,
        points_per_minute: float,
    ) -> Optional[Category]:
        category = self.get(category_id)
        if category is None:
            logger.debug("Ignoring update for unknown category %s.", category_id)
            return None
        category.name = name.strip()
        category.color = color
        category.points_per_minute = max(0.0, float(points_per_minute))
        self._save()
        return category

    def remove(self, category_id: uuid.UUID, now: datetime) -> Optional[Category]:
        category = self.get(category_id)
        if category is None:
            logger.debug("Ignoring removal of unknown category %s.", category_id)
            return None
        if category.deleted_at is None:
            category.deleted_at = now
            self._save()
            logger.info("Removed category %s.", category.name)
        return category

    def reset_to_defaults(self) -> list[Category]:
        self._categories = default_categories()
        self._save()
        logger.info("Categories reset to defaults.")
        return self.all()

    def _save(self) -> None:
        save_blob(self._store, CATEGORIES_KEY, encode_categories(self._categories))

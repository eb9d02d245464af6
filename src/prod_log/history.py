"""Append-only log of completed slots."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from .db import KeyValueStore, load_blob, save_blob
from .models import Slot
from .schema import decode_slots, encode_slots
from .timemath import day_key, overlaps

logger = logging.getLogger(__name__)

HISTORY_KEY = "completed_slots"


class SlotHistory:
    """Completed slots, newest first, with no two ranges overlapping."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._slots: list[Slot] = decode_slots(load_blob(store, HISTORY_KEY)) or []
        self._sort()

    def insert(self, slot: Slot) -> list[Slot]:
        """Store ``slot``, first dropping every stored slot it overlaps.

        Returns the superseded slots.
        """
        superseded = [
            existing
            for existing in self._slots
            if overlaps(existing.start_time, existing.end_time, slot.start_time, slot.end_time)
        ]
        if superseded:
            logger.info(
                "Slot %s - %s supersedes %d stored slot(s).",
                slot.start_time,
                slot.end_time,
                len(superseded),
            )
        superseded_ids = {existing.id for existing in superseded}
        self._slots = [existing for existing in self._slots if existing.id not in superseded_ids]
        self._slots.append(slot)
        self._sort()
        self._save()
        return superseded

    def all(self) -> list[Slot]:
        return list(self._slots)

    def all_since(self, start: datetime) -> list[Slot]:
        return [slot for slot in self._slots if slot.start_time >= start]

    def for_day(self, day: date | datetime) -> list[Slot]:
        target = day_key(day)
        return [slot for slot in self._slots if day_key(slot.start_time) == target]

    def containing(self, moment: datetime) -> Optional[Slot]:
        for slot in self._slots:
            if slot.start_time <= moment < slot.end_time:
                return slot
        return None

    def clear_since(self, start: datetime) -> list[Slot]:
        removed = [slot for slot in self._slots if slot.start_time >= start]
        if not removed:
            return []
        self._slots = [slot for slot in self._slots if slot.start_time < start]
        self._save()
        logger.info("Cleared %d slot(s) since %s.", len(removed), start)
        return removed

    def _sort(self) -> None:
        self._slots.sort(key=lambda slot: slot.start_time, reverse=True)

    def _save(self) -> None:
        save_blob(self._store, HISTORY_KEY, encode_slots(self._slots))

"""Background timers: a display countdown tick and a slot-boundary trigger."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .app import TrackerContext
from .events import INTERVAL_CHANGED, INTERVAL_CHANGING, SLOT_AVAILABLE

logger = logging.getLogger(__name__)

TickCallback = Callable[[timedelta], None]


class SlotTimers:
    """Run the one-second countdown and the one-shot boundary timer.

    The tick only reads state. The boundary timer regenerates candidates,
    publishes ``slot_available`` and reschedules itself for the following
    boundary.
    """

    def __init__(self, context: TrackerContext, on_tick: Optional[TickCallback] = None) -> None:
        self._context = context
        self._on_tick = on_tick
        self._lock = threading.Lock()
        self._boundary_timer: Optional[threading.Timer] = None
        self._tick_thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._unsubscribers: list[Callable[[], None]] = []

    def start(self) -> None:
        with self._lock:
            if self._stop_event is not None:
                return
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._unsubscribers = [
                self._context.events.subscribe(INTERVAL_CHANGING, lambda _: self.cancel_boundary()),
                self._context.events.subscribe(INTERVAL_CHANGED, lambda _: self.schedule_boundary()),
            ]
            if self._on_tick is not None:
                thread = threading.Thread(target=self._run_tick, args=(stop_event,), daemon=True)
                self._tick_thread = thread
                thread.start()
        self.schedule_boundary()
        logger.info("Slot timers started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._stop_event = None
            for unsubscribe in self._unsubscribers:
                unsubscribe()
            self._unsubscribers = []
            thread = self._tick_thread
            self._tick_thread = None
        self.cancel_boundary()
        if thread is not None:
            thread.join(timeout=5)
        logger.info("Slot timers stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return self._stop_event is not None

    def cancel_boundary(self) -> None:
        with self._lock:
            timer = self._boundary_timer
            self._boundary_timer = None
        if timer is not None:
            timer.cancel()
            logger.debug("Boundary timer cancelled.")

    def schedule_boundary(self, after: Optional[datetime] = None) -> Optional[float]:
        """Arm the one-shot timer for the next boundary; returns the delay in seconds.

        ``after`` is the boundary that just fired, so a timer that wakes a
        little early does not re-arm for the same instant.
        """
        with self._lock:
            if self._stop_event is None:
                return None
            if self._boundary_timer is not None:
                self._boundary_timer.cancel()
            now = self._context.now()
            reference = max(now, after) if after is not None else now
            boundary = self._context.next_boundary(reference)
            delay = max(0.0, (boundary - now).total_seconds())
            timer = threading.Timer(delay, self._fire_boundary, args=(boundary,))
            timer.daemon = True
            self._boundary_timer = timer
            timer.start()
        logger.debug("Next slot boundary at %s (in %.0f seconds).", boundary, delay)
        return delay

    def _fire_boundary(self, boundary: datetime) -> None:
        with self._lock:
            if self._stop_event is None:
                return
            self._boundary_timer = None
        candidates = self._context.candidate_slots(max(self._context.now(), boundary))
        logger.info("Slot boundary reached; %d slot(s) awaiting categories.", len(candidates))
        self._context.events.emit(SLOT_AVAILABLE, candidates)
        self.schedule_boundary(after=boundary)

    def _run_tick(self, stop_event: threading.Event) -> None:
        interval = self._context.settings.display_tick.total_seconds()
        while not stop_event.is_set():
            try:
                self._on_tick(self._context.time_until_next_slot())
            except Exception:
                logger.exception("Countdown display callback failed.")
            stop_event.wait(interval)

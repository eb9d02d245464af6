import threading
from datetime import datetime

from prod_log.app import TrackerContext
from prod_log.events import SLOT_AVAILABLE
from prod_log.models import IntervalSetting
from prod_log.timers import SlotTimers

JUST_BEFORE_THREE = datetime(2026, 3, 10, 14, 59, 59, 900000)


def test_boundary_timer_announces_new_slot(store):
    context = TrackerContext(store, clock=lambda: JUST_BEFORE_THREE)
    fired = threading.Event()
    received = []

    def on_available(candidates):
        received.append(candidates)
        fired.set()

    context.events.subscribe(SLOT_AVAILABLE, on_available)
    timers = SlotTimers(context)
    timers.start()
    try:
        assert fired.wait(timeout=5)
    finally:
        timers.stop()

    newest = received[0][0]
    assert (newest.start_time, newest.end_time) == (
        datetime(2026, 3, 10, 12),
        datetime(2026, 3, 10, 15),
    )
    assert len(received) == 1
    assert not timers.is_running()


def test_display_tick_reports_countdown(store):
    context = TrackerContext(store, clock=lambda: datetime(2026, 3, 10, 14, 5))
    ticked = threading.Event()
    remaining = []

    def on_tick(delta):
        remaining.append(delta)
        ticked.set()

    timers = SlotTimers(context, on_tick=on_tick)
    timers.start()
    try:
        assert ticked.wait(timeout=5)
    finally:
        timers.stop()
    assert remaining[0].total_seconds() == 55 * 60


def test_interval_change_reschedules_boundary(store):
    context = TrackerContext(store, clock=lambda: datetime(2026, 3, 10, 14, 5))
    timers = SlotTimers(context)
    timers.start()
    try:
        assert timers.schedule_boundary() == 55 * 60
        context.set_interval(IntervalSetting.fixed(12))
        assert timers.schedule_boundary() == 9 * 3600 + 55 * 60
    finally:
        timers.stop()
    assert timers.schedule_boundary() is None

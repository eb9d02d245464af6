from datetime import date, datetime, timedelta

from prod_log.app import TrackerContext, allocation_error
from prod_log.events import (
    CATEGORIES_CHANGED,
    INTERVAL_CHANGED,
    INTERVAL_CHANGING,
    LOGS_RESET,
    SLOT_COMMITTED,
)
from prod_log.models import Color, IntervalSetting, Slot

from conftest import NOW


def _candidate(start: datetime, hours: int) -> Slot:
    return Slot.candidate(start, start + timedelta(hours=hours))


def test_commit_awards_points(context, work):
    slot = context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 4), {work.id: 100})

    assert slot is not None
    assert slot.is_complete
    assert slot.points == 1200
    assert context.daily_points(NOW) == 1200
    assert [(category.name, total) for category, total in context.category_points(NOW)] == [
        ("Work", 1200)
    ]
    assert context.completed_slots(date(2026, 3, 10)) == [slot]


def test_commit_splits_points_between_categories(context, work, sleep):
    context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 60, sleep.id: 40})
    totals = {category.name: total for category, total in context.category_points(NOW)}
    assert totals == {"Work": 540, "Sleep": 360}
    assert context.daily_points(NOW) == 900


def test_commit_rejects_bad_allocations(context, work, sleep):
    candidate = _candidate(datetime(2026, 3, 10, 9), 3)
    assert context.commit_slot(candidate, {work.id: 50}) is None
    assert context.commit_slot(candidate, {}) is None
    assert context.commit_slot(candidate, {work.id: 150, sleep.id: -50}) is None
    assert context.commit_slot(candidate, {work.id: float("nan")}) is None
    assert context.commit_slot(candidate, {work.id: float("inf"), sleep.id: -float("inf")}) is None

    context.remove_category(sleep.id, now=NOW - timedelta(days=10))
    assert context.commit_slot(candidate, {work.id: 50, sleep.id: 50}) is None

    assert context.all_completed_slots() == []
    assert context.daily_points(NOW) == 0


def test_allocation_error_messages(work):
    assert allocation_error({work.id: 100}, {work.id}) is None
    assert "not 100" in allocation_error({work.id: 99}, {work.id})
    assert "not active" in allocation_error({work.id: 100}, set())


def test_committing_same_range_twice_counts_once(context, work, sleep):
    candidate = _candidate(datetime(2026, 3, 10, 9), 3)
    context.commit_slot(candidate, {work.id: 100})
    context.commit_slot(candidate, {sleep.id: 100})

    assert len(context.all_completed_slots()) == 1
    assert context.daily_points(NOW) == 900
    assert [(category.name, total) for category, total in context.category_points(NOW)] == [
        ("Sleep", 900)
    ]


def test_committed_slot_leaves_candidates(context, work):
    candidates = context.candidate_slots()
    assert len(candidates) == 8
    context.commit_slot(candidates[0], {work.id: 100})

    remaining = context.candidate_slots()
    assert len(remaining) == 7
    assert candidates[0].id not in {slot.id for slot in remaining}
    assert context.find_candidate(candidates[1].start_time) == candidates[1]


def test_reset_recent_logs(context, work):
    old = context.commit_slot(_candidate(datetime(2026, 3, 8, 9), 3), {work.id: 100})
    early = context.commit_slot(_candidate(datetime(2026, 3, 9, 1), 1), {work.id: 100})
    recent = context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 100})
    seen = []
    context.events.subscribe(LOGS_RESET, seen.append)

    candidates = context.reset_recent_logs()

    stored = {slot.id for slot in context.all_completed_slots()}
    assert stored == {old.id, early.id}
    assert recent.id not in stored
    assert context.daily_points(date(2026, 3, 8)) == 900
    assert context.daily_points(date(2026, 3, 9)) == 300
    assert context.daily_points(date(2026, 3, 10)) == 0
    assert (datetime(2026, 3, 10, 9), datetime(2026, 3, 10, 12)) in [
        (slot.start_time, slot.end_time) for slot in candidates
    ]
    assert seen == [candidates]


def test_reset_today_and_points(context, work):
    context.commit_slot(_candidate(datetime(2026, 3, 9, 18), 3), {work.id: 100})
    context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 100})

    context.reset_today()
    assert [slot.start_time.day for slot in context.all_completed_slots()] == [9]
    assert context.daily_points(NOW) == 0
    assert context.weekly_points() == 900

    context.reset_points()
    assert context.weekly_points() == 0
    assert len(context.all_completed_slots()) == 1


def test_category_commands_emit_events(context):
    changes = []
    context.events.subscribe(CATEGORIES_CHANGED, changes.append)

    reading = context.add_category("Reading", Color(1.0, 0.0, 0.0), 3)
    context.update_category(reading.id, "Books", reading.color, 4)
    context.remove_category(reading.id)
    context.reset_to_defaults()

    assert len(changes) == 4
    assert context.categories.find_by_name("Books") is None


def test_renamed_category_keeps_old_totals_under_old_name(context, work):
    context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 100})
    context.update_category(work.id, "Career", work.color, work.points_per_minute)
    assert context.category_points(NOW) == []
    assert context.ledger.raw_category_totals(NOW) == {"Work": 900}


def test_commit_event_carries_slot(context, work):
    committed = []
    context.events.subscribe(SLOT_COMMITTED, committed.append)
    slot = context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 100})
    assert committed == [slot]


def test_interval_change_is_announced_and_persisted(store):
    context = TrackerContext(store, clock=lambda: NOW)
    order = []
    context.events.subscribe(INTERVAL_CHANGING, lambda old: order.append(("changing", old)))
    context.events.subscribe(INTERVAL_CHANGED, lambda new: order.append(("changed", new)))

    assert context.interval == IntervalSetting.fixed(3)
    context.set_interval(IntervalSetting.auto())

    assert order == [("changing", IntervalSetting.fixed(3)), ("changed", IntervalSetting.auto())]
    assert TrackerContext(store, clock=lambda: NOW).interval.is_auto
    assert context.next_boundary() == datetime(2026, 3, 10, 15)
    assert context.time_until_next_slot() == timedelta(minutes=55)


def test_clock_preference_persists(store):
    context = TrackerContext(store)
    assert context.use_24_hour_clock is False
    context.set_24_hour_clock(True)
    assert TrackerContext(store).use_24_hour_clock is True


def test_failing_handler_does_not_block_commit(context, work):
    def boom(_):
        raise RuntimeError("display went away")

    context.events.subscribe(SLOT_COMMITTED, boom)
    assert context.commit_slot(_candidate(datetime(2026, 3, 10, 9), 3), {work.id: 100}) is not None


def test_non_finite_share_keeps_logged_slot(context, work):
    candidate = _candidate(datetime(2026, 3, 10, 9), 3)
    logged = context.commit_slot(candidate, {work.id: 100})

    assert context.commit_slot(candidate, {work.id: float("nan")}) is None
    assert "not a finite number" in allocation_error({work.id: float("nan")}, {work.id})
    assert context.all_completed_slots() == [logged]
    assert context.daily_points(NOW) == 900

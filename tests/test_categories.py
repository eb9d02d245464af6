import uuid
from datetime import datetime, timedelta

from prod_log.categories import CATEGORIES_KEY, CategoryRegistry
from prod_log.models import Color

RED = Color(1.0, 0.0, 0.0)
T0 = datetime(2026, 3, 1, 9, 0)


def test_empty_store_starts_with_defaults(store):
    registry = CategoryRegistry(store)
    names = [category.name for category in registry.all()]
    assert names == ["Entertainment", "Sleep", "Physical Activity", "Work", "Relax"]
    assert all(category.is_default for category in registry.all())
    assert all(category.points_per_minute == 5 for category in registry.all())


def test_removed_category_has_a_week_of_grace(store):
    registry = CategoryRegistry(store)
    reading = registry.add("Reading", RED, 2)
    registry.remove(reading.id, T0)

    assert reading in registry.active(T0 + timedelta(days=6))
    assert reading not in registry.active(T0 + timedelta(days=8))
    assert registry.get(reading.id) is reading


def test_second_remove_keeps_first_tombstone(store):
    registry = CategoryRegistry(store)
    reading = registry.add("Reading", RED, 2)
    registry.remove(reading.id, T0)
    registry.remove(reading.id, T0 + timedelta(days=3))
    assert reading.deleted_at == T0


def test_update_preserves_identity_and_flags(store):
    registry = CategoryRegistry(store)
    work = registry.find_by_name("work")
    registry.remove(work.id, T0)

    updated = registry.update(work.id, "Deep Work", RED, 8)
    assert updated.id == work.id
    assert updated.is_default
    assert updated.deleted_at == T0
    assert updated.name == "Deep Work"
    assert updated.points_per_minute == 8


def test_unknown_ids_are_ignored(store):
    registry = CategoryRegistry(store)
    before = registry.all()
    assert registry.update(uuid.uuid4(), "Ghost", RED, 1) is None
    assert registry.remove(uuid.uuid4(), T0) is None
    assert [category.name for category in registry.all()] == [
        category.name for category in before
    ]


def test_mutations_persist(store):
    registry = CategoryRegistry(store)
    reading = registry.add("Reading", RED, 2)
    registry.remove(registry.find_by_name("Sleep").id, T0)

    reloaded = CategoryRegistry(store)
    assert reloaded.get(reading.id).color == RED
    assert reloaded.find_by_name("Sleep").deleted_at == T0


def test_find_by_name_respects_active_window(store):
    registry = CategoryRegistry(store)
    relax = registry.find_by_name("Relax")
    registry.remove(relax.id, T0)
    assert registry.find_by_name("relax", as_of=T0 + timedelta(days=1)) is relax
    assert registry.find_by_name("relax", as_of=T0 + timedelta(days=30)) is None


def test_reset_to_defaults_replaces_everything(store):
    registry = CategoryRegistry(store)
    registry.add("Reading", RED, 2)
    registry.reset_to_defaults()
    assert registry.find_by_name("Reading") is None
    assert len(registry.all()) == 5


def test_corrupt_categories_fall_back_to_defaults(store):
    store.set(CATEGORIES_KEY, b'[{"name": "Broken"}]')
    registry = CategoryRegistry(store)
    assert len(registry.all()) == 5


def test_offset_deletion_time_loads_as_local_time(store):
    store.set(
        CATEGORIES_KEY,
        b'[{"id": "%s", "name": "Reading", "color": {"red": 1, "green": 0, "blue": 0},'
        b' "points_per_minute": 2, "deleted_at": "2026-03-01T09:00:00+02:00"}]'
        % str(uuid.uuid4()).encode(),
    )
    registry = CategoryRegistry(store)

    (reading,) = registry.all()
    assert reading.deleted_at.tzinfo is None
    assert registry.active(T0 + timedelta(days=30)) == []

from datetime import datetime

import pytest

from prod_log.app import TrackerContext
from prod_log.db import MemoryKeyValueStore

NOW = datetime(2026, 3, 10, 14, 5)


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def context(store):
    return TrackerContext(store, clock=lambda: NOW)


@pytest.fixture
def work(context):
    return context.categories.find_by_name("Work")


@pytest.fixture
def sleep(context):
    return context.categories.find_by_name("Sleep")

"""
Shared pytest fixtures and configuration for Tandem tests.
"""

import time

import pytest

from tandem import ArrayCollectionOf, Database, ItemStore


class Recorder:
    """Subscribes to an observable and keeps everything it emits."""

    def __init__(self, observable):
        self.values = []
        self.errors = []
        self.completed = False
        self.subscription = observable.subscribe(
            self.values.append, self.errors.append, self._on_completed
        )

    def _on_completed(self):
        self.completed = True

    def dispose(self):
        self.subscription.dispose()


@pytest.fixture
def record():
    """Factory subscribing a Recorder; subscriptions are disposed after the test."""
    recorders = []

    def _record(observable):
        recorder = Recorder(observable)
        recorders.append(recorder)
        return recorder

    yield _record
    for recorder in recorders:
        recorder.dispose()


@pytest.fixture
def wait_until():
    """Poll a condition until it holds or the timeout runs out."""

    def _wait_until(condition, timeout=2.0, interval=0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(interval)
        return condition()

    return _wait_until


# ============================================================================
# RECORDS AND STRATEGIES
# ============================================================================


@pytest.fixture
def init_values():
    return [
        {"price": 10, "name": "item1", "id": "111111", "from": ["cn", "us"]},
        {"price": 100, "name": "item2", "id": "222222", "from": ["cn"]},
        {"price": 2, "name": "item3", "id": "333333", "from": ["cn", "us", "uk"]},
    ]


def by_name(x, y):
    return x["name"] == y["name"]


def merge_over(x, y):
    return {**y, **x}


def name_only(item):
    return {"name": item["name"]}


@pytest.fixture
def strategies():
    """Name-based matching, payload-over-item merging, name projection."""
    return {
        "update_equal": by_name,
        "remove_equal": by_name,
        "to_search": name_only,
        "from_update": merge_over,
    }


# ============================================================================
# STORES
# ============================================================================


@pytest.fixture
def sync_store(init_values):
    store = ItemStore(ArrayCollectionOf(init_values), is_async=False)
    yield store
    store.destroy()


@pytest.fixture
def async_store(init_values):
    store = ItemStore(ArrayCollectionOf(init_values), is_async=True)
    yield store
    store.destroy()


@pytest.fixture
def sync_db(sync_store, strategies):
    return Database(sync_store, **strategies)


@pytest.fixture
def async_db(async_store, strategies):
    return Database(async_store, **strategies)


@pytest.fixture
def reports():
    """An observer collecting every (operation_name, value) it is told about."""

    class Reports(list):
        def report(self, operation_name, value):
            self.append((operation_name, value))

    return Reports()

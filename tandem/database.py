"""
Tandem Database - CRUD Facade over an ItemStore
===============================================

`Database` adds record semantics on top of an `ItemStore`: identifiers are
assigned on insert, and update/remove/search are driven by strategy
functions supplied at construction:

- ``update_equal(payload, item) -> bool``: which item an update payload targets
- ``remove_equal(payload, item) -> bool``: which item a remove payload targets
- ``to_search(item) -> projection``: what search predicates look at
- ``from_update(payload, item) -> item``: how a payload merges into an item

The strategies are kept together in a `DatabaseStrategies` object. Any of them
may be left out; an operation that needs a missing one raises
`ConfigurationError` as soon as it is called.

Like the store it wraps, a Database is synchronous or asynchronous. A
synchronous Database returns plain values. An asynchronous one returns
single-value observables; the change itself is applied when the method is
called, and the observable emits the item as that call wrote it, whatever
happens to the store before subscription.

Replication
-----------

A Database can be given an observer with ``add_communicator``. After every
mutating operation (insert, insert_many, remove, remove_many, update,
update_many, upsert, upsert_many) it calls
``observer.report(operation_name, value)`` with the operation's result. A
failing observer is logged and otherwise ignored.

Example:
    ```python
    from tandem import Database, ItemStore

    store = ItemStore([{"id": "1", "name": "item1", "price": 10}])
    db = Database(
        store,
        update_equal=lambda x, y: x["name"] == y["name"],
        from_update=lambda x, y: {**y, **x},
    )
    db.update({"name": "item1", "price": 12})
    # {'id': '1', 'name': 'item1', 'price': 12}
    ```
"""

import copy
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

import reactivex
from reactivex import Observable
from reactivex import operators as ops

from .collection import ArrayCollectionOf
from .item_store import ItemStore
from .protocols import ReplicationObserver
from .types import Equal, FromUpdate, Item, MaybeObservable, Predicate, ToSearch
from .utils import cmp, new_id, without_keys

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================


class ConfigurationError(Exception):
    """Raised when an operation needs a strategy the Database does not have."""

    pass


# ============================================================================
# KEYS
# ============================================================================


class Mark(str, Enum):
    """Which Database operation a queued task is replayed through."""

    REMOVE = "remove"
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"


class Operation(str, Enum):
    """Names under which mutating operations are reported."""

    INSERT = "insert"
    INSERT_MANY = "insert_many"
    REMOVE = "remove"
    REMOVE_MANY = "remove_many"
    UPDATE = "update"
    UPDATE_MANY = "update_many"
    UPSERT = "upsert"
    UPSERT_MANY = "upsert_many"


# ============================================================================
# STRATEGIES
# ============================================================================


@dataclass(frozen=True)
class DatabaseStrategies:
    """Matching and merging functions of a Database."""

    update_equal: Optional[Equal] = None
    remove_equal: Optional[Equal] = None
    to_search: Optional[ToSearch] = None
    from_update: Optional[FromUpdate] = None

    def __post_init__(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            if value is not None and not callable(value):
                raise ConfigurationError(
                    f"{field.name} must be callable, got {value!r}"
                )

    def require(self, *names: str) -> Tuple[Callable, ...]:
        """Return the named strategies, failing on the first one missing."""
        found = []
        for name in names:
            strategy = getattr(self, name)
            if strategy is None:
                raise ConfigurationError(f"{name}() is undefined.")
            found.append(strategy)
        return tuple(found)


# ============================================================================
# DATABASE
# ============================================================================


class Database:
    """
    Record store with id assignment and pluggable match/merge strategies.

    Args:
        kernel: The ItemStore holding the records. Its mode decides whether
            results are plain values or observables.
        update_equal: Matches update payloads to items.
        remove_equal: Matches remove payloads to items.
        to_search: Projects items for search predicates.
        from_update: Merges an update payload into the matched item.
        share_info_to_communicator: Whether mutations are reported to an
            attached observer.
    """

    def __init__(
        self,
        kernel: ItemStore,
        update_equal: Optional[Equal] = None,
        remove_equal: Optional[Equal] = None,
        to_search: Optional[ToSearch] = None,
        from_update: Optional[FromUpdate] = None,
        share_info_to_communicator: bool = True,
    ):
        self.db_core = kernel
        self.strategies = DatabaseStrategies(
            update_equal=update_equal,
            remove_equal=remove_equal,
            to_search=to_search,
            from_update=from_update,
        )
        self.share_info_to_communicator = share_info_to_communicator
        self.communicator: Optional[ReplicationObserver] = None

    @property
    def is_async(self) -> bool:
        return self.db_core.is_async

    def destroy(self) -> None:
        self.db_core.destroy()

    def add_communicator(self, communicator: ReplicationObserver) -> None:
        """Report every later mutation to ``communicator``."""
        self.communicator = communicator

    def fetch_data(self, item: Item) -> MaybeObservable[ItemStore]:
        """Append ``item`` as is, without assigning an id or reporting it."""
        return self.db_core.extend(ArrayCollectionOf([item]))

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert(self, x: Item) -> MaybeObservable[Item]:
        item, result = self._insert_kernel(x)
        self._report(Operation.INSERT, item)
        return result

    def insert_many(self, *xs: Item) -> MaybeObservable[List[Item]]:
        """Insert all payloads with a single append."""
        items = [self._new_item(x) for x in xs]
        dispatched = self.db_core.extend(ArrayCollectionOf(items))
        self._report(Operation.INSERT_MANY, items)
        return self._resolved(dispatched, items)

    # ------------------------------------------------------------------
    # Removes
    # ------------------------------------------------------------------

    def remove(self, x: Any) -> MaybeObservable[Optional[Item]]:
        """
        Remove the items matching ``x``.

        Returns:
            The removed item (the last one, if several matched) or None.
        """
        (remove_equal,) = self.strategies.require("remove_equal")
        removed: List[Item] = []

        def keep(item: Item) -> bool:
            if remove_equal(x, item):
                removed.append(item)
                return False
            return True

        dispatched = self.db_core.filter(keep)
        result = copy.deepcopy(removed[-1]) if removed else None
        self._report(Operation.REMOVE, result)
        return self._resolved(dispatched, result)

    def remove_many(self, *xs: Any) -> MaybeObservable[List[Item]]:
        """Remove every item matching any payload; items come back in store order."""
        (remove_equal,) = self.strategies.require("remove_equal")
        removed: List[Item] = []

        def keep(item: Item) -> bool:
            if any(remove_equal(x, item) for x in xs):
                removed.append(item)
                return False
            return True

        dispatched = self.db_core.filter(keep)
        result = copy.deepcopy(removed)
        self._report(Operation.REMOVE_MANY, result)
        return self._resolved(dispatched, result)

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    def _projected(self, fn: Predicate) -> Predicate:
        (to_search,) = self.strategies.require("to_search")
        return lambda item: fn(to_search(item))

    def search(self, fn: Predicate) -> MaybeObservable[Optional[Item]]:
        return self.db_core.find(self._projected(fn))

    def search_equal_to(self, x: Any) -> MaybeObservable[Optional[Item]]:
        """First item whose projection contains every field of ``x``."""
        return self.search(lambda y: cmp(x, y))

    def search_many(self, fn: Predicate) -> MaybeObservable[List[Item]]:
        return self.db_core.find_many(self._projected(fn))

    def find_observable(self, fn: Predicate) -> Observable:
        return self.db_core.find_observable(self._projected(fn))

    def find_observable_equal_to(self, x: Any) -> Observable:
        return self.find_observable(lambda y: cmp(x, y))

    def find_observable_many(self, fn: Predicate) -> Observable:
        return self.db_core.find_observable_many(self._projected(fn))

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update(self, x: Any) -> MaybeObservable[Optional[Item]]:
        """
        Merge ``x`` into the item it matches.

        Returns:
            The merged item (the last one, if several matched) or None.
        """
        self.strategies.require("update_equal", "from_update")
        item, result = self._update_kernel(x)
        self._report(Operation.UPDATE, item)
        return result

    def update_many(self, *xs: Any) -> MaybeObservable[List[Optional[Item]]]:
        """Update once per payload; unmatched payloads give None in their slot."""
        self.strategies.require("update_equal", "from_update")
        outcomes = [self._update_kernel(x) for x in xs]
        self._report(Operation.UPDATE_MANY, [item for item, _ in outcomes])
        return self._gathered(outcomes)

    def upsert(self, x: Any) -> MaybeObservable[Item]:
        """Update the matching item, or insert ``x`` (minus its id) if none matches."""
        self.strategies.require("update_equal", "from_update")
        item, result = self._upsert_kernel(x)
        self._report(Operation.UPSERT, item)
        return result

    def upsert_many(self, *xs: Any) -> MaybeObservable[List[Item]]:
        self.strategies.require("update_equal", "from_update")
        outcomes = [self._upsert_kernel(x) for x in xs]
        self._report(Operation.UPSERT_MANY, [item for item, _ in outcomes])
        return self._gathered(outcomes)

    # ------------------------------------------------------------------
    # Kernels
    # ------------------------------------------------------------------

    @staticmethod
    def _new_item(x: Item) -> Item:
        # A payload that already has an id keeps it
        return {"id": new_id(), **x}

    @staticmethod
    def _update_to_insert(x: Any) -> Item:
        return without_keys(x, "id")

    def _insert_kernel(self, x: Item) -> Tuple[Item, MaybeObservable[Item]]:
        item = self._new_item(x)
        dispatched = self.db_core.extend(ArrayCollectionOf([item]))
        return item, self._resolved(dispatched, item)

    def _update_kernel(self, x: Any) -> Tuple[Optional[Item], MaybeObservable]:
        update_equal, from_update = self.strategies.require(
            "update_equal", "from_update"
        )
        merged: List[Item] = []

        def merge(item: Item) -> Item:
            result = from_update(x, item)
            merged.append(result)
            return result

        dispatched = self.db_core.predicate_map(
            merge, lambda item: update_equal(x, item)
        )
        if not merged:
            return None, self._resolved(dispatched, None)
        item = copy.deepcopy(merged[-1])
        return item, self._resolved(dispatched, item)

    def _upsert_kernel(self, x: Any) -> Tuple[Item, MaybeObservable[Item]]:
        item, result = self._update_kernel(x)
        if item is None:
            item, result = self._insert_kernel(self._update_to_insert(x))
        return item, result

    # ------------------------------------------------------------------
    # Result shaping
    # ------------------------------------------------------------------

    def _resolved(self, dispatched, value: Any) -> MaybeObservable:
        """
        ``value`` itself, or an observable emitting it once ``dispatched`` did.

        ``value`` is what this operation's own dispatch wrote, so the async
        result does not depend on writes made before subscription. Each
        subscriber gets its own copy.
        """
        if not self.is_async:
            return value
        return dispatched.pipe(ops.map(lambda _: copy.deepcopy(value)))

    def _gathered(
        self, outcomes: List[Tuple[Optional[Item], MaybeObservable]]
    ) -> MaybeObservable[List[Optional[Item]]]:
        if not self.is_async:
            return [item for item, _ in outcomes]
        if not outcomes:
            return reactivex.just([])
        return reactivex.zip(*(result for _, result in outcomes)).pipe(ops.map(list))

    def _report(self, operation: Operation, value: Any) -> None:
        if self.communicator is None or not self.share_info_to_communicator:
            return
        try:
            self.communicator.report(operation.value, copy.deepcopy(value))
        except Exception:
            logger.exception(
                "Reporting %s to %r failed", operation.value, self.communicator
            )

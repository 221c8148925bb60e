"""
Tandem Protocols - Store, Collection and Database Interfaces
============================================================

This module defines Protocol-based interfaces for the layers of Tandem:

- `Store`: a single state cell with `dispatch`, a replay-latest change feed
  and `destroy`
- `CollectionOf`: an ordered collection with non-mutating transforms
- `ItemStoreLike`: item-level operations over a store holding a collection
- `DatabaseLike`: the CRUD surface a replication target must offer
- `ReplicationObserver`: the hook a Database reports its mutations to

Every store-like object carries an `is_async` flag fixed at construction. It
decides the shape of results: a plain value when false, a single-value
`reactivex.Observable` when true. The protocols describe both shapes with
`MaybeObservable`, the concrete classes pick one.
"""

from typing import Any, Iterator, List, Optional, Protocol, runtime_checkable

from reactivex import Observable

from .types import Endomorphism, Item, MaybeObservable, Predicate, T

# ============================================================================
# STATE CELL
# ============================================================================


@runtime_checkable
class Store(Protocol[T]):
    """
    Protocol for a mutable cell holding one state value.

    Writes go through `dispatch`, reads through `state` or the
    `state_observable` feed, and `destroy` ends the feed.
    """

    @property
    def is_async(self) -> bool:
        ...

    @property
    def state_observable(self) -> Observable:
        """Replay-latest feed of snapshots; completes on destroy."""
        ...

    def dispatch(self, fn: Endomorphism[T]) -> MaybeObservable["Store[T]"]:
        """Replace the state with ``fn(state)``."""
        ...

    def destroy(self) -> None:
        ...


# ============================================================================
# COLLECTION
# ============================================================================


@runtime_checkable
class CollectionOf(Protocol[T]):
    """Ordered collection with structural transforms."""

    def map(self, fn: Endomorphism[T]) -> "CollectionOf[T]":
        ...

    def filter(self, p: Predicate[T]) -> "CollectionOf[T]":
        ...

    def extend(self, xs: "CollectionOf[T]") -> "CollectionOf[T]":
        ...

    def select(self, p: Predicate[T]) -> Optional[T]:
        ...

    def select_many(self, p: Predicate[T]) -> List[T]:
        ...

    def __iter__(self) -> Iterator[T]:
        ...

    def __len__(self) -> int:
        ...


# ============================================================================
# ITEM STORE
# ============================================================================


@runtime_checkable
class ItemStoreLike(Protocol[T]):
    """Item-level operations translated into whole-collection dispatches."""

    @property
    def is_async(self) -> bool:
        ...

    def extend(self, items: CollectionOf[T]) -> MaybeObservable["ItemStoreLike[T]"]:
        ...

    def map(self, fn: Endomorphism[T]) -> MaybeObservable["ItemStoreLike[T]"]:
        ...

    def predicate_map(
        self, fn: Endomorphism[T], p: Predicate[T]
    ) -> MaybeObservable["ItemStoreLike[T]"]:
        ...

    def filter(self, p: Predicate[T]) -> MaybeObservable["ItemStoreLike[T]"]:
        ...

    def find(self, p: Predicate[T]) -> MaybeObservable[Optional[T]]:
        ...

    def find_many(self, p: Predicate[T]) -> MaybeObservable[List[T]]:
        ...

    def find_observable(self, p: Predicate[T]) -> Observable:
        ...

    def find_observable_many(self, p: Predicate[T]) -> Observable:
        ...

    def destroy(self) -> None:
        ...


# ============================================================================
# DATABASE
# ============================================================================


@runtime_checkable
class DatabaseLike(Protocol):
    """
    The write surface a Communicator drains tasks into.

    Each method returns the affected item, either directly or as a
    single-value observable.
    """

    def insert(self, x: Item) -> MaybeObservable[Item]:
        ...

    def update(self, x: Item) -> MaybeObservable[Optional[Item]]:
        ...

    def upsert(self, x: Item) -> MaybeObservable[Item]:
        ...

    def remove(self, x: Item) -> MaybeObservable[Optional[Item]]:
        ...


@runtime_checkable
class ReplicationObserver(Protocol):
    """Receives the name and result of every mutating Database operation."""

    def report(self, operation_name: str, value: Any) -> None:
        ...

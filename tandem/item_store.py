"""
Tandem ItemStore - Item-Level Operations over a Cell
====================================================

`ItemStore` keeps an `ArrayCollectionOf` inside a cell and exposes item-level
operations. Each write is turned into one transform of the whole collection
and dispatched on the cell, so every write publishes exactly one snapshot.

The store is synchronous or asynchronous for its whole life:

| Operation                      | is_async=False      | is_async=True                     |
|--------------------------------|---------------------|-----------------------------------|
| extend/map/predicate_map/filter| the ItemStore       | Observable emitting the ItemStore |
| find                           | item or None        | Observable emitting item or None  |
| find_many                      | list (maybe empty)  | Observable emitting a list        |
| find_observable(_many)         | live Observable     | live Observable                   |

`find` and `find_many` are one-shot lookups. `find_observable` and
`find_observable_many` are live queries: they re-run the predicate on every
snapshot the cell publishes until the subscription is disposed or the store
is destroyed.

Items handed out by lookups are deep copies; changing them does not change
the store.
"""

import copy
from typing import Generic, Iterable, List, Optional, Union

from reactivex import Observable
from reactivex import operators as ops

from .cell import StoreAsync, StoreSync
from .collection import ArrayCollectionOf
from .types import Endomorphism, MaybeObservable, Predicate, T
from .utils import to_either


def _as_collection(
    items: Union[ArrayCollectionOf[T], Iterable[T], None]
) -> ArrayCollectionOf[T]:
    if isinstance(items, ArrayCollectionOf):
        return items
    return ArrayCollectionOf(items)


class ItemStore(Generic[T]):
    """
    Collection-aware store.

    Args:
        init: Initial items, as a collection or any iterable.
        is_async: Selects the cell variant and the shape of every result.
    """

    def __init__(
        self,
        init: Union[ArrayCollectionOf[T], Iterable[T], None] = None,
        is_async: bool = False,
    ):
        self.is_async = is_async
        initial = _as_collection(init)
        self.store_base: Union[StoreSync, StoreAsync] = to_either(
            is_async,
            lambda: StoreAsync(initial),
            lambda: StoreSync(initial),
        )

    def destroy(self) -> None:
        self.store_base.destroy()

    def _to_return(self, dispatched) -> MaybeObservable["ItemStore[T]"]:
        return to_either(
            self.is_async,
            lambda: dispatched.pipe(ops.map(lambda _: self)),
            lambda: self,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def extend(
        self, items: Union[ArrayCollectionOf[T], Iterable[T]]
    ) -> MaybeObservable["ItemStore[T]"]:
        """Append ``items`` after the stored ones."""
        appended = _as_collection(items)
        return self._to_return(
            self.store_base.dispatch(lambda xs: xs.extend(appended))
        )

    def map(self, fn: Endomorphism[T]) -> MaybeObservable["ItemStore[T]"]:
        return self._to_return(self.store_base.dispatch(lambda xs: xs.map(fn)))

    def predicate_map(
        self, fn: Endomorphism[T], p: Predicate[T]
    ) -> MaybeObservable["ItemStore[T]"]:
        """Apply ``fn`` to the items satisfying ``p``; keep the others as they are."""
        return self._to_return(
            self.store_base.dispatch(lambda xs: xs.map(lambda x: fn(x) if p(x) else x))
        )

    def filter(self, p: Predicate[T]) -> MaybeObservable["ItemStore[T]"]:
        """Keep only the items satisfying ``p``."""
        return self._to_return(self.store_base.dispatch(lambda xs: xs.filter(p)))

    # ------------------------------------------------------------------
    # One-shot reads
    # ------------------------------------------------------------------

    def find(self, p: Predicate[T]) -> MaybeObservable[Optional[T]]:
        if not self.is_async:
            return copy.deepcopy(self.store_base.state.select(p))
        return self.store_base.state_observable.pipe(
            ops.first(),
            ops.map(lambda xs: copy.deepcopy(xs.select(p))),
        )

    def find_many(self, p: Predicate[T]) -> MaybeObservable[List[T]]:
        if not self.is_async:
            return copy.deepcopy(self.store_base.state.select_many(p))
        return self.store_base.state_observable.pipe(
            ops.first(),
            ops.map(lambda xs: copy.deepcopy(xs.select_many(p))),
        )

    # ------------------------------------------------------------------
    # Live queries
    # ------------------------------------------------------------------

    def find_observable(self, p: Predicate[T]) -> Observable:
        """Emit the first match of every snapshot; snapshots without one are skipped."""
        return self.store_base.state_observable.pipe(
            ops.map(lambda xs: xs.select(p)),
            ops.filter(lambda x: x is not None),
            ops.map(copy.deepcopy),
        )

    def find_observable_many(self, p: Predicate[T]) -> Observable:
        """Emit the matches of every snapshot, including empty lists."""
        return self.store_base.state_observable.pipe(
            ops.map(lambda xs: copy.deepcopy(xs.select_many(p))),
        )

    def __repr__(self) -> str:
        mode = "async" if self.is_async else "sync"
        return f"ItemStore({mode}, {self.store_base.state!r})"

"""
Tandem Collection - Ordered Item Collection
===========================================

`ArrayCollectionOf` is the state type Tandem item stores keep inside a cell:
an ordered sequence of items with structural transforms.

`map`, `filter` and `extend` build a new collection and leave the receiver
untouched; `select` and `select_many` only read. This keeps every collection
that was published by a cell a stable snapshot.
"""

import copy
from typing import Generic, Iterable, Iterator, List, Optional

from .types import Endomorphism, Predicate, T


class ArrayCollectionOf(Generic[T]):
    """
    List-backed collection.

    Args:
        init: Items of the collection, in order. The collection keeps its own
            list, so later changes to ``init`` do not leak in.
    """

    def __init__(self, init: Optional[Iterable[T]] = None):
        self.container: List[T] = list(init) if init is not None else []

    def map(self, fn: Endomorphism[T]) -> "ArrayCollectionOf[T]":
        return ArrayCollectionOf(fn(x) for x in self.container)

    def filter(self, p: Predicate[T]) -> "ArrayCollectionOf[T]":
        return ArrayCollectionOf(x for x in self.container if p(x))

    def select(self, p: Predicate[T]) -> Optional[T]:
        """First item satisfying ``p``, or None."""
        for x in self.container:
            if p(x):
                return x
        return None

    def select_many(self, p: Predicate[T]) -> List[T]:
        """Every item satisfying ``p``, in order."""
        return [x for x in self.container if p(x)]

    def extend(self, xs: "ArrayCollectionOf[T]") -> "ArrayCollectionOf[T]":
        """New collection with the items of ``xs`` appended. No deduplication."""
        return ArrayCollectionOf(self.container + list(xs))

    @property
    def size(self) -> int:
        return len(self.container)

    def to_list(self) -> List[T]:
        """Detached deep copy of the items."""
        return copy.deepcopy(self.container)

    def __len__(self) -> int:
        return len(self.container)

    def __iter__(self) -> Iterator[T]:
        return iter(self.container)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArrayCollectionOf):
            return self.container == other.container
        return NotImplemented

    def __repr__(self) -> str:
        return f"ArrayCollectionOf({self.container!r})"

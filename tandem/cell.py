"""
Tandem Cell - Synchronous and Asynchronous State Containers
===========================================================

This module provides the two state cells every Tandem store is built on.

A cell holds one snapshot of some state. It is changed only by `dispatch`,
which takes a transform function ``state -> state`` and publishes its result
as the new snapshot. Every snapshot is also pushed into `state_observable`, a
replay-latest feed: new subscribers receive the current snapshot right away,
then every later one, until `destroy` completes the feed.

The two variants differ only in what `dispatch` returns:

- **StoreSync** returns the cell itself, so calls can be chained.
- **StoreAsync** returns a single-value `reactivex.Observable` that emits the
  cell and completes. The transform has already run when `dispatch` returns;
  the observable only signals completion.

Snapshots are deep copied on the way in (initial state and each transform
result), so no caller keeps a reference into the published state.

Example:
    ```python
    from tandem import StoreAsync, StoreSync

    counter = StoreSync(0)
    counter.dispatch(lambda n: n + 1).dispatch(lambda n: n * 10)
    print(counter.state)  # 10

    remote = StoreAsync(0)
    remote.state_observable.subscribe(print)  # 0
    remote.dispatch(lambda n: n + 5).subscribe(lambda cell: print(cell.state))
    ```
"""

import copy
import logging
import threading
from typing import Generic

import reactivex
from reactivex import Observable
from reactivex.subject import BehaviorSubject

from .types import Endomorphism, T

logger = logging.getLogger(__name__)


class _Cell(Generic[T]):
    """Shared state handling for both cell variants."""

    is_async: bool = False

    def __init__(self, init_state: T) -> None:
        self._lock = threading.RLock()
        self._state: T = copy.deepcopy(init_state)
        self._subject: BehaviorSubject = BehaviorSubject(self._state)
        # Read-only view so subscribers cannot push into the subject
        self.state_observable: Observable = reactivex.create(
            lambda observer, scheduler=None: self._subject.subscribe(
                observer, scheduler=scheduler
            )
        )

    @property
    def state(self) -> T:
        return self._state

    def _apply(self, fn: Endomorphism[T]) -> None:
        with self._lock:
            self._state = copy.deepcopy(fn(self._state))
            self._subject.on_next(self._state)

    def destroy(self) -> None:
        """Complete the change feed. The cell must not be used afterwards."""
        logger.debug("Destroying %s", self)
        self._subject.on_completed()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._state!r})"


class StoreSync(_Cell[T]):
    """State cell whose `dispatch` completes before returning the cell."""

    is_async = False

    def dispatch(self, fn: Endomorphism[T]) -> "StoreSync[T]":
        self._apply(fn)
        return self


class StoreAsync(_Cell[T]):
    """State cell whose `dispatch` signals completion through an observable."""

    is_async = True

    def dispatch(self, fn: Endomorphism[T]) -> Observable:
        """
        Apply ``fn`` to the state.

        Returns:
            Observable emitting this cell once, then completing.
        """
        self._apply(fn)
        return reactivex.just(self)

"""
Tandem Communicator - Queue-Based Replication Between Databases
===============================================================

The Communicator copies changes from a synchronous primary Database to an
asynchronous secondary one. It keeps a queue of *marked tasks*: item payloads
tagged with the operation (``insert``, ``update``, ``upsert`` or ``remove``)
to replay on the secondary.

How tasks flow:

1. The primary Database reports each mutation (``db.add_communicator(c)``),
   and `report` turns the result into marked tasks on the queue. Tasks can
   also be queued directly with `submit`.
2. `connect` watches `task_subject`, the feed of the queue. Every non-empty
   queue snapshot pushed into it starts a drain.
3. `auto_time_interval_watch` pushes the queue into the feed on a timer; the
   feed can also be pushed by hand (``communicator.connect().on_next(...)``).
4. A drain (`update_kernel_async`) first takes its tasks off the front of the
   queue, then replays them on the secondary. Tasks queued while a drain runs
   stay for the next one. A failing task is logged; it does not stop the
   other tasks and is not retried.

`preload` goes the other way: it looks one item up in the secondary and
writes it into the primary's store (update, else insert with its id kept),
to seed the primary at startup.

Example:
    ```python
    primary_store = ItemStore([], is_async=False)
    secondary = Database(ItemStore([], is_async=True), update_equal, remove_equal,
                         to_search, from_update)
    communicator = Communicator(primary_store, secondary)

    primary = Database(primary_store, update_equal, remove_equal, to_search, from_update)
    primary.add_communicator(communicator)
    communicator.connect()
    communicator.auto_time_interval_watch(0.5).subscribe()

    primary.insert({"name": "alex"})  # reaches the secondary on the next tick
    ```
"""

import copy
import logging
import threading
from typing import Any, Callable, List, Optional, Union

import reactivex
from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import SchedulerBase
from reactivex.subject import BehaviorSubject, Subject

from .database import Database, Mark, Operation
from .item_store import ItemStore
from .protocols import DatabaseLike
from .types import Equal, FromUpdate, Item, MarkedTask, Predicate

logger = logging.getLogger(__name__)


# ============================================================================
# EXCEPTIONS
# ============================================================================


class UnknownMarkError(ValueError):
    """Raised when a queued task carries a mark that is not a known operation."""

    pass


# Reported operation -> mark of the tasks it produces
_OPERATION_MARKS = {
    Operation.INSERT: Mark.INSERT,
    Operation.INSERT_MANY: Mark.INSERT,
    Operation.REMOVE: Mark.REMOVE,
    Operation.REMOVE_MANY: Mark.REMOVE,
    Operation.UPDATE: Mark.UPDATE,
    Operation.UPDATE_MANY: Mark.UPDATE,
    Operation.UPSERT: Mark.UPSERT,
    Operation.UPSERT_MANY: Mark.UPSERT,
}

_MANY_OPERATIONS = {
    Operation.INSERT_MANY,
    Operation.REMOVE_MANY,
    Operation.UPDATE_MANY,
    Operation.UPSERT_MANY,
}


def _as_observable(result: Any) -> Observable:
    if isinstance(result, Observable):
        return result
    return reactivex.just(result)


def default_update_equal(x: Item, y: Item) -> bool:
    """Same ``type`` and same ``id``."""
    return x.get("type") == y.get("type") and x.get("id") == y.get("id")


def default_from_update(x: Item, y: Item) -> Item:
    """Fields of the payload over the fields of the item."""
    return {**y, **x}


class Communicator:
    """
    One-way replication bridge from a synchronous store to an async Database.

    Args:
        db_sync_kernel: ItemStore of the primary (synchronous) Database.
            `preload` writes into it.
        db_async: Target of the drains. Anything with insert/update/upsert/
            remove works; results that are not observables are wrapped.
        scheduler: Scheduler for `auto_time_interval_watch` timers. Defaults
            to the reactivex timeout scheduler.
    """

    def __init__(
        self,
        db_sync_kernel: ItemStore,
        db_async: DatabaseLike,
        scheduler: Optional[SchedulerBase] = None,
    ):
        self.db_sync_kernel = db_sync_kernel
        self.db_async = db_async
        self.scheduler = scheduler

        self._lock = threading.RLock()
        self.pending_tasks: List[MarkedTask] = []
        self.task_subject: BehaviorSubject = BehaviorSubject(self.pending_tasks)

        # Stops the connect() watcher and interval timers
        self._release = Subject()

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def submit(self, task: MarkedTask) -> None:
        """Queue one marked task."""
        with self._lock:
            self.pending_tasks.append(task)
        logger.debug("Queued %s task", task.get("mark"))

    def report(self, operation_name: str, value: Any) -> None:
        """
        Queue the result of a Database operation for replication.

        Results of ``*_many`` operations queue one task per item. ``None``
        results (nothing matched) and non-mutating operations queue nothing.
        """
        try:
            operation = Operation(operation_name)
        except ValueError:
            return
        mark = _OPERATION_MARKS[operation]
        values = value if operation in _MANY_OPERATIONS else [value]
        for item in values:
            if item is not None:
                self.submit({**item, "mark": mark})

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def connect(self) -> BehaviorSubject:
        """
        Drain every non-empty queue snapshot pushed into `task_subject`.

        Returns:
            `task_subject`, for pushing snapshots by hand.
        """

        def on_tasks(tasks: List[MarkedTask]) -> None:
            if tasks:
                self.update_kernel_async(tasks)

        self.task_subject.pipe(
            ops.map(copy.deepcopy),
            ops.take_until(self._release),
        ).subscribe(
            on_tasks,
            lambda error: logger.error("Task feed failed: %s", error),
        )
        return self.task_subject

    def auto_time_interval_watch(self, interval: float) -> Observable:
        """
        Push the queue into `task_subject` every ``interval`` seconds.

        The returned observable is cold: the timer starts on subscription and
        stops on `destroy`.
        """
        return reactivex.interval(interval, scheduler=self.scheduler).pipe(
            ops.take_until(self._release),
            ops.do_action(lambda _: self._publish()),
        )

    def _publish(self) -> None:
        # The drain runs inside on_next; the queue lock must be free by then
        with self._lock:
            snapshot = list(self.pending_tasks)
        self.task_subject.on_next(snapshot)

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    def update_kernel_async(self, tasks: List[MarkedTask]) -> None:
        """
        Replay ``tasks`` on the async Database.

        Exactly ``len(tasks)`` entries are dropped from the front of the queue
        before anything is replayed. Each task runs on its own; failures are
        logged and the task counts as consumed.
        """
        with self._lock:
            del self.pending_tasks[: len(tasks)]
        logger.info("Draining %d task(s)", len(tasks))

        resolved = []
        for task in tasks:
            try:
                result = self._task_resolve(task)
            except Exception:
                logger.exception("Task %r could not be replayed", task)
                continue
            resolved.append(result.pipe(ops.catch(self._task_failed(task))))

        if resolved:
            reactivex.merge(*resolved).subscribe(
                on_error=lambda error: logger.error("Drain failed: %s", error)
            )

    @staticmethod
    def _task_failed(task: MarkedTask) -> Callable[[Exception, Observable], Observable]:
        def handler(error: Exception, _source: Observable) -> Observable:
            logger.error("Task %r failed: %s", task, error)
            return reactivex.empty()

        return handler

    def _task_resolve(self, task: MarkedTask) -> Observable:
        residual = {key: value for key, value in task.items() if key != "mark"}
        try:
            mark = Mark(task.get("mark"))
        except ValueError:
            raise UnknownMarkError(
                f"task type not identified: {task.get('mark')!r}"
            ) from None

        if mark is Mark.REMOVE:
            result = self.db_async.remove(residual)
        elif mark is Mark.INSERT:
            result = self.db_async.insert(residual)
        elif mark is Mark.UPDATE:
            result = self.db_async.update(residual)
        else:
            result = self.db_async.upsert(residual)

        return _as_observable(result)

    # ------------------------------------------------------------------
    # Preloading
    # ------------------------------------------------------------------

    def preload(
        self,
        item_or_fn: Union[Item, Predicate],
        update_equal: Equal = default_update_equal,
        from_update: FromUpdate = default_from_update,
    ) -> Observable:
        """Seed the primary store with one item looked up in the async Database."""
        return self.update_kernel_sync(item_or_fn, update_equal, from_update)

    def update_kernel_sync(
        self,
        item_or_fn: Union[Item, Predicate],
        update_equal: Equal,
        from_update: FromUpdate,
    ) -> Observable:
        """
        Look an item up in the async Database and write it into the primary.

        Args:
            item_or_fn: A predicate over the search projection, or a literal
                compared with `cmp` against it.
            update_equal: Matches the found item to a primary record.
            from_update: Merges the found item into that record.

        Returns:
            Observable emitting the written item, or None if nothing matched.
        """
        db_interface = Database(
            self.db_sync_kernel,
            update_equal=update_equal,
            from_update=from_update,
            share_info_to_communicator=False,
        )
        if callable(item_or_fn):
            found = self.db_async.search(item_or_fn)
        else:
            found = self.db_async.search_equal_to(item_or_fn)

        def seed(item: Optional[Item]) -> Optional[Item]:
            if item is None:
                return None
            # Inserted as is so the item keeps its remote id
            updated = db_interface.update(item)
            return updated if updated is not None else db_interface.insert(item)

        return _as_observable(found).pipe(ops.map(seed))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Complete the task feed and stop the watchers."""
        self.task_subject.on_completed()
        self._release.on_next(None)

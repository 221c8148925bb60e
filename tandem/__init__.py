"""
Tandem - Dual-Mode Reactive Stores with Queue Replication
=========================================================

In-memory record stores that work the same way in a synchronous mode (plain
return values) and an asynchronous mode (single-value reactivex observables),
with live queries over their change feeds and a Communicator that replays a
primary store's mutations onto a secondary one.

Layers, bottom-up:

- `StoreSync` / `StoreAsync`: a state cell with dispatch and a change feed
- `ArrayCollectionOf`: the ordered collection kept in a cell
- `ItemStore`: item-level operations over a cell holding a collection
- `Database`: CRUD with id assignment and pluggable match/merge strategies
- `Communicator`: queue-based replication from a sync to an async Database
"""

from .cell import StoreAsync, StoreSync
from .collection import ArrayCollectionOf
from .communicator import Communicator, UnknownMarkError
from .database import (
    ConfigurationError,
    Database,
    DatabaseStrategies,
    Mark,
    Operation,
)
from .item_store import ItemStore
from .protocols import (
    CollectionOf,
    DatabaseLike,
    ItemStoreLike,
    ReplicationObserver,
    Store,
)
from .utils import cmp, to_either

__version__ = "0.1.0"

__all__ = [
    # Cells
    "StoreSync",
    "StoreAsync",
    # Collections and stores
    "ArrayCollectionOf",
    "ItemStore",
    # Database
    "Database",
    "DatabaseStrategies",
    "Mark",
    "Operation",
    # Replication
    "Communicator",
    # Protocols
    "Store",
    "CollectionOf",
    "ItemStoreLike",
    "DatabaseLike",
    "ReplicationObserver",
    # Utilities
    "cmp",
    "to_either",
    # Exceptions
    "ConfigurationError",
    "UnknownMarkError",
]

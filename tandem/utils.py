"""
Tandem Utilities
================

Small helpers shared across the package:

- `cmp`: structural comparison used to match partial payloads against records
- `to_either`: picks the synchronous or asynchronous branch of an operation
- `new_id`: fresh identifiers for inserted items
- `without_keys`: structural copy of a record minus some fields
"""

import copy
import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, List, TypeVar

A = TypeVar("A")
B = TypeVar("B")


def _is_object_like(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    return isinstance(value, Sequence) and not isinstance(
        value, (str, bytes, bytearray)
    )


def _keys(value: Any) -> List[Any]:
    if isinstance(value, Mapping):
        return list(value.keys())
    return list(range(len(value)))


def _has_key(value: Any, key: Any) -> bool:
    if isinstance(value, Mapping):
        return key in value
    return isinstance(key, int) and 0 <= key < len(value)


def cmp(x: Any, y: Any) -> bool:
    """
    Compare two values structurally.

    Primitives compare with ``==``. Two object-like values (mappings, or
    sequences keyed by index) are equal when every key of ``x`` is present in
    ``y`` with a recursively equal value. Keys that only ``y`` has are ignored,
    so ``cmp(partial, record)`` holds whenever ``partial`` is a subset of
    ``record``. A primitive never equals an object-like value.

    NOTE: the check is one-directional; ``cmp(a, b)`` and ``cmp(b, a)`` can
    differ. Database matching relies on this to compare partial payloads with
    full records.

    Examples:
        >>> cmp({"id": 1}, {"id": 1, "name": "a"})
        True
        >>> cmp({"id": 1, "name": "a"}, {"id": 1})
        False
    """
    x_object = _is_object_like(x)
    y_object = _is_object_like(y)

    if not x_object and not y_object:
        return x == y

    if x_object and y_object:
        for key in _keys(x):
            if not _has_key(y, key):
                return False
            if not cmp(x[key], y[key]):
                return False
        return True

    return False


def to_either(p: bool, tfn: Callable[[], A], ffn: Callable[[], B]):
    """Evaluate ``tfn`` when ``p`` holds, ``ffn`` otherwise."""
    return tfn() if p else ffn()


def new_id() -> str:
    """Return a fresh random identifier (UUID4, hex with dashes)."""
    return str(uuid.uuid4())


def without_keys(record: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    """Deep copy of ``record`` with ``keys`` left out."""
    return {
        key: copy.deepcopy(value) for key, value in record.items() if key not in keys
    }


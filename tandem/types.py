"""
Tandem Common Types - Shared Type Definitions
=============================================

This module contains the type aliases shared by the cell, item store, database
and communicator layers. Keeping them in one place avoids circular imports
between the concrete implementations and the protocol definitions.
"""

from typing import Any, Callable, Dict, TypeVar, Union

from reactivex import Observable

# ============================================================================
# TYPE VARIABLES
# ============================================================================

T = TypeVar("T")
S = TypeVar("S")  # search projection
U = TypeVar("U")  # update payload

# ============================================================================
# FUNCTION TYPES
# ============================================================================

Endomorphism = Callable[[T], T]
Predicate = Callable[[T], bool]

# Strategy signatures used by Database
Equal = Callable[[Any, Any], bool]
ToSearch = Callable[[Any], Any]
FromUpdate = Callable[[Any, Any], Any]

# ============================================================================
# RECORD TYPES
# ============================================================================

# Database items are open records keyed by field name
Item = Dict[str, Any]
MarkedTask = Dict[str, Any]

# ============================================================================
# RESULT TYPES
# ============================================================================

# A plain value for synchronous stores, a single-value stream for async ones
MaybeObservable = Union[T, Observable]

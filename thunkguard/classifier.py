"""
Cell Classifier.

Decides, for one object, whether it already holds a concrete value or is
still a pending computation. The answer is deliberately shallow: it says
nothing about the object's children.

Realized:
    - any ordinary Python object
    - a forced cell (followed transparently to its value)
    - a generator or coroutine that has finished

Deferred:
    - a pending Thunk, Apply or Select cell
    - a generator, coroutine or async generator that still holds a frame
    - a live ``map``, ``filter`` or ``zip`` iterator
    - a code object (compiled but not executed)

An explicit cell of an unknown kind is a hard failure. Defaulting it to
realized would hide exactly the leaks this package exists to find.
"""

from __future__ import annotations

import gc
import types
from collections import deque
from enum import Enum
from typing import Any

from .cells import Cell, CellKind
from .violation import ClassificationError


class Classification(Enum):
    REALIZED = "realized"
    DEFERRED = "deferred"


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

DEFERRED_CELL_KINDS = frozenset({
    CellKind.THUNK,
    CellKind.APPLICATION,
    CellKind.SELECTOR,
})

# Builtin iterators that still hold the computation they will perform
DEFERRED_ITERATOR_TYPES: tuple[type, ...] = (map, filter, zip)

# Frame attribute per native suspendable type
SUSPENDABLE_FRAMES: dict[type, str] = {
    types.GeneratorType: "gi_frame",
    types.CoroutineType: "cr_frame",
    types.AsyncGeneratorType: "ag_frame",
}

# Objects that can never reach a deferred cell
ATOMIC_TYPES: tuple[type, ...] = (
    type(None), bool, int, float, complex, str, bytes, bytearray,
    range, type, types.ModuleType, types.BuiltinFunctionType,
)

# Py_TPFLAGS_HEAPTYPE: set on classes created by a class statement
HEAP_TYPE_FLAG = 1 << 9


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify(ref: Any) -> Classification:
    """
    Classify the outermost cell of ``ref``.

    Raises:
        ClassificationError: If ``ref`` is an explicit cell of unknown kind
    """
    while isinstance(ref, Cell):
        kind = ref.kind
        if kind in DEFERRED_CELL_KINDS:
            return Classification.DEFERRED
        if kind is not CellKind.INDIRECTION:
            raise ClassificationError(ref, f"unsupported cell kind {kind!r}")
        ref = ref.peek()

    frame_attr = SUSPENDABLE_FRAMES.get(type(ref))
    if frame_attr is not None:
        if getattr(ref, frame_attr) is not None:
            return Classification.DEFERRED
        return Classification.REALIZED

    if isinstance(ref, DEFERRED_ITERATOR_TYPES) or isinstance(ref, types.CodeType):
        return Classification.DEFERRED

    return Classification.REALIZED


def is_deferred(ref: Any) -> bool:
    return classify(ref) is Classification.DEFERRED


def realized_value(ref: Any) -> Any:
    """
    Follow forwarding cells to the value they hold.

    Precondition: ``classify(ref)`` returned REALIZED.
    """
    while isinstance(ref, Cell):
        ref = ref.peek()
    return ref


# =============================================================================
# CHILD ENUMERATION
# =============================================================================

def children(ref: Any) -> tuple[Any, ...]:
    """
    Enumerate the objects directly reachable from ``ref``.

    A pending cell has no children worth visiting: it is already a
    deferred cell and every caller stops there.
    """
    if isinstance(ref, Cell):
        if classify(ref) is Classification.DEFERRED:
            return ()
        return (realized_value(ref),)

    if isinstance(ref, ATOMIC_TYPES):
        return ()

    if isinstance(ref, dict):
        items = tuple(item for pair in ref.items() for item in pair)
        return items + _instance_children(ref)

    if isinstance(ref, (list, tuple, set, frozenset, deque)):
        return tuple(ref) + _instance_children(ref)

    if isinstance(ref, types.FunctionType):
        captured = [cell.cell_contents for cell in (ref.__closure__ or ()) if _cell_is_set(cell)]
        captured.extend(ref.__defaults__ or ())
        captured.extend((ref.__kwdefaults__ or {}).values())
        return tuple(captured)

    if isinstance(ref, types.MethodType):
        return (ref.__self__, ref.__func__)

    if type(ref) in SUSPENDABLE_FRAMES or isinstance(ref, types.CodeType):
        return ()

    if _is_plain_class(type(ref)):
        return _instance_children(ref)

    # Builtin base: state held in C slots (partial args, exception args)
    return _instance_children(ref) + _referents(ref)


def _referents(ref: Any) -> tuple[Any, ...]:
    return tuple(
        obj for obj in gc.get_referents(ref)
        if not isinstance(obj, (type, types.ModuleType))
    )


def _is_plain_class(cls: type) -> bool:
    """True if every class below ``object`` in the MRO is defined in Python."""
    return all(klass.__flags__ & HEAP_TYPE_FLAG for klass in cls.__mro__[:-1])


def _cell_is_set(cell: types.CellType) -> bool:
    try:
        cell.cell_contents
    except ValueError:
        return False
    return True


def _slot_names(cls: type) -> tuple[str, ...]:
    names: list[str] = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(s for s in slots if s not in ("__dict__", "__weakref__"))
    return tuple(names)


def _instance_children(ref: Any) -> tuple[Any, ...]:
    found: list[Any] = list(getattr(ref, "__dict__", {}).values())
    for name in _slot_names(type(ref)):
        try:
            found.append(getattr(ref, name))
        except AttributeError:
            continue
    return tuple(found)

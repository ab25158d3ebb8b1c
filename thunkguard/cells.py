"""
Explicit deferred cells.

Python evaluates eagerly, so a pending computation only exists where it is
made explicit. This module provides that carrier: a box holding either a
materialized value or a not-yet-invoked producer, with an explicit force.

Cell kinds:
    THUNK        — a deferred producer that has not run yet
    APPLICATION  — a function applied to arguments, not yet executed
    SELECTOR     — a field selection on another value, not yet evaluated
    INDIRECTION  — a forced cell, transparently forwarding to its value

Forcing drops the producer so the captured environment can be released.
That release is exactly what a retained, never-forced cell prevents.
"""

from __future__ import annotations

from enum import Enum
from functools import partial
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

# Marks a cell whose producer has not run
_PENDING = object()


class CellKind(Enum):
    """Representation of one explicit cell."""
    THUNK = "thunk"
    APPLICATION = "application"
    SELECTOR = "selector"
    INDIRECTION = "indirection"


class Cell:
    """Base class for explicit memory cells understood by the classifier."""

    @property
    def kind(self) -> CellKind:
        raise NotImplementedError

    def peek(self) -> Any:
        """Return the held value without forcing. Only valid once realized."""
        raise NotImplementedError

    def force(self) -> Any:
        raise NotImplementedError


class Thunk(Cell, Generic[T]):
    """
    A deferred computation of a ``T``.

    ``of`` optionally records the type the producer will yield. It is only
    used to name the cell in a trail when nothing else says what it holds.

    Forcing is idempotent. Two threads forcing the same thunk at once may
    both run the producer; either result is kept.
    """

    _pending_kind = CellKind.THUNK

    def __init__(self, producer: Callable[[], T], *, of: Optional[type] = None):
        if not callable(producer):
            raise TypeError(f"thunk producer must be callable, got {type(producer).__name__}")
        self._producer: Optional[Callable[[], T]] = producer
        self._value: Any = _PENDING
        self.of = of

    @classmethod
    def ready(cls, value: T, *, of: Optional[type] = None) -> Thunk[T]:
        """Build an already-forced cell around ``value``."""
        cell = cls.__new__(cls)
        cell._producer = None
        cell._value = value
        cell.of = of
        return cell

    @property
    def is_forced(self) -> bool:
        return self._value is not _PENDING

    @property
    def kind(self) -> CellKind:
        if self._value is _PENDING:
            return self._pending_kind
        return CellKind.INDIRECTION

    def peek(self) -> T:
        value = self._value
        if value is _PENDING:
            raise ValueError("thunk has not been forced")
        return value

    def force(self) -> T:
        value = self._value
        if value is _PENDING:
            producer = self._producer
            if producer is None:
                # Forced concurrently between the two reads
                return self._value
            value = producer()
            while isinstance(value, Cell):
                value = value.force()
            self._value = value
            self._producer = None
        return value

    def __repr__(self) -> str:
        name = type(self).__name__
        if self._value is _PENDING:
            return f"<{name} pending>"
        return f"<{name} = {self._value!r}>"


class Apply(Thunk[T]):
    """A saturated function application that has not been executed."""

    _pending_kind = CellKind.APPLICATION

    def __init__(self, fn: Callable[..., T], *args: Any, of: Optional[type] = None, **kwargs: Any):
        super().__init__(partial(fn, *args, **kwargs), of=of)


class Select(Thunk[T]):
    """Selection of attribute ``field`` from ``source``, not yet evaluated."""

    _pending_kind = CellKind.SELECTOR

    def __init__(self, source: Any, field: str, *, of: Optional[type] = None):
        self.field = field
        super().__init__(lambda: getattr(force(source), field), of=of)


def lazy(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Apply[T]:
    """Defer ``fn(*args, **kwargs)``."""
    return Apply(fn, *args, **kwargs)


def ready(value: T) -> Thunk[T]:
    """Wrap an already-computed value."""
    return Thunk.ready(value)


def force(value: Any) -> Any:
    """Force ``value`` if it is a cell, otherwise return it unchanged."""
    if isinstance(value, Cell):
        return value.force()
    return value

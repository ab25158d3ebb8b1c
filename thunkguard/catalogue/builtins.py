"""
Built-in adapters.

Wires standard-library types to one of the fixed strategies:

    Shallow (WHNF)     numbers, strings, bytes, None, enums, paths, UUIDs,
                       functions, classes, lazy iterators
    Normal form        date and time values
    Elements           list, set, frozenset, deque, tuple[T, ...], abcs
    Keys and values    dict and mapping abcs
    Positional product tuple[A, B, ...]
    Always allowed     tracebacks, frames, modules
    Transparent        Thunk[T] checks as T

Lazy iterators are registered shallow on purpose: a live generator is
itself a deferred cell, so the outer classification already reports it.
"""

from __future__ import annotations

import collections
import collections.abc
import datetime
import functools
import re
import types
import uuid
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from pathlib import PurePath
from typing import Any

from ..cells import Thunk
from ..dispatch import Checker, StructuralChecker
from ..shapes import positional
from ..strategies import (
    AllowThunkChecker,
    ElementsChecker,
    KeysAndValuesChecker,
    NormalFormChecker,
    WhnfChecker,
    collection_elements,
)


# =============================================================================
# TYPE TABLES
# =============================================================================

LEAF_TYPES: dict[type, str] = {
    type(None): "None",
    bool: "bool",
    int: "int",
    float: "float",
    complex: "complex",
    str: "str",
    bytes: "bytes",
    bytearray: "bytearray",
    memoryview: "memoryview",
    range: "range",
    Decimal: "Decimal",
    Fraction: "Fraction",
    uuid.UUID: "UUID",
    re.Pattern: "Pattern",
    type: "type",
}

# Subclasses are named after themselves
INHERITED_LEAF_TYPES: tuple[type, ...] = (Enum, PurePath)

TIME_TYPES: dict[type, str] = {
    datetime.date: "date",
    datetime.time: "time",
    datetime.datetime: "datetime",
    datetime.timedelta: "timedelta",
    datetime.timezone: "timezone",
}

FUNCTION_TYPES: tuple[type, ...] = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    functools.partial,
)

LAZY_ITERATOR_TYPES: dict[type, str] = {
    types.GeneratorType: "generator",
    types.CoroutineType: "coroutine",
    types.AsyncGeneratorType: "async_generator",
    map: "map",
    filter: "filter",
    zip: "zip",
}

# Values that cannot retain application data
ALLOWED_TYPES: tuple[type, ...] = (types.TracebackType, types.FrameType, types.ModuleType)

ELEMENT_ORIGINS: tuple[type, ...] = (
    list,
    set,
    frozenset,
    collections.deque,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)

MAPPING_ORIGINS: tuple[type, ...] = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)

ITERATOR_ORIGINS: tuple[type, ...] = (
    collections.abc.Iterator,
    collections.abc.Generator,
    collections.abc.AsyncIterator,
    collections.abc.AsyncGenerator,
    collections.abc.Coroutine,
    collections.abc.Awaitable,
)


# =============================================================================
# GENERIC FACTORIES
# =============================================================================

def _arg(catalogue, args: tuple, index: int) -> Checker:
    if len(args) > index:
        return catalogue.resolve(args[index])
    return catalogue.dynamic


def elements_factory(catalogue, origin: type, args: tuple) -> Checker:
    """``list[T]`` and friends: check each element as ``T``."""
    return ElementsChecker(origin.__name__, _arg(catalogue, args, 0), collection_elements)


def mapping_factory(catalogue, origin: type, args: tuple) -> Checker:
    """``dict[K, V]`` and friends: check every key as ``K`` and value as ``V``."""
    return KeysAndValuesChecker(
        origin.__name__,
        _arg(catalogue, args, 0),
        _arg(catalogue, args, 1),
    )


def tuple_factory(catalogue, origin: type, args: tuple) -> Checker:
    """
    ``tuple[T, ...]`` is a homogeneous container; ``tuple[A, B]`` a
    positional product; a bare ``tuple`` a container of anything.
    """
    if not args:
        return ElementsChecker(origin.__name__, catalogue.dynamic)
    if len(args) == 2 and args[1] is Ellipsis:
        return ElementsChecker(origin.__name__, catalogue.resolve(args[0]))
    if args == ((),):
        args = ()
    return StructuralChecker(origin.__name__, positional(args), catalogue=catalogue)


def thunk_factory(catalogue, origin: type, args: tuple) -> Checker:
    """A ``Thunk[T]`` field holds a ``T`` that may not have been computed."""
    return _arg(catalogue, args, 0)


def callable_factory(catalogue, origin: type, args: tuple) -> Checker:
    return WhnfChecker("function")


def iterator_factory(catalogue, origin: type, args: tuple) -> Checker:
    return WhnfChecker(origin.__name__)


def type_factory(catalogue, origin: type, args: tuple) -> Checker:
    return WhnfChecker("type")


# =============================================================================
# INSTALLATION
# =============================================================================

def install_builtins(catalogue) -> None:
    """Register every built-in adapter on ``catalogue``."""
    for cls, name in LEAF_TYPES.items():
        catalogue.register(cls, WhnfChecker(name))
    for cls in INHERITED_LEAF_TYPES:
        catalogue.register(cls, WhnfChecker(cls.__name__, by_subtype=True), inherit=True)

    for cls, name in TIME_TYPES.items():
        catalogue.register(cls, NormalFormChecker(name))

    for cls in FUNCTION_TYPES:
        catalogue.register(cls, WhnfChecker("function"))

    for cls, name in LAZY_ITERATOR_TYPES.items():
        catalogue.register(cls, WhnfChecker(name))

    for cls in ALLOWED_TYPES:
        catalogue.register(cls, AllowThunkChecker(cls.__name__), inherit=True)

    for origin in ELEMENT_ORIGINS:
        catalogue.register_generic(origin, elements_factory)
    for origin in MAPPING_ORIGINS:
        catalogue.register_generic(origin, mapping_factory)
    for origin in ITERATOR_ORIGINS:
        catalogue.register_generic(origin, iterator_factory)

    catalogue.register_generic(tuple, tuple_factory)
    catalogue.register_generic(Thunk, thunk_factory)
    catalogue.register_generic(collections.abc.Callable, callable_factory)
    catalogue.register_generic(type, type_factory)

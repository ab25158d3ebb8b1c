"""
Structural Shapes.

A shape describes a type as data, so that one traversal algorithm can walk
any value without per-type code:

    Leaf      — nothing inside can be deferred once the outer cell is realized
    Product   — ordered fields, named or positional, each with an annotation
    Sum       — a family of alternatives, each itself a Product

Shapes are derived from declared structure:
    - dataclasses        -> Product of ``dataclasses.fields``
    - NamedTuple         -> Product of ``_fields``
    - tuple[A, B, ...]   -> positional Product
    - a base class whose variants are dataclasses -> Sum

Annotations are resolved lazily with ``typing.get_type_hints`` so that
recursive types and postponed annotations work; field *names* are available
immediately, which is all exemption validation needs.
"""

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Sequence

from .violation import UnreachableAlternative


@dataclass(frozen=True)
class FieldShape:
    """One field of a product: by name, or by position when unnamed."""
    name: Optional[str]
    position: int
    annotation: Any = Any

    def read(self, value: Any) -> Any:
        if self.name is not None:
            return getattr(value, self.name)
        return value[self.position]

    @property
    def label(self) -> str:
        return self.name if self.name is not None else f"#{self.position}"


class Shape:
    """Base of the three structural shapes."""


@dataclass(frozen=True)
class Leaf(Shape):
    pass


@dataclass(frozen=True)
class Product(Shape):
    fields: tuple[FieldShape, ...] = ()
    owner: Optional[type] = None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.name is not None)


@dataclass(frozen=True)
class Sum(Shape):
    """
    Alternatives are the derivable subclasses of ``base``, or exactly
    ``variants`` when the family is closed explicitly.
    """
    base: type
    variants: Optional[tuple[type, ...]] = None

    def select(self, value: Any) -> type:
        """
        The single active alternative for ``value``.

        Raises:
            UnreachableAlternative: If ``value`` is none of the alternatives
        """
        cls = type(value)
        if self.variants is not None:
            if cls in self.variants:
                return cls
        elif issubclass(cls, self.base) and is_derivable(cls):
            return cls
        raise UnreachableAlternative(self.base.__name__, value)

    def alternative(self, value: Any) -> Product:
        return derive_product(self.select(value))


# =============================================================================
# DERIVATION
# =============================================================================

def is_namedtuple(cls: type) -> bool:
    return isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, "_fields")


def is_derivable(cls: Any) -> bool:
    """True if a Product can be derived from the declared structure of ``cls``."""
    return isinstance(cls, type) and (dataclasses.is_dataclass(cls) or is_namedtuple(cls))


def field_names(cls: type) -> tuple[str, ...]:
    """
    Declared field names of ``cls``, without resolving annotations.

    Raises:
        TypeError: If ``cls`` is neither a dataclass nor a NamedTuple
    """
    if dataclasses.is_dataclass(cls):
        return tuple(f.name for f in dataclasses.fields(cls))
    if is_namedtuple(cls):
        return tuple(cls._fields)
    raise TypeError(f"cannot derive a shape for {cls.__name__}: not a dataclass or NamedTuple")


@lru_cache(maxsize=None)
def derive_product(cls: type) -> Product:
    """
    Product shape of a dataclass or NamedTuple, annotations resolved.

    Unresolvable annotations (e.g. names only defined in a function body)
    degrade to ``Any`` and are checked by runtime type.
    """
    names = field_names(cls)
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints = {}
    return Product(
        fields=tuple(
            FieldShape(name=name, position=i, annotation=hints.get(name, Any))
            for i, name in enumerate(names)
        ),
        owner=cls,
    )


def positional(annotations: Sequence[Any]) -> Product:
    """Product of unnamed fields, e.g. for ``tuple[int, str]``."""
    return Product(
        fields=tuple(
            FieldShape(name=None, position=i, annotation=ann)
            for i, ann in enumerate(annotations)
        ),
    )

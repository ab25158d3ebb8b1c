"""
Participation modes.

Class decorators choosing how values of a type are checked:

    derive           — walk declared fields (dataclass / NamedTuple), or the
                       variants of a sum base; ``allow=`` names fields that
                       may stay deferred
    allow_thunks_in  — ``derive`` with an exemption set
    check_whnf       — shallow only
    check_elements   — only the logical elements of a container
    use_normal_form  — everything reachable, no shape needed
    allow_thunk      — the whole value may stay deferred

Exemptions are validated while the decorator runs:

    @derive(allow=("cahce",))      # typo
    @dataclass
    class Session:
        cache: dict

raises ExemptionError at class definition, so the module never imports.
Apply the decorator above ``@dataclass``.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Iterable, Optional, Sequence

from .catalogue import DEFAULT_CATALOGUE, Catalogue
from .dispatch import StructuralChecker
from .policy import ExemptionPolicy
from .shapes import Sum, field_names, is_derivable
from .strategies import (
    AllowThunkChecker,
    AnnotationChecker,
    ElementsChecker,
    NormalFormChecker,
    WhnfChecker,
)
from .violation import ExemptionError


def _target(catalogue: Optional[Catalogue]) -> Catalogue:
    return catalogue if catalogue is not None else DEFAULT_CATALOGUE


def _decorate(cls, wrap):
    # Support both @mode and @mode(...)
    return wrap if cls is None else wrap(cls)


def derive(
    cls: Optional[type] = None,
    *,
    allow: Iterable[str] = (),
    name: Optional[str] = None,
    variants: Optional[Sequence[type]] = None,
    catalogue: Optional[Catalogue] = None,
):
    """
    Check values by walking their declared structure.

    On a dataclass or NamedTuple this derives a product; on any other
    class it declares a sum whose alternatives are its dataclass
    subclasses (or exactly ``variants``). Every variant is reported under
    the sum's name.

    Raises:
        ExemptionError: If ``allow`` names a field the record does not have
        TypeError: If ``variants`` are given for a record, a variant is
            not a derivable subclass of the base, or the class declares
            fields but ``@dataclass`` has not been applied yet
    """
    def wrap(klass: type) -> type:
        target = _target(catalogue)
        label = name or klass.__name__
        allowed = tuple(allow)

        if is_derivable(klass):
            if variants is not None:
                raise TypeError(f"{label}: variants only apply to a sum base")
            policy = ExemptionPolicy.for_fields(label, field_names(klass), allowed)
            checker = StructuralChecker(label, owner=klass, policy=policy, catalogue=target)
            target.register(klass, checker, policy=policy)
            return klass

        if inspect.get_annotations(klass):
            # Field annotations but no dataclass machinery yet
            raise TypeError(
                f"{label} declares fields but is not a dataclass or NamedTuple; "
                f"apply @derive above @dataclass"
            )
        if allowed:
            # A sum base has no fields; exemptions belong on its variants
            raise ExemptionError(label, allowed, ())
        closed = None
        if variants is not None:
            closed = tuple(variants)
            for variant in closed:
                if not (is_derivable(variant) and issubclass(variant, klass)):
                    raise TypeError(
                        f"{label}: variant {variant.__name__} is not a dataclass "
                        f"or NamedTuple subclass of {klass.__name__}"
                    )
        checker = StructuralChecker(label, Sum(klass, closed), catalogue=target)
        target.register(klass, checker, inherit=True)
        return klass

    return _decorate(cls, wrap)


def allow_thunks_in(*fields: str, catalogue: Optional[Catalogue] = None):
    """Derive, allowing the named fields to remain deferred."""
    return derive(allow=fields, catalogue=catalogue)


def check_whnf(
    cls: Optional[type] = None,
    *,
    name: Optional[str] = None,
    catalogue: Optional[Catalogue] = None,
):
    """Only require the outer cell to be realized."""
    def wrap(klass: type) -> type:
        _target(catalogue).register(
            klass, WhnfChecker(name or klass.__name__), inherit=True,
        )
        return klass

    return _decorate(cls, wrap)


def use_normal_form(
    cls: Optional[type] = None,
    *,
    name: Optional[str] = None,
    catalogue: Optional[Catalogue] = None,
):
    """Require everything reachable to be realized; for opaque types."""
    def wrap(klass: type) -> type:
        _target(catalogue).register(
            klass, NormalFormChecker(name or klass.__name__), inherit=True,
        )
        return klass

    return _decorate(cls, wrap)


def allow_thunk(cls: Optional[type] = None, *, catalogue: Optional[Catalogue] = None):
    """
    Never report anything inside values of this type.

    Only for values that provably cannot retain data they should not.
    """
    def wrap(klass: type) -> type:
        _target(catalogue).register(klass, AllowThunkChecker(klass.__name__), inherit=True)
        return klass

    return _decorate(cls, wrap)


def check_elements(
    elements: Callable[[Any], Iterable[Any]],
    *,
    element_type: Any = Any,
    name: Optional[str] = None,
    catalogue: Optional[Catalogue] = None,
):
    """
    Check only the logical elements of a container type.

    For containers whose internal structure is lazy on purpose, such as a
    finger tree, while their elements must still be realized.
    """
    def wrap(klass: type) -> type:
        target = _target(catalogue)
        element = AnnotationChecker(target, element_type)
        target.register(
            klass,
            ElementsChecker(name or klass.__name__, element, elements),
            inherit=True,
        )
        return klass

    return wrap

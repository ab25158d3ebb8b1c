"""
Participation strategies other than structural derivation.

    WhnfChecker          — shallow only: the outer cell must be realized
    ElementsChecker      — the logical elements of a container
    KeysAndValuesChecker — keys and values of a mapping
    NormalFormChecker    — every reachable cell, without a shape
    AllowThunkChecker    — the whole value may remain deferred
    DynamicChecker       — no declared type; dispatch on the runtime type
    UnionChecker         — one of several declared types
    AnnotationChecker    — a declared type resolved on first use
"""

from __future__ import annotations

import typing
from collections.abc import Collection
from typing import Any, Callable, Iterable, Literal, Optional, Tuple

from .cells import Cell
from .classifier import Classification, classify, realized_value
from .context import Context
from .deep import is_normal_form
from .dispatch import Checker, StructuralChecker, check_keys_and_values, check_values
from .policy import ExemptionPolicy
from .shapes import Leaf
from .violation import UnreachableAlternative, Violation


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

# Frame pushed below a type checked with the deep strategy
NORMAL_FORM_FRAME = "..."

# Frame for a deferred cell when nothing declares what it will hold
DEFERRED_FRAME = "Thunk"

# Display name of the dynamic checker
ANY_FRAME = "Any"


class WhnfChecker(StructuralChecker):
    """
    Only check that the outer cell is realized.

    For types that cannot hold further deferred cells (numbers, strings)
    and for those whose insides must not be inspected (functions). The
    shape is a Leaf, so the structural walk stops at the outer cell.
    With ``by_subtype`` an inherited registration names each subclass.
    """
    mode = "whnf"

    def __init__(self, name: Optional[str], *, by_subtype: bool = False):
        super().__init__(name, Leaf())
        self.by_subtype = by_subtype

    def for_subtype(self, cls: type) -> Checker:
        if self.by_subtype:
            return WhnfChecker(cls.__name__)
        return self


class ElementsChecker(Checker):
    """Check the elements of a container, not its internal structure."""
    mode = "elements"

    def __init__(
        self,
        name: Optional[str],
        element: Checker,
        elements: Callable[[Any], Iterable[Any]] = iter,
    ):
        super().__init__(name)
        self.element = element
        self.elements = elements

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return check_values(context, self.element, self.elements(value))


class KeysAndValuesChecker(Checker):
    mode = "keys-and-values"

    def __init__(
        self,
        name: Optional[str],
        key: Checker,
        value: Checker,
        items: Callable[[Any], Iterable[Tuple[Any, Any]]] = lambda mapping: mapping.items(),
    ):
        super().__init__(name)
        self.key = key
        self.value = value
        self.items = items

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return check_keys_and_values(context, self.key, self.value, self.items(value))


class NormalFormChecker(Checker):
    """
    Demand that everything reachable is realized.

    Trades field-level attribution for universality: the trail ends in
    ``...`` under the type name rather than naming the offending field.
    """
    mode = "normal-form"

    def __init__(self, name: Optional[str], *, by_subtype: bool = False):
        super().__init__(name)
        self.by_subtype = by_subtype

    def for_subtype(self, cls: type) -> Checker:
        if self.by_subtype:
            return NormalFormChecker(cls.__name__)
        return self

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        if is_normal_form(value):
            return None
        return context.violation(NORMAL_FORM_FRAME)


class AllowThunkChecker(Checker):
    """
    The whole value may be deferred; nothing is classified or read.

    Use sparingly: allowing a value to stay deferred also allows whatever
    it was computed from to stay alive.
    """
    mode = "allow"

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self.policy = ExemptionPolicy.exempt_everything(name or "*")

    def check(self, context: Context, value: Any) -> Optional[Violation]:
        return None

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return None


class DynamicChecker(Checker):
    """
    Checker for ``Any``: classify first, then dispatch on the runtime type.

    A deferred cell has no runtime type yet; it is named after the type its
    cell declares (``Thunk(..., of=T)``) or after the native lazy object.
    """
    mode = "dynamic"

    def __init__(self, catalogue: Any):
        super().__init__(ANY_FRAME)
        self.catalogue = catalogue

    def deferred_name(self, value: Any) -> str:
        while isinstance(value, Cell):
            if value.of is not None:
                return getattr(value.of, "__name__", str(value.of))
            if classify(value) is Classification.DEFERRED:
                return DEFERRED_FRAME
            value = value.peek()
        return type(value).__name__

    def check(self, context: Context, value: Any) -> Optional[Violation]:
        if classify(value) is Classification.DEFERRED:
            return context.violation(self.deferred_name(value))
        realized = realized_value(value)
        return self.catalogue.checker_for_value(realized).check(context, realized)

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return self.catalogue.checker_for_value(value).inner(context, value)


class UnionChecker(Checker):
    """
    A value of one of several declared types.

    Transparent: the selected alternative pushes its own frame, the union
    pushes none. Only a deferred cell is reported under the union's name.
    """
    mode = "union"

    def __init__(self, name: str, alternatives: Tuple[Tuple[Any, Checker], ...]):
        super().__init__(name)
        self.alternatives = alternatives

    def check(self, context: Context, value: Any) -> Optional[Violation]:
        if classify(value) is Classification.DEFERRED:
            return context.violation(self.name)
        realized = realized_value(value)
        for annotation, checker in self.alternatives:
            if _matches(realized, annotation):
                return checker.check(context, realized)
        raise UnreachableAlternative(self.name, realized)

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return self.check(context, value)


class AnnotationChecker(Checker):
    """A declared type resolved through the catalogue the first time it is needed."""

    def __init__(self, catalogue: Any, annotation: Any):
        super().__init__(None)
        self.catalogue = catalogue
        self.annotation = annotation

    @property
    def target(self) -> Checker:
        return self.catalogue.resolve(self.annotation)

    def check(self, context: Context, value: Any) -> Optional[Violation]:
        return self.target.check(context, value)

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        return self.target.inner(context, value)


def collection_elements(value: Any) -> Iterable[Any]:
    """
    Elements of a sized container; nothing for a one-shot iterator.

    Iterating an iterator would consume it, so only collections are opened.
    """
    if isinstance(value, Collection):
        return iter(value)
    return ()


def _matches(value: Any, annotation: Any) -> bool:
    if annotation is Any or annotation is object or isinstance(annotation, typing.TypeVar):
        return True
    if annotation is None or annotation is type(None):
        return value is None
    origin = typing.get_origin(annotation)
    if origin is Literal:
        return value in typing.get_args(annotation)
    if origin is typing.Annotated:
        return _matches(value, typing.get_args(annotation)[0])
    if isinstance(origin, type) and issubclass(origin, Cell):
        # The value was unwrapped before matching
        args = typing.get_args(annotation)
        return _matches(value, args[0]) if args else True
    if isinstance(annotation, type) and issubclass(annotation, Cell):
        return True
    target = origin if origin is not None else annotation
    if not isinstance(target, type):
        return True
    try:
        return isinstance(value, target)
    except TypeError:
        return False

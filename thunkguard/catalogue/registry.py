"""
Adapter Catalogue — which strategy checks which type.

Resolution order for an annotation:
    Any / object / TypeVar / unresolved name -> dynamic dispatch
    Annotated[T, ...], ClassVar[T], Final[T]  -> T
    NewType                                   -> its supertype
    Union / Optional / A | B                  -> union of alternatives
    Literal[...]                              -> shallow
    generic alias X[args]                     -> factory registered for X
    class                                     -> see ``checker_for_type``

Resolution order for a class:
    1. exact registration
    2. inherited registration on any base (sum bases, enums, ...)
    3. automatic derivation for dataclasses and NamedTuples
    4. generic factory on any base, with no arguments (bare ``list``)
    5. fallback: exempt everything, warned once (or CatalogueError if strict)
"""

from __future__ import annotations

import logging
import types
import typing
from typing import Any, Callable, ClassVar, Final, Literal, Optional, Union

from ..dispatch import Checker, StructuralChecker
from ..policy import ExemptionPolicy
from ..shapes import field_names, is_derivable
from ..strategies import AllowThunkChecker, DynamicChecker, UnionChecker, WhnfChecker
from ..violation import CatalogueError

log = logging.getLogger("thunkguard.catalogue")

# factory(catalogue, origin, args) -> Checker
GenericFactory = Callable[["Catalogue", type, tuple], Checker]


class Catalogue:
    """
    Registry of participation strategies.

    ``strict`` turns the exempt-everything fallback for unknown types into
    a ``CatalogueError``.
    """

    def __init__(self, *, strict: bool = False):
        self.strict = strict
        self._exact: dict[type, Checker] = {}
        self._inherited: dict[type, Checker] = {}
        self._generic: dict[Any, GenericFactory] = {}
        self._policies: dict[type, ExemptionPolicy] = {}
        self._resolved: dict[Any, Checker] = {}
        self._warned: set[type] = set()
        self.dynamic = DynamicChecker(self)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(
        self,
        cls: type,
        checker: Checker,
        *,
        inherit: bool = False,
        policy: Optional[ExemptionPolicy] = None,
    ) -> Checker:
        """Register ``checker`` for ``cls`` (and its subclasses if ``inherit``)."""
        (self._inherited if inherit else self._exact)[cls] = checker
        if policy is not None:
            self._policies[cls] = policy
        self._resolved.clear()
        return checker

    def register_generic(self, origin: Any, factory: GenericFactory) -> None:
        """Register a factory for parameterised annotations ``origin[...]``."""
        self._generic[origin] = factory
        self._resolved.clear()

    def policy_for(self, cls: type) -> ExemptionPolicy:
        policy = self._policies.get(cls)
        if policy is None:
            policy = ExemptionPolicy.for_fields(cls.__name__, field_names(cls))
        return policy

    def registrations(self) -> list[tuple[str, str, str]]:
        """(type, mode, display name) for every class registration."""
        rows = []
        for table, suffix in ((self._exact, ""), (self._inherited, "+")):
            for cls, checker in table.items():
                rows.append((_qualified(cls) + suffix, checker.mode, checker.name or "*"))
        for origin in self._generic:
            rows.append((_qualified(origin) + "[...]", "generic", _qualified(origin)))
        return sorted(rows)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self, annotation: Any) -> Checker:
        """The checker for values declared with ``annotation``."""
        try:
            return self._resolved[annotation]
        except KeyError:
            pass
        except TypeError:
            # Unhashable annotation metadata
            return self._resolve(annotation)
        checker = self._resolve(annotation)
        self._resolved[annotation] = checker
        return checker

    def checker_for_value(self, value: Any) -> Checker:
        return self.resolve(type(value))

    def _resolve(self, annotation: Any) -> Checker:
        if annotation is Any or annotation is object:
            return self.dynamic
        if isinstance(annotation, (typing.TypeVar, str, typing.ForwardRef)):
            return self.dynamic
        if annotation is None:
            annotation = type(None)

        supertype = getattr(annotation, "__supertype__", None)
        if supertype is not None:
            return self.resolve(supertype)

        origin = typing.get_origin(annotation)
        args = typing.get_args(annotation)
        if origin in (typing.Annotated, ClassVar, Final):
            return self.resolve(args[0])
        if origin is Union or origin is types.UnionType:
            return self._union(annotation, args)
        if origin is Literal:
            return WhnfChecker("Literal")
        if origin is not None:
            factory = self._factory_for(origin)
            if factory is not None:
                return factory(self, origin, args)
            if isinstance(origin, type):
                return self.checker_for_type(origin)
            return self.dynamic

        if isinstance(annotation, type):
            return self.checker_for_type(annotation)
        return self.dynamic

    def checker_for_type(self, cls: type) -> Checker:
        exact = self._exact.get(cls)
        if exact is not None:
            return exact
        for base in cls.__mro__:
            inherited = self._inherited.get(base)
            if inherited is not None:
                return inherited.for_subtype(cls)
        if is_derivable(cls):
            return StructuralChecker(
                cls.__name__,
                owner=cls,
                policy=self.policy_for(cls),
                catalogue=self,
            )
        factory = self._factory_for(cls)
        if factory is not None:
            return factory(self, cls, ())
        return self._fallback(cls)

    def _factory_for(self, origin: Any) -> Optional[GenericFactory]:
        for base in getattr(origin, "__mro__", (origin,)):
            factory = self._generic.get(base)
            if factory is not None:
                return factory
        return None

    def _union(self, annotation: Any, args: tuple) -> Checker:
        alternatives = tuple((arg, self.resolve(arg)) for arg in args)
        return UnionChecker(_union_label(args), alternatives)

    def _fallback(self, cls: type) -> Checker:
        if self.strict:
            raise CatalogueError(cls)
        if cls not in self._warned:
            self._warned.add(cls)
            log.warning(
                "no adapter for %s; values of this type are not checked",
                _qualified(cls),
            )
        return AllowThunkChecker(cls.__name__)


def _qualified(obj: Any) -> str:
    module = getattr(obj, "__module__", None)
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None) or repr(obj)
    if module in (None, "builtins"):
        return name
    return f"{module}.{name}"


def _short(annotation: Any) -> str:
    if annotation is type(None):
        return "None"
    if isinstance(annotation, type):
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


def _union_label(args: tuple) -> str:
    members = [a for a in args if a is not type(None)]
    if len(members) == 1 and len(args) == 2:
        return f"Optional[{_short(members[0])}]"
    return " | ".join(_short(a) for a in args)

"""
Traversal Dispatcher.

One algorithm, written once, that checks any value for unexpected deferred
cells:

    1. Classify the outermost cell. Deferred -> Violation(context + name).
    2. Otherwise follow forwarding cells, push the type's display name and
       run the checker's inner step.
    3. For structural types the inner step walks the shape:
         Leaf     -> done
         Product  -> fields in declared order, exempt fields skipped,
                     first violation returned immediately
         Sum      -> only the active alternative, as a product

Every participation mode is a ``Checker``; they differ only in the inner
step. Classification may force nothing beyond what the classifier reads,
so a check never changes what a value computes.

The structural walk does not guard against cycles. A value whose shape
permits an unbounded live chain must bound it with an exemption.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Tuple

from .classifier import Classification, classify, realized_value
from .context import Context
from .policy import ExemptionPolicy
from .shapes import Leaf, Product, Shape, Sum, derive_product
from .violation import Violation

log = logging.getLogger("thunkguard.dispatch")


class Checker:
    """
    A participation strategy for one type.

    Subclasses override ``inner`` (the check of an already-realized value,
    with the context already extended) and, rarely, ``check`` itself.
    """
    mode = "custom"

    def __init__(self, name: Optional[str]):
        self.name = name

    def display_name(self, value: Any) -> str:
        """Frame pushed for a realized value."""
        return self.name if self.name is not None else type(value).__name__

    def deferred_name(self, value: Any) -> str:
        """Frame reported for a deferred cell expected to hold this type."""
        return self.name if self.name is not None else "?"

    def for_subtype(self, cls: type) -> Checker:
        """The checker to use for ``cls`` when inherited from a base."""
        return self

    def check(self, context: Context, value: Any) -> Optional[Violation]:
        if classify(value) is Classification.DEFERRED:
            violation = context.violation(self.deferred_name(value))
            log.debug("unexpected deferred cell: %s", violation.describe())
            return violation
        value = realized_value(value)
        return self.inner(context.push(self.display_name(value)), value)

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name or '*'}>"


# =============================================================================
# SHORT-CIRCUIT HELPERS
# =============================================================================

def first_violation(results: Iterable[Optional[Violation]]) -> Optional[Violation]:
    """
    Return the first non-None result.

    Pass a generator so later checks are never run once one fails.
    """
    for result in results:
        if result is not None:
            return result
    return None


def check_values(context: Context, checker: Checker, values: Iterable[Any]) -> Optional[Violation]:
    """Check every element, but not the container holding them."""
    return first_violation(checker.check(context, value) for value in values)


def check_keys_and_values(
    context: Context,
    key_checker: Checker,
    value_checker: Checker,
    items: Iterable[Tuple[Any, Any]],
) -> Optional[Violation]:
    """
    Variant of ``check_values`` for keyed containers.

    Keys are checked too: hashing forces a key only as far as its
    ``__hash__`` looks, which need not be all of it.
    """
    for key, value in items:
        found = key_checker.check(context, key)
        if found is not None:
            return found
        found = value_checker.check(context, value)
        if found is not None:
            return found
    return None


# =============================================================================
# STRUCTURAL TRAVERSAL
# =============================================================================

class StructuralChecker(Checker):
    """
    Generic checker driven by a Structural Shape.

    For records the shape is derived from ``owner`` on first use, so field
    annotations may refer to types defined later in the module.
    """
    mode = "derive"

    def __init__(
        self,
        name: str,
        shape: Optional[Shape] = None,
        *,
        owner: Optional[type] = None,
        policy: Optional[ExemptionPolicy] = None,
        catalogue: Any = None,
    ):
        if shape is None and owner is None:
            raise ValueError("a structural checker needs a shape or an owner type")
        super().__init__(name)
        self._shape = shape
        self.owner = owner
        self.policy = policy if policy is not None else ExemptionPolicy(name)
        self.catalogue = catalogue

    @property
    def shape(self) -> Shape:
        if self._shape is None:
            self._shape = derive_product(self.owner)
        return self._shape

    def inner(self, context: Context, value: Any) -> Optional[Violation]:
        shape = self.shape
        if isinstance(shape, Leaf):
            return None
        if isinstance(shape, Product):
            actual = type(value)
            if (
                self.owner is not None
                and self.catalogue is not None
                and actual is not self.owner
                and issubclass(actual, self.owner)
            ):
                # A subclass may add fields the declared type does not have
                checker = self.catalogue.checker_for_type(actual)
                if checker is not self:
                    log.debug("%s holds a %s; checking as the subclass", self.name, actual.__name__)
                    return checker.inner(context, value)
            return self.check_product(context, value, shape, self.policy)
        if isinstance(shape, Sum):
            active = shape.select(value)
            return self.check_product(
                context,
                value,
                derive_product(active),
                self.catalogue.policy_for(active),
            )
        raise TypeError(f"unknown shape {shape!r}")

    def check_product(
        self,
        context: Context,
        value: Any,
        product: Product,
        policy: ExemptionPolicy,
    ) -> Optional[Violation]:
        for field in product.fields:
            if policy.is_exempt(field.name):
                log.debug("%s.%s may be deferred; skipped", policy.type_name, field.label)
                continue
            checker = self.catalogue.resolve(field.annotation)
            found = checker.check(context, field.read(value))
            if found is not None:
                return found
        return None

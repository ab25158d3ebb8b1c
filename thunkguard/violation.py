"""
Violation — The canonical result contract for thunkguard.

A check has exactly three observable outcomes:
    None               — no unexpected deferred cell was found
    Violation          — an unexpected deferred cell, with a trail to it
    raised exception   — the check itself could not be carried out

These must never be conflated. A Violation is data, not an exception.

Error classes:
    ExemptionError          — declared exemption names an unknown field
    ClassificationError     — a cell representation could not be classified
    UnreachableAlternative  — a sum value matched none of its alternatives
    CatalogueError          — a strict catalogue has no adapter for a type
    UnexpectedDeferred      — assertion helper carrying a Violation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


# Separator used when rendering a trail for operators
TRAIL_SEPARATOR = " <- "


@dataclass(frozen=True)
class Violation:
    """
    An unexpected deferred cell, located by a trail of type names.

    The trail is ordered innermost first. For a value of type
    ``tuple[int, list[int]]`` the possible trails are:

        ("tuple",)                 the tuple itself
        ("int", "tuple")           the int in the tuple
        ("list", "tuple")          the list in the tuple
        ("int", "list", "tuple")   an int inside the list
    """
    trail: tuple[str, ...]

    def __post_init__(self):
        """A violation without a location is meaningless."""
        if not self.trail:
            raise ValueError("violation trail must not be empty")

    @property
    def innermost(self) -> str:
        """Type name of the deferred cell itself."""
        return self.trail[0]

    @property
    def outermost(self) -> str:
        """Type name of the value the check started from."""
        return self.trail[-1]

    def describe(self) -> str:
        """Render the trail for an operator, innermost first."""
        return TRAIL_SEPARATOR.join(self.trail)

    def __str__(self) -> str:
        return f"unexpected deferred {self.innermost}: {self.describe()}"


# =============================================================================
# ERRORS
# =============================================================================

class ExemptionError(Exception):
    """
    Raised when an exemption set names fields the type does not have.

    This is raised while the participation decorator runs, i.e. when the
    class is defined. A typo in an exemption therefore stops the defining
    module from importing instead of silently disabling nothing.
    """

    def __init__(self, type_name: str, unknown: Iterable[str], known: Iterable[str]):
        self.type_name = type_name
        self.unknown = tuple(sorted(unknown))
        self.known = tuple(known)
        super().__init__(
            f"{type_name}: exemption names unknown field(s) "
            f"{', '.join(self.unknown)}; known fields are "
            f"{', '.join(self.known) or '(none)'}"
        )


class ClassificationError(Exception):
    """Raised when a memory cell cannot be classified as realized or deferred."""

    def __init__(self, ref: Any, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"cannot classify {type(ref).__name__} cell: {reason}")


class UnreachableAlternative(AssertionError):
    """
    A realized sum value matched none of the sum's alternatives.

    Once classification succeeded the active alternative must exist, so
    reaching this is a programming error, not a recoverable outcome.
    """

    def __init__(self, sum_name: str, value: Any):
        self.sum_name = sum_name
        self.value_type = type(value).__name__
        super().__init__(
            f"unreachable: {self.value_type} is not an alternative of {sum_name}"
        )


class CatalogueError(LookupError):
    """Raised by a strict catalogue asked for a type with no adapter."""

    def __init__(self, annotation: Any):
        self.annotation = annotation
        super().__init__(f"no adapter registered for {annotation!r}")


class UnexpectedDeferred(AssertionError):
    """Raised by ``assert_realized`` when a check reports a violation."""

    def __init__(self, violation: Violation):
        self.violation = violation
        super().__init__(str(violation))

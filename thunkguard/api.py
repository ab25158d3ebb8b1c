"""
Top-level entry points.

    check(value)            -> Optional[Violation], fresh context
    check_in(ctx, value)    -> Optional[Violation], caller-supplied context
    assert_realized(value)  -> raises UnexpectedDeferred on a violation

Pass ``annotation`` when the declared type of the value is known; without
it the value is checked by its runtime type, and a deferred cell at the top
is named after what the cell declares it will hold.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from .catalogue import DEFAULT_CATALOGUE, Catalogue
from .context import EMPTY_CONTEXT, Context
from .violation import UnexpectedDeferred, Violation


def check(
    value: Any,
    annotation: Any = Any,
    *,
    catalogue: Optional[Catalogue] = None,
) -> Optional[Violation]:
    """
    Check ``value`` for unexpected deferred cells.

    Returns:
        None if every checked cell is realized, else the first Violation

    Raises:
        ClassificationError: If a cell could not be classified
    """
    return check_in(EMPTY_CONTEXT, value, annotation, catalogue=catalogue)


def check_in(
    context: Union[Context, Sequence[str]],
    value: Any,
    annotation: Any = Any,
    *,
    catalogue: Optional[Catalogue] = None,
) -> Optional[Violation]:
    """Like ``check``, starting below the frames already in ``context``."""
    if not isinstance(context, Context):
        context = Context(tuple(context))
    target = catalogue if catalogue is not None else DEFAULT_CATALOGUE
    return target.resolve(annotation).check(context, value)


def assert_realized(
    value: Any,
    annotation: Any = Any,
    *,
    catalogue: Optional[Catalogue] = None,
) -> None:
    """Test helper: fail with the violation's trail if anything is deferred."""
    violation = check(value, annotation, catalogue=catalogue)
    if violation is not None:
        raise UnexpectedDeferred(violation)

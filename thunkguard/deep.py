"""
Deep-Realization Strategy.

For types that do not describe their structure: walk everything reachable
from a value and demand that every cell is realized. This needs no shape
and works on any object, at the cost of field-level attribution.

Python object graphs are routinely cyclic (parents, back-references,
instance caches), so the walk remembers visited objects by identity.
"""

from __future__ import annotations

from typing import Any

from .classifier import Classification, children, classify


def is_normal_form(value: Any) -> bool:
    """
    True if no cell reachable from ``value`` is deferred.

    Short-circuits on the first deferred cell. Leaves and empty
    containers are trivially in normal form.
    """
    seen: set[int] = set()
    # Keep visited objects alive so their ids cannot be reused mid-walk
    keep: list[Any] = []
    stack = [value]

    while stack:
        ref = stack.pop()
        if id(ref) in seen:
            continue
        seen.add(id(ref))
        keep.append(ref)

        if classify(ref) is Classification.DEFERRED:
            return False
        stack.extend(reversed(children(ref)))

    return True

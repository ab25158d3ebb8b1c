"""
Context Trail Builder.

Accumulates the type names entered on the way down to a cell. The trail is
diagnostic only; the one rule it enforces is that pushing the name already
on top does nothing, so a homogeneous recursive chain shows up once:

    ("int", "Node")            rather than
    ("int", "Node", "Node", "Node", "Node")

This discards which link in the chain held the cell. Typically every link
should be realized, so the shorter trail is the more useful one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .violation import Violation


@dataclass(frozen=True)
class Context:
    """Immutable trail of frames, most recently entered first."""
    frames: tuple[str, ...] = ()

    @property
    def head(self) -> Optional[str]:
        return self.frames[0] if self.frames else None

    def push(self, name: str) -> Context:
        if self.frames and self.frames[0] == name:
            return self
        return Context((name,) + self.frames)

    def violation(self, name: str) -> Violation:
        """A violation for a deferred cell of type ``name`` entered here."""
        return Violation(self.push(name).frames)

    def __len__(self) -> int:
        return len(self.frames)


EMPTY_CONTEXT = Context()

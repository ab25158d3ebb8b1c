"""
Exemption Policy.

Per type, declares which named fields may remain deferred. The declaration
is validated against the type's real field list when it is made, which for
the participation decorators means when the class statement runs. A typo in
an exemption is therefore an import-time error, never a silently ignored
name.

A degenerate policy exempts the whole value. It models a disabled check and
is what opaque, unknown and function-like values fall back to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from .violation import ExemptionError


@dataclass(frozen=True)
class ExemptionPolicy:
    """
    Which fields of ``type_name`` may hold deferred cells.

    Build with ``for_fields`` (validated) or ``exempt_everything``; the
    plain constructor performs no validation and is meant for internal use.
    """
    type_name: str
    exempt_fields: frozenset[str] = field(default_factory=frozenset)
    known_fields: tuple[str, ...] = ()
    exempt_all: bool = False

    @classmethod
    def for_fields(
        cls,
        type_name: str,
        real_fields: Sequence[str],
        allowed: Iterable[str] = (),
    ) -> ExemptionPolicy:
        """
        Validate ``allowed`` against ``real_fields`` and build the policy.

        Raises:
            ExemptionError: If any allowed name is not a real field
        """
        allowed = frozenset(allowed)
        unknown = allowed.difference(real_fields)
        if unknown:
            raise ExemptionError(type_name, unknown, real_fields)
        return cls(
            type_name=type_name,
            exempt_fields=allowed,
            known_fields=tuple(real_fields),
        )

    @classmethod
    def exempt_everything(cls, type_name: str) -> ExemptionPolicy:
        return cls(type_name=type_name, exempt_all=True)

    def is_exempt(self, field_name: Optional[str]) -> bool:
        """Positional fields have no name and are never exempt."""
        if self.exempt_all:
            return True
        return field_name is not None and field_name in self.exempt_fields

    @property
    def flags(self) -> Mapping[str, bool]:
        """Field name -> may-remain-deferred, for every known field."""
        return MappingProxyType({
            name: self.exempt_all or name in self.exempt_fields
            for name in self.known_fields
        })


def no_exemptions(type_name: str, real_fields: Sequence[str] = ()) -> ExemptionPolicy:
    return ExemptionPolicy.for_fields(type_name, real_fields)

"""MappingPolicy -- per-call leniency settings for a copy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MappingPolicy:
    """
    How a copy treats data it cannot map.

    ignore_type_errors:
        Unconvertible values (and converter failures) leave the destination
        at its zero value instead of raising. On by default: the engine is
        meant for best-effort mapping between loosely related shapes.
    ignore_zero_values:
        Source fields holding their type's zero value are not copied, so
        the destination keeps whatever it already had.
    """

    ignore_type_errors: bool = True
    ignore_zero_values: bool = False

    @classmethod
    def strict(cls) -> MappingPolicy:
        return cls(ignore_type_errors=False)

    @classmethod
    def lenient(cls) -> MappingPolicy:
        return cls(ignore_type_errors=True)

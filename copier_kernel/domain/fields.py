"""
Field resolver -- flattened struct fields and dotted field paths.

Responsibility:
    Produces the flat field namespace of a dataclass (embedded fields
    promoted in place), and resolves dotted paths such as ``"Order.Lines"``
    for reading from a source and writing into a destination.

Architecture position:
    Kernel > Domain -- pure, no I/O. Used by the copy engine and by the
    registry's configuration-time checks.

Invariants enforced:
    - Flattened lists keep declaration order, embedded fields expanded
      where the embedding field is declared.
    - ``field_map`` is last-write-wins on duplicate names.
    - A path step on anything but a struct (or a non-None Optional struct)
      is a configuration error, never a silent skip.

Failure modes:
    - ``InvalidFieldPathError`` for empty names or empty path segments.
    - ``FieldPathError`` for unknown fields or non-struct intermediates.
    - ``ConfigurationError`` for an ``embedded()`` field whose type is not
      a dataclass.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from copier_kernel.domain.shapes import (
    ShapeKind,
    assign,
    describe,
    is_struct_value,
    new_struct,
    owned_copy,
    struct_type_hints,
    unwrap_optional,
)
from copier_kernel.exceptions import (
    ConfigurationError,
    FieldPathError,
    InvalidFieldPathError,
)

EMBEDDED = "copier.embedded"
PATH_SEPARATOR = "."


def embedded(**kwargs: Any) -> Any:
    """
    Declare a dataclass field whose own fields are promoted into its owner.

    Accepts the same keyword arguments as ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[EMBEDDED] = True
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FlatField:
    """A field in a struct's flat namespace, with the attribute chain to reach it."""

    name: str
    type: Any
    chain: tuple[tuple[str, Any], ...]  # (attribute, declared type) from the owner down

    @property
    def is_promoted(self) -> bool:
        return len(self.chain) > 1

    def read(self, obj: Any) -> Any:
        for attr, _ in self.chain[:-1]:
            obj = getattr(obj, attr)
            if obj is None:
                return None
        return getattr(obj, self.chain[-1][0])

    def write(self, obj: Any, value: Any) -> None:
        _write_chain(obj, self.chain, value)


def _write_chain(obj: Any, chain: tuple[tuple[str, Any], ...], value: Any) -> None:
    attr, declared = chain[0]
    if len(chain) == 1:
        assign(obj, attr, value)
        return
    child = getattr(obj, attr)
    if child is None:
        child = new_struct(unwrap_optional(declared))
    else:
        child = owned_copy(child)
    _write_chain(child, chain[1:], value)
    assign(obj, attr, child)


@lru_cache(maxsize=512)
def flattened_fields(cls: type) -> tuple[FlatField, ...]:
    """Declared fields of ``cls`` with embedded fields' fields promoted in place."""
    hints = struct_type_hints(cls)
    result: list[FlatField] = []
    for f in dataclasses.fields(cls):
        declared = hints.get(f.name, f.type)
        if f.metadata.get(EMBEDDED):
            inner = unwrap_optional(declared)
            if describe(inner).kind is not ShapeKind.STRUCT:
                raise ConfigurationError(
                    f"Embedded field {cls.__name__}.{f.name} must be a dataclass"
                )
            for sub in flattened_fields(inner):
                result.append(
                    FlatField(sub.name, sub.type, ((f.name, declared),) + sub.chain)
                )
        else:
            result.append(FlatField(f.name, declared, ((f.name, declared),)))
    return tuple(result)


@lru_cache(maxsize=512)
def _field_map(cls: type) -> dict[str, FlatField]:
    return {f.name: f for f in flattened_fields(cls)}


def field_map(cls: type) -> dict[str, FlatField]:
    """Name -> field for the flat namespace. Later duplicates shadow earlier ones."""
    return dict(_field_map(cls))


def lookup_field(cls: type, name: str) -> FlatField | None:
    return _field_map(cls).get(name)


def validate_name(name: Any) -> str:
    """Check a rename/transformer key is a non-empty name or dotted path."""
    if not isinstance(name, str) or not name:
        raise InvalidFieldPathError(name, "must be a non-empty string")
    if any(not segment for segment in name.split(PATH_SEPARATOR)):
        raise InvalidFieldPathError(name, "contains an empty segment")
    return name


def is_dotted(name: str) -> bool:
    return PATH_SEPARATOR in name


# ---------------------------------------------------------------------------
# Dotted paths
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldPath:
    """A parsed ``"A.B.C"`` field-access chain."""

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> FieldPath:
        return cls(tuple(validate_name(text).split(PATH_SEPARATOR)))

    def __str__(self) -> str:
        return PATH_SEPARATOR.join(self.segments)

    @property
    def head(self) -> str:
        return self.segments[0]

    def validate(self, root_type: Any) -> Any:
        """Resolve the path against declared types; return the terminal type."""
        current = root_type
        for segment in self.segments:
            owner = unwrap_optional(current)
            if describe(owner).kind is not ShapeKind.STRUCT:
                raise FieldPathError(str(self), segment, owner, "not a struct")
            flat = lookup_field(owner, segment)
            if flat is None:
                raise FieldPathError(str(self), segment, owner, "no such field")
            current = flat.type
        return current

    def read(self, root: Any) -> tuple[Any, Any]:
        """
        Return ``(value, declared_type)`` at the end of the path.

        A ``None`` met before the last segment halts the walk and yields
        ``(None, None)``.
        """
        current = root
        declared: Any = None
        for index, segment in enumerate(self.segments):
            if current is None and index > 0:
                return None, None
            if not is_struct_value(current):
                raise FieldPathError(str(self), segment, type(current), "not a struct")
            flat = lookup_field(type(current), segment)
            if flat is None:
                raise FieldPathError(str(self), segment, type(current), "no such field")
            current = flat.read(current)
            declared = flat.type
        return current, declared

    def update(self, root: Any, fn: Callable[[Any, Any], Any]) -> None:
        """
        Replace the value at the end of the path with ``fn(existing, declared_type)``.

        ``None`` optional intermediates are allocated as zero structs; frozen
        intermediates are copied before they are written.
        """
        self._update(root, 0, fn)

    def _update(self, obj: Any, index: int, fn: Callable[[Any, Any], Any]) -> None:
        segment = self.segments[index]
        if not is_struct_value(obj):
            raise FieldPathError(str(self), segment, type(obj), "not a struct")
        flat = lookup_field(type(obj), segment)
        if flat is None:
            raise FieldPathError(str(self), segment, type(obj), "no such field")
        if index == len(self.segments) - 1:
            flat.write(obj, fn(flat.read(obj), flat.type))
            return
        child = flat.read(obj)
        if child is None:
            child_type = unwrap_optional(flat.type)
            if describe(child_type).kind is not ShapeKind.STRUCT:
                raise FieldPathError(str(self), segment, type(obj), "not a struct")
            child = new_struct(child_type)
        elif is_struct_value(child):
            child = owned_copy(child)
        self._update(child, index + 1, fn)
        flat.write(obj, child)

"""
Shapes -- the closed set of value shapes the copy engine dispatches on.

Responsibility:
    Resolves a declared Python type once into a ``TypeShape`` descriptor
    (PRIMITIVE, POINTER, STRUCT or SEQUENCE), and owns the notion of a
    type's zero value and of an addressable destination (``Ref``).

Architecture position:
    Kernel > Domain -- pure, no I/O. Leaf module; everything else in the
    engine asks this module what a type looks like.

Shape rules:
    POINTER   ``Optional[T]`` / ``T | None``; ``None`` is the nil pointer.
    STRUCT    any ``@dataclass`` class.
    SEQUENCE  ``list[T]``, ``tuple[T, ...]``, ``set[T]``, ``frozenset[T]``
              and the matching ``collections.abc`` generics.
    PRIMITIVE everything else, including ``Any``, enums, ``NewType``,
              fixed-length tuples and mappings.
"""

from __future__ import annotations

import collections.abc as abc
import copy
import dataclasses
import types
import typing
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from functools import lru_cache
from typing import Annotated, Any, Generic, TypeVar, Union, get_args, get_origin

from copier_kernel.exceptions import StructConstructionError

T = TypeVar("T")

NoneType = type(None)


class ShapeKind(str, Enum):
    """Value shapes the engine knows how to copy."""

    PRIMITIVE = "primitive"
    POINTER = "pointer"
    STRUCT = "struct"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class TypeShape:
    """Resolved description of a declared type."""

    kind: ShapeKind
    type: Any
    element: Any = None  # pointee for POINTER, item type for SEQUENCE
    container: type | None = None  # concrete container for SEQUENCE

    @property
    def is_any(self) -> bool:
        return self.type is Any


_SEQUENCE_ORIGINS: dict[Any, type] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    abc.Sequence: list,
    abc.MutableSequence: list,
    abc.Collection: list,
    abc.Iterable: list,
    abc.Set: frozenset,
    abc.MutableSet: set,
}

SEQUENCE_VALUE_TYPES = (list, tuple, set, frozenset)


def describe(tp: Any) -> TypeShape:
    """Return the shape of a declared type."""
    try:
        return _describe_cached(tp)
    except TypeError:
        # Unhashable typing metadata (e.g. Annotated with a dict)
        return _describe(tp)


@lru_cache(maxsize=1024)
def _describe_cached(tp: Any) -> TypeShape:
    return _describe(tp)


def _describe(tp: Any) -> TypeShape:
    origin = get_origin(tp)
    if origin is Annotated:
        return _describe(get_args(tp)[0])

    if tp is Any or tp is object:
        return TypeShape(ShapeKind.PRIMITIVE, Any)

    if origin is Union or origin is types.UnionType:
        args = get_args(tp)
        arms = tuple(a for a in args if a is not NoneType)
        if len(arms) < len(args):
            element = arms[0] if len(arms) == 1 else Union[arms]
            return TypeShape(ShapeKind.POINTER, tp, element=element)
        return TypeShape(ShapeKind.PRIMITIVE, tp)

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return TypeShape(ShapeKind.STRUCT, tp)

    if tp in _SEQUENCE_ORIGINS:
        return TypeShape(
            ShapeKind.SEQUENCE, tp, element=Any, container=_SEQUENCE_ORIGINS[tp]
        )

    if origin in _SEQUENCE_ORIGINS:
        args = get_args(tp)
        if origin is tuple:
            if len(args) != 2 or args[1] is not Ellipsis:
                # Fixed-length tuples are records, not sequences
                return TypeShape(ShapeKind.PRIMITIVE, tp)
        element = args[0] if args else Any
        return TypeShape(
            ShapeKind.SEQUENCE, tp, element=element, container=_SEQUENCE_ORIGINS[origin]
        )

    return TypeShape(ShapeKind.PRIMITIVE, tp)


def unwrap_optional(tp: Any) -> Any:
    """Strip one level of ``Optional`` (pointer indirection)."""
    shape = describe(tp)
    if shape.kind is ShapeKind.POINTER:
        return shape.element
    return shape.type


def runtime_class(tp: Any) -> type | None:
    """The class ``isinstance`` can check for a primitive declared type."""
    if isinstance(tp, type):
        return tp
    origin = get_origin(tp)
    if isinstance(origin, type):
        return origin
    return None


# ---------------------------------------------------------------------------
# Structs
# ---------------------------------------------------------------------------


def is_struct_value(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def is_frozen(obj: Any) -> bool:
    params = getattr(obj, "__dataclass_params__", None)
    return bool(params and params.frozen)


@lru_cache(maxsize=512)
def struct_type_hints(cls: type) -> dict[str, Any]:
    """Resolved field annotations of a dataclass (string annotations evaluated)."""
    return typing.get_type_hints(cls, include_extras=True)


def assign(obj: Any, name: str, value: Any) -> None:
    """Set an attribute on a struct the engine owns, frozen or not."""
    if is_frozen(obj):
        object.__setattr__(obj, name, value)
    else:
        setattr(obj, name, value)


def owned_copy(obj: Any) -> Any:
    """Frozen structs are copied before the engine writes into them."""
    if is_frozen(obj):
        return copy.copy(obj)
    return obj


def new_struct(cls: type) -> Any:
    """Instantiate a dataclass with its defaults, zero values elsewhere."""
    hints = struct_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING:
            continue
        kwargs[f.name] = zero_value(hints.get(f.name, Any))
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as exc:
        raise StructConstructionError(cls, str(exc)) from exc


# ---------------------------------------------------------------------------
# Zero values
# ---------------------------------------------------------------------------

_ZERO_VALUES: dict[type, Any] = {
    datetime: datetime.min,
    date: date.min,
    time: time.min,
    timedelta: timedelta(0),
}

_CONSTRUCTIBLE = (
    int, float, complex, bool, str, bytes, bytearray,
    Decimal, Fraction, dict, list, tuple, set, frozenset,
)


def zero_value(tp: Any) -> Any:
    """The value a destination of type ``tp`` holds before anything is copied."""
    shape = describe(tp)
    if shape.kind is ShapeKind.POINTER:
        return None
    if shape.kind is ShapeKind.SEQUENCE:
        return shape.container()
    if shape.kind is ShapeKind.STRUCT:
        return new_struct(shape.type)
    return _primitive_zero(shape.type)


def _primitive_zero(tp: Any) -> Any:
    if tp is Any:
        return None
    supertype = getattr(tp, "__supertype__", None)
    if supertype is not None:
        return _primitive_zero(supertype)
    cls = runtime_class(tp)
    if cls is None or issubclass(cls, Enum):
        return None
    if cls in _ZERO_VALUES:
        return _ZERO_VALUES[cls]
    if cls in _CONSTRUCTIBLE:
        return cls()
    return None


def is_zero(value: Any) -> bool:
    """True for ``None`` and for primitives equal to their type's zero value."""
    if value is None:
        return True
    if isinstance(value, Enum) or is_struct_value(value):
        return False
    zero = _primitive_zero(type(value))
    return zero is not None and type(zero) is type(value) and value == zero


# ---------------------------------------------------------------------------
# Addressable destinations
# ---------------------------------------------------------------------------


class Ref(Generic[T]):
    """
    Addressable box for a copy destination.

    Python has no pointers to locals, so a caller who wants a list, a
    primitive or a fresh struct filled in passes a ``Ref`` naming the
    destination type; the produced value lands in ``ref.value``.
    """

    __slots__ = ("type", "value")

    def __init__(self, target_type: Any, value: Any = dataclasses.MISSING):
        self.type = target_type
        self.value = zero_value(target_type) if value is dataclasses.MISSING else value

    def get(self) -> Any:
        return self.value

    def set(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.type!r}, value={self.value!r})"

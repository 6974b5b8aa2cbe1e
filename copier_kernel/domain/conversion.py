"""
Value converter -- produces a destination-typed value from a source value.

Responsibility:
    Decides HOW one value becomes another type, in fixed priority order:

        0. ``None``        -> ``None`` for Optional/Any, zero value otherwise
        1. registered converter for the exact (origin, target) pair
           (structs and containers bound for ``Any`` are copied, not shared)
        2. native conversion (numeric, enum, NewType, str/bytes, isinstance)
        3. Optional on either side -> dereference and recurse
        4. struct -> struct       (delegated to ``copy_struct``)
        5. sequence -> sequence   (delegated to ``copy_sequence``)
        6. unconvertible          -> error, or zero value when ignored

Architecture position:
    Kernel > Domain -- pure, no I/O. ``CopyEngine`` subclasses this class
    and supplies the struct and sequence copiers.

Failure modes:
    - ``TypeConversionError`` when nothing applies and the policy is strict.
    - ``ConverterFailedError`` when a registered converter raises and the
      policy is strict.
"""

from __future__ import annotations

import numbers
import types
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Union, get_args, get_origin

from copier_kernel.domain.policy import MappingPolicy
from copier_kernel.domain.registry import Converter, MappingRegistry
from copier_kernel.domain.shapes import (
    SEQUENCE_VALUE_TYPES,
    ShapeKind,
    TypeShape,
    describe,
    is_struct_value,
    runtime_class,
    unwrap_optional,
    zero_value,
)
from copier_kernel.exceptions import (
    ConverterFailedError,
    CopierError,
    TypeConversionError,
    type_name,
)
from copier_kernel.logging_config import get_logger

logger = get_logger("domain.conversion")


class _Unconvertible:
    def __repr__(self) -> str:
        return "UNCONVERTIBLE"


UNCONVERTIBLE: Any = _Unconvertible()

_NUMERIC = (int, float, complex, Decimal, Fraction)


# ---------------------------------------------------------------------------
# Native conversion (pure)
# ---------------------------------------------------------------------------


def _to_number(value: Any, cls: type) -> Any:
    if type(value) is cls:
        return value
    if cls is Decimal:
        if isinstance(value, float):
            return Decimal(str(value))
        if isinstance(value, Fraction):
            return Decimal(value.numerator) / Decimal(value.denominator)
        return Decimal(value)
    return cls(value)


def native_convert(value: Any, tp: Any) -> Any:
    """
    Convert ``value`` to primitive type ``tp`` by language rules alone.

    Returns ``UNCONVERTIBLE`` when no native rule applies.
    """
    if tp is Any or tp is object:
        return value

    supertype = getattr(tp, "__supertype__", None)
    if supertype is not None:
        return native_convert(value, supertype)

    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        arms = get_args(tp)
        for arm in arms:
            cls = runtime_class(arm)
            if cls is not None and isinstance(value, cls):
                return value
        for arm in arms:
            result = native_convert(value, arm)
            if result is not UNCONVERTIBLE:
                return result
        return UNCONVERTIBLE

    cls = runtime_class(tp)
    if cls is None:
        return UNCONVERTIBLE

    if issubclass(cls, Enum):
        if isinstance(value, cls):
            return value
        if isinstance(value, Enum):
            return UNCONVERTIBLE
        try:
            return cls(value)
        except ValueError:
            return UNCONVERTIBLE

    if isinstance(value, Enum):
        # Defined type -> its underlying representation
        return native_convert(value.value, tp)

    if cls is bool:
        return value if isinstance(value, bool) else UNCONVERTIBLE

    if cls in _NUMERIC:
        if isinstance(value, bool) or not isinstance(value, numbers.Number):
            return UNCONVERTIBLE
        try:
            return _to_number(value, cls)
        except (TypeError, ValueError, ArithmeticError):
            return UNCONVERTIBLE

    if cls is bytes and isinstance(value, str):
        return value.encode("utf-8")
    if cls is str and isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return UNCONVERTIBLE

    if isinstance(value, cls):
        return value
    return UNCONVERTIBLE


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------


class ValueConverter(ABC):
    """
    Converts values under one registry and one policy.

    Subclasses supply the struct and sequence copiers the conversion
    order delegates to.
    """

    def __init__(self, registry: MappingRegistry, policy: MappingPolicy):
        self._registry = registry
        self._policy = policy

    @property
    def policy(self) -> MappingPolicy:
        return self._policy

    def convert(
        self,
        value: Any,
        source_type: Any,
        destination_type: Any,
        existing: Any = None,
    ) -> Any:
        """
        Produce a value of ``destination_type`` from ``value``.

        ``source_type`` is the declared type of the value when known (a
        dataclass field annotation or a sequence element type), else None.
        ``existing`` is the destination's current value; structs are copied
        into it rather than replaced.
        """
        result = self._convert(value, source_type, destination_type, existing)
        if result is UNCONVERTIBLE:
            return self._unconvertible(value, destination_type)
        return result

    def _convert(self, value: Any, source_type: Any, destination_type: Any, existing: Any) -> Any:
        destination = describe(destination_type)

        if value is None:
            if destination.kind is ShapeKind.POINTER or destination.is_any:
                return None
            return zero_value(destination_type)

        target = destination.element if destination.kind is ShapeKind.POINTER else destination.type
        source_declared = unwrap_optional(source_type) if source_type is not None else None

        converter = self._registry.find_converter((type(value), source_declared), target)
        if converter is not None:
            return self._apply_converter(converter, value, target)

        target_shape = describe(target)
        if target_shape.is_any:
            # Untyped destinations still receive their own structs and containers
            if is_struct_value(value):
                return self.copy_struct(value, type(value), None)
            if isinstance(value, SEQUENCE_VALUE_TYPES):
                return self.copy_sequence(value, source_declared, describe(type(value)))

        if target_shape.kind is ShapeKind.PRIMITIVE:
            result = native_convert(value, target_shape.type)
            if result is not UNCONVERTIBLE:
                return result

        if destination.kind is ShapeKind.POINTER:
            # Boxing is identity in Python; the element is produced directly.
            return self._convert(value, source_declared, target, existing)
        if source_type is not None and describe(source_type).kind is ShapeKind.POINTER:
            return self._convert(value, source_declared, destination_type, existing)

        if target_shape.kind is ShapeKind.STRUCT and is_struct_value(value):
            return self.copy_struct(value, target_shape.type, existing)

        if target_shape.kind is ShapeKind.SEQUENCE and isinstance(value, SEQUENCE_VALUE_TYPES):
            return self.copy_sequence(value, source_declared, target_shape)

        return UNCONVERTIBLE

    def _apply_converter(self, converter: Converter, value: Any, target: Any) -> Any:
        try:
            return converter.fn(value, target)
        except CopierError:
            raise
        except Exception as exc:
            if self._policy.ignore_type_errors:
                logger.debug(
                    "converter_error_ignored",
                    extra={
                        "from_type": type_name(converter.origin),
                        "to_type": type_name(converter.target),
                        "reason": str(exc),
                    },
                )
                return zero_value(target)
            raise ConverterFailedError(converter.origin, converter.target, str(exc)) from exc

    def _unconvertible(self, value: Any, destination_type: Any) -> Any:
        if self._policy.ignore_type_errors:
            logger.debug(
                "type_error_ignored",
                extra={
                    "from_type": type_name(type(value)),
                    "to_type": type_name(destination_type),
                },
            )
            return zero_value(destination_type)
        raise TypeConversionError(type(value), unwrap_optional(destination_type))

    # -- delegated shapes ----------------------------------------------------

    @abstractmethod
    def copy_struct(self, value: Any, target_type: type, existing: Any) -> Any:
        """Copy struct ``value`` into ``existing`` or a new ``target_type``."""

    @abstractmethod
    def copy_sequence(self, value: Any, source_type: Any, shape: TypeShape) -> Any:
        """Build a new container of ``shape`` from the elements of ``value``."""

"""
CopyEngine -- the recursive struct and sequence copier.

Responsibility:
    Walks the source shape and decides WHERE each value lands: flattened
    struct fields matched by name (through rename rules), transformers
    applied per destination field, then the dotted-path pass; sequences
    copied element by element. ``ValueConverter`` decides HOW each value
    is produced at the destination type.

Architecture position:
    Kernel > Domain -- pure, no I/O. One engine is built per copy call by
    ``copier_kernel.services.copier.Copier``; it holds the registry and the
    per-call ``MappingPolicy`` and nothing else.

Invariants enforced:
    - Rename and transform before convert: a destination receives
      ``convert(transform(source_value))``.
    - Same-level matching happens in the struct walk; rules with a dotted
      origin or target are applied only in the path pass that follows it.
    - Destination fields missing from the source, and source fields
      missing from the destination, are skipped without error.
    - New structs and containers are owned by the destination; frozen
      structs the caller supplied are copied before being written.

Failure modes:
    - ``SequenceConversionError`` with ``partial_result`` when an element
      fails; the destination is not assigned.
    - A struct copy that fails midway leaves earlier fields populated.
    - ``FieldPathError`` from the path pass is fatal regardless of policy.
      Every dotted rule must resolve against the top-level struct; nested
      structs skip rules whose first segments they do not have.
    - Elements a set destination cannot hash are a type error.
"""

from __future__ import annotations

import dataclasses
from functools import partial
from typing import Any

from copier_kernel.domain.conversion import UNCONVERTIBLE, ValueConverter
from copier_kernel.domain.fields import FlatField, flattened_fields, lookup_field
from copier_kernel.domain.policy import MappingPolicy
from copier_kernel.domain.registry import MappingRegistry
from copier_kernel.domain.shapes import (
    Ref,
    ShapeKind,
    TypeShape,
    assign,
    describe,
    is_frozen,
    is_struct_value,
    is_zero,
    new_struct,
    owned_copy,
    zero_value,
)
from copier_kernel.exceptions import (
    ConversionError,
    DestinationNotAddressableError,
    SequenceConversionError,
    TypeConversionError,
    type_name,
)
from copier_kernel.logging_config import get_logger

logger = get_logger("domain.engine")


class CopyEngine(ValueConverter):
    """Per-call copy session: registry contents plus the mapping policy."""

    def __init__(self, registry: MappingRegistry, policy: MappingPolicy):
        super().__init__(registry, policy)
        self._struct_depth = 0

    # -- entry point ---------------------------------------------------------

    def copy_into(self, source: Any, destination: Any) -> Any:
        """
        Copy ``source`` into an addressable ``destination``.

        ``destination`` is a ``Ref`` or a mutable dataclass instance. A
        ``None`` source resets the destination to its zero value.
        Returns the destination's new value.
        """
        if isinstance(destination, Ref):
            if source is None:
                destination.value = zero_value(destination.type)
            else:
                destination.value = self.convert(
                    source, None, destination.type, existing=destination.value
                )
            return destination.value

        if is_struct_value(destination) and not is_frozen(destination):
            if source is None:
                _overwrite(destination, new_struct(type(destination)))
                return destination
            result = self.convert(source, None, type(destination), existing=destination)
            if result is destination:
                return destination
            if isinstance(result, type(destination)):
                _overwrite(destination, result)
            elif not self.policy.ignore_type_errors:
                raise TypeConversionError(type(result), type(destination))
            return destination

        raise DestinationNotAddressableError(type(destination))

    # -- structs -------------------------------------------------------------

    def copy_struct(self, value: Any, target_type: type, existing: Any) -> Any:
        root = self._struct_depth == 0
        self._struct_depth += 1
        try:
            return self._copy_struct(value, target_type, existing, root)
        finally:
            self._struct_depth -= 1

    def _copy_struct(self, value: Any, target_type: type, existing: Any, root: bool) -> Any:
        if isinstance(existing, target_type):
            target = owned_copy(existing)
        else:
            target = new_struct(target_type)
        target_cls = type(target)

        for source_field in flattened_fields(type(value)):
            source_value = source_field.read(value)
            if self.policy.ignore_zero_values and is_zero(source_value):
                logger.debug("zero_value_skipped", extra={"field": source_field.name})
                continue
            for name in self._registry.target_names(source_field.name):
                destination_field = lookup_field(target_cls, name)
                if destination_field is None:
                    logger.debug(
                        "field_skipped",
                        extra={"field": name, "struct": type_name(target_cls)},
                    )
                    continue
                self._copy_field(target, destination_field, source_value, source_field.type)

        self._copy_paths(value, target, root)
        return target

    def _copy_field(
        self,
        target: Any,
        destination_field: FlatField,
        value: Any,
        source_type: Any,
    ) -> None:
        transformer = self._registry.transformer_for(destination_field.name)
        if transformer is not None:
            value = transformer(value)
            source_type = None
        converted = self.convert(
            value,
            source_type,
            destination_field.type,
            existing=destination_field.read(target),
        )
        destination_field.write(target, converted)

    def _copy_paths(self, source: Any, target: Any, root: bool) -> None:
        """
        Apply the dotted rules.

        At the top-level struct every rule must resolve. Below it, rules whose
        first segments are not fields of this level are skipped.
        """
        for origin, destination in self._registry.dotted_rules():
            if not root and (
                lookup_field(type(source), origin.head) is None
                or lookup_field(type(target), destination.head) is None
            ):
                logger.debug(
                    "path_rule_skipped",
                    extra={"origin": str(origin), "target": str(destination)},
                )
                continue
            value, declared = origin.read(source)
            if self.policy.ignore_zero_values and is_zero(value):
                continue
            transformer = self._registry.transformer_for(str(destination))
            if transformer is not None:
                value = transformer(value)
                declared = None
            destination.update(target, partial(self._convert_existing, value, declared))

    def _convert_existing(self, value: Any, declared: Any, existing: Any, destination_type: Any) -> Any:
        return self.convert(value, declared, destination_type, existing=existing)

    # -- sequences -----------------------------------------------------------

    def copy_sequence(self, value: Any, source_type: Any, shape: TypeShape) -> Any:
        source_element = None
        if source_type is not None:
            source_shape = describe(source_type)
            if source_shape.kind is ShapeKind.SEQUENCE and not _is_any(source_shape.element):
                source_element = source_shape.element

        items: list[Any] = []
        for index, item in enumerate(value):
            try:
                items.append(self.convert(item, source_element, shape.element))
            except ConversionError as exc:
                partial_result = _build_container(shape, items)
                if partial_result is UNCONVERTIBLE:
                    partial_result = items
                raise SequenceConversionError(index, partial_result, str(exc)) from exc

        # UNCONVERTIBLE for unhashable elements of a set destination
        return _build_container(shape, items)


def _build_container(shape: TypeShape, items: list[Any]) -> Any:
    try:
        return shape.container(items)
    except TypeError:
        return UNCONVERTIBLE


def _is_any(tp: Any) -> bool:
    return describe(tp).is_any


def _overwrite(destination: Any, source: Any) -> None:
    for f in dataclasses.fields(destination):
        assign(destination, f.name, getattr(source, f.name))


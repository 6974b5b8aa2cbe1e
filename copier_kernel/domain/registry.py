"""
MappingRegistry -- converters, rename rules and transformers for a copier.

Registration validates shape immediately with typed errors: a bad
converter or transformer is a programmer error and aborts construction
instead of surfacing later as a mapping error. Lookups never raise; an
absent converter just means "fall through to generic handling".
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from copier_kernel.domain.fields import FieldPath, is_dotted, validate_name
from copier_kernel.exceptions import (
    InvalidConverterError,
    InvalidFieldPathError,
    InvalidTransformerError,
)

ConverterFunc = Callable[[Any, Any], Any]


@dataclass(frozen=True)
class Converter:
    """Converts values of exactly ``origin`` into ``target``."""

    origin: Any
    target: Any
    fn: ConverterFunc

    def matches(self, origin: Any, target: Any) -> bool:
        return self.origin == origin and self.target == target


@dataclass(frozen=True)
class RenamePair:
    """One source field name fanned out to destination names (a "diff pair")."""

    origin: str
    targets: tuple[str, ...]


def _signature_shape(fn: Callable[..., Any]) -> tuple[int, bool, bool, bool] | None:
    """(positional count, *args, required keyword-only, returns None) or None if opaque."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    positional = 0
    var_positional = False
    required_kwonly = False
    for param in sig.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1
        elif param.kind is param.VAR_POSITIONAL:
            var_positional = True
        elif param.kind is param.KEYWORD_ONLY and param.default is param.empty:
            required_kwonly = True
    returns_none = sig.return_annotation in (None, "None")
    return positional, var_positional, required_kwonly, returns_none


class MappingRegistry:
    """Registered converters, rename rules and transformers."""

    def __init__(self) -> None:
        self._converters: list[Converter] = []
        self._rename_rules: dict[str, tuple[str, ...]] = {}
        self._transformers: dict[str, Callable[[Any], Any]] = {}

    # -- registration -------------------------------------------------------

    def add_converter(self, converter: Converter) -> None:
        if converter.fn is None:
            raise InvalidConverterError(converter.origin, converter.target, "converter func cannot be None")
        if not callable(converter.fn):
            raise InvalidConverterError(converter.origin, converter.target, "converter func must be callable")
        if converter.origin is None or converter.target is None:
            raise InvalidConverterError(converter.origin, converter.target, "origin and target types are required")
        self._converters.append(converter)

    def add_rename_pairs(
        self,
        pairs: Iterable[RenamePair | tuple[str, Iterable[str]]] | Mapping[str, Iterable[str]],
    ) -> None:
        if isinstance(pairs, Mapping):
            pairs = list(pairs.items())
        for pair in pairs:
            if isinstance(pair, RenamePair):
                origin, targets = pair.origin, pair.targets
            else:
                origin, targets = pair
            if isinstance(targets, str):
                raise InvalidFieldPathError(targets, "targets must be a list of names")
            validate_name(origin)
            self._rename_rules[origin] = tuple(validate_name(t) for t in targets)

    def add_transformer(self, field: str, transformer: Callable[[Any], Any]) -> None:
        validate_name(field)
        if transformer is None:
            raise InvalidTransformerError(field, "transformer cannot be None")
        if not callable(transformer):
            raise InvalidTransformerError(field, "transformer must be a function")
        shape = _signature_shape(transformer)
        if shape is not None:
            positional, var_positional, required_kwonly, returns_none = shape
            single = positional == 1 or (positional == 0 and var_positional)
            if not single or required_kwonly:
                raise InvalidTransformerError(field, "transformer must have exactly 1 arg")
            if returns_none:
                raise InvalidTransformerError(field, "transformer must return exactly 1 value")
        self._transformers[field] = transformer

    # -- lookup --------------------------------------------------------------

    def find_converter(self, origins: Iterable[Any], target: Any) -> Converter | None:
        """First registered converter matching any candidate origin exactly."""
        candidates = [o for o in origins if o is not None]
        for converter in self._converters:
            for origin in candidates:
                if converter.matches(origin, target):
                    return converter
        return None

    def target_names(self, origin: str) -> tuple[str, ...]:
        targets = self._rename_rules.get(origin)
        if targets:
            return targets
        return (origin,)

    def transformer_for(self, field: str) -> Callable[[Any], Any] | None:
        return self._transformers.get(field)

    def dotted_rules(self) -> Iterator[tuple[FieldPath, FieldPath]]:
        """(origin, target) paths of every rule where either side is dotted."""
        for origin, targets in self._rename_rules.items():
            for target in targets:
                if is_dotted(origin) or is_dotted(target):
                    yield FieldPath.parse(origin), FieldPath.parse(target)

    @property
    def converters(self) -> tuple[Converter, ...]:
        return tuple(self._converters)

    @property
    def rename_rules(self) -> dict[str, tuple[str, ...]]:
        return dict(self._rename_rules)

    @property
    def transformers(self) -> dict[str, Callable[[Any], Any]]:
        return dict(self._transformers)

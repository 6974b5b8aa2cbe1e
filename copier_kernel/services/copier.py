"""
Copier -- public entry point of the value-mapping engine.

Responsibility:
    Holds one ``MappingRegistry`` and a default ``MappingPolicy``. Callers
    configure it with chained ``register_*`` calls, then map values with
    ``copy(source, destination)`` or ``from_(source).to(destination)``.

Architecture position:
    Kernel > Services -- thin orchestration over the pure domain engine.
    Each copy builds a fresh ``CopyEngine`` (the per-call session), binds a
    ``LogContext`` and logs start and completion.

Lifecycle:
    configure -> use. The registry is not locked; registering while another
    thread is copying with the same instance is unsupported. Copies never
    mutate the registry, so a configured Copier can be shared.

Failure modes:
    - ``ConfigurationError`` subclasses from registration, from a
      non-addressable destination, or from an unresolvable dotted path.
    - ``ConversionError`` subclasses from the copy unless the policy in
      force ignores type errors.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from copier_kernel.domain.engine import CopyEngine
from copier_kernel.domain.fields import FieldPath, flattened_fields, is_dotted
from copier_kernel.domain.policy import MappingPolicy
from copier_kernel.domain.registry import Converter, ConverterFunc, MappingRegistry, RenamePair
from copier_kernel.domain.shapes import Ref, ShapeKind, describe
from copier_kernel.exceptions import CopierError, FieldPathError, type_name
from copier_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.copier")


@dataclass(frozen=True)
class PendingCopy:
    """A source bound by ``Copier.from_`` waiting for its destination."""

    copier: Copier
    source: Any
    policy: MappingPolicy | None = None
    correlation_id: str | None = None

    def to(self, destination: Any) -> Any:
        return self.copier.copy(
            self.source, destination, policy=self.policy, correlation_id=self.correlation_id
        )


class Copier:
    """Maps values between structurally similar shapes."""

    def __init__(
        self,
        *,
        ignore_type_errors: bool = True,
        ignore_zero_values: bool = False,
        policy: MappingPolicy | None = None,
    ):
        self._registry = MappingRegistry()
        self._policy = policy or MappingPolicy(
            ignore_type_errors=ignore_type_errors,
            ignore_zero_values=ignore_zero_values,
        )

    @property
    def registry(self) -> MappingRegistry:
        return self._registry

    @property
    def policy(self) -> MappingPolicy:
        return self._policy

    # -- configuration -------------------------------------------------------

    def register_converter(
        self,
        converter: Converter | Any,
        target: Any = None,
        fn: ConverterFunc | None = None,
    ) -> Copier:
        """Register a ``Converter``, or ``(origin, target, fn)`` directly."""
        if not isinstance(converter, Converter):
            converter = Converter(origin=converter, target=target, fn=fn)
        self._registry.add_converter(converter)
        return self

    def register_rename_pairs(
        self,
        pairs: Iterable[RenamePair | tuple[str, Iterable[str]]] | Mapping[str, Iterable[str]],
    ) -> Copier:
        self._registry.add_rename_pairs(pairs)
        return self

    # Name used by callers coming from the diff-pair vocabulary
    register_diff_pairs = register_rename_pairs

    def register_transformer(self, field: str, transformer: Callable[[Any], Any]) -> Copier:
        self._registry.add_transformer(field, transformer)
        return self

    def validate_for(self, source_type: type, destination_type: type) -> Copier:
        """
        Check rename rules and transformer keys against two struct types.

        Plain names apply at every struct level of a copy, so they must name
        a field somewhere in the respective type tree; dotted paths must
        resolve completely from the root. Raises ``FieldPathError`` on the
        first rule that can never apply. Without this call, rules are only
        checked lazily, during a copy.
        """
        for root in (source_type, destination_type):
            if describe(root).kind is not ShapeKind.STRUCT:
                raise FieldPathError("", "", root, "validation needs dataclass types")
        source_names = _reachable_field_names(source_type)
        destination_names = _reachable_field_names(destination_type)

        rules = self._registry.rename_rules
        for origin, targets in rules.items():
            if is_dotted(origin) or any(is_dotted(t) for t in targets):
                FieldPath.parse(origin).validate(source_type)
                for target in targets:
                    FieldPath.parse(target).validate(destination_type)
                continue
            if origin not in source_names:
                raise FieldPathError(origin, origin, source_type, "no such field")
            for target in targets:
                if target not in destination_names:
                    raise FieldPathError(target, target, destination_type, "no such field")

        for name in self._registry.transformers:
            if is_dotted(name):
                FieldPath.parse(name).validate(destination_type)
            elif name not in destination_names:
                raise FieldPathError(name, name, destination_type, "no such field")
        return self

    # -- mapping -------------------------------------------------------------

    def session(self, policy: MappingPolicy | None = None) -> CopyEngine:
        """A fresh per-call engine under ``policy`` (or the default policy)."""
        return CopyEngine(self._registry, policy or self._policy)

    def copy(
        self,
        source: Any,
        destination: Any,
        *,
        policy: MappingPolicy | None = None,
        correlation_id: str | None = None,
    ) -> Any:
        """
        Copy ``source`` into ``destination`` (a ``Ref`` or a mutable dataclass).

        ``correlation_id`` ties the copy's log events to the caller's unit of
        work. Returns the destination's new value.
        """
        engine = self.session(policy)
        if isinstance(destination, Ref):
            destination_type = destination.type
        else:
            destination_type = type(destination)
        with LogContext.bind(
            correlation_id=correlation_id,
            copy_id=str(uuid4()),
            source_type=type_name(type(source)),
            destination_type=type_name(destination_type),
        ):
            logger.debug("copy_started")
            try:
                result = engine.copy_into(source, destination)
            except CopierError as exc:
                logger.info(
                    "copy_failed",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                raise
            logger.debug("copy_completed")
            return result

    def from_(
        self,
        source: Any,
        *,
        policy: MappingPolicy | None = None,
        correlation_id: str | None = None,
    ) -> PendingCopy:
        return PendingCopy(self, source, policy, correlation_id)


def _reachable_field_names(root: type) -> set[str]:
    """Field names of ``root`` and of every struct reachable through its fields."""
    names: set[str] = set()
    seen: set[Any] = set()
    pending: list[Any] = [root]
    while pending:
        shape = describe(pending.pop())
        while shape.kind in (ShapeKind.POINTER, ShapeKind.SEQUENCE):
            shape = describe(shape.element)
        if shape.kind is not ShapeKind.STRUCT or shape.type in seen:
            continue
        seen.add(shape.type)
        for f in flattened_fields(shape.type):
            names.add(f.name)
            pending.append(f.type)
    return names

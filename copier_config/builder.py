"""
copier_config.builder -- turns a MappingProfile into a configured Copier.

Converters are referenced by name (the built-in timestamp converters are
available as ``time_to_string`` and ``string_to_time``). Transformers are
referenced by name in the mapping the caller supplies, or by an importable
``"package.module:attribute"`` path.

Failure modes:
    - ``UnknownRegistrationError`` -- a converter or transformer name that
      nobody supplied, or an import path that does not resolve.
    - Registration errors from the kernel (``InvalidTransformerError`` ...)
      propagate unchanged.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from typing import Any

from copier_config.schema import MappingProfile
from copier_kernel.domain.converters import BUILTIN_CONVERTERS
from copier_kernel.domain.policy import MappingPolicy
from copier_kernel.domain.registry import Converter, RenamePair
from copier_kernel.exceptions import UnknownRegistrationError
from copier_kernel.logging_config import get_logger
from copier_kernel.services.copier import Copier

logger = get_logger("config.builder")


def resolve_reference(ref: str, available: Mapping[str, Callable[[Any], Any]]) -> Callable[[Any], Any]:
    """Look a transformer up by name, falling back to ``module:attribute`` import."""
    if ref in available:
        return available[ref]
    module_name, sep, attribute = ref.partition(":")
    if not sep or not module_name or not attribute:
        raise UnknownRegistrationError("transformer", ref, sorted(available))
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise UnknownRegistrationError("transformer", ref, sorted(available)) from exc
    for part in attribute.split("."):
        if not hasattr(target, part):
            raise UnknownRegistrationError("transformer", ref, sorted(available))
        target = getattr(target, part)
    return target


def build_copier(
    profile: MappingProfile,
    *,
    converters: Mapping[str, Converter] | None = None,
    transformers: Mapping[str, Callable[[Any], Any]] | None = None,
) -> Copier:
    """
    Build a Copier from a profile.

    ``converters`` extends the built-in named converters; ``transformers``
    supplies the callables profile transformer refs name.
    """
    available_converters = {**BUILTIN_CONVERTERS, **(converters or {})}
    available_transformers = dict(transformers or {})

    copier = Copier(
        policy=MappingPolicy(
            ignore_type_errors=profile.policy.ignore_type_errors,
            ignore_zero_values=profile.policy.ignore_zero_values,
        )
    )
    for name in profile.converters:
        if name not in available_converters:
            raise UnknownRegistrationError("converter", name, sorted(available_converters))
        copier.register_converter(available_converters[name])

    copier.register_rename_pairs(
        [RenamePair(origin=p.origin, targets=p.targets) for p in profile.rename_pairs]
    )
    for binding in profile.transformers:
        copier.register_transformer(
            binding.field, resolve_reference(binding.ref, available_transformers)
        )

    logger.info(
        "copier_built",
        extra={
            "profile": profile.name,
            "version": profile.version,
            "checksum": profile.checksum,
            "converter_count": len(profile.converters),
            "rename_pair_count": len(profile.rename_pairs),
            "transformer_count": len(profile.transformers),
        },
    )
    return copier

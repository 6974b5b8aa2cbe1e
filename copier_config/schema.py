"""
Mapping profile schema.

Defines the human-authored, reviewable source artifact for a copier: the
policy, which named converters to register, the rename pairs and the
transformer bindings. YAML profiles are parsed into these types by the
loader and turned into a configured ``Copier`` by the builder.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PolicyDef:
    """Default mapping policy of a profile."""

    ignore_type_errors: bool = True
    ignore_zero_values: bool = False


@dataclass(frozen=True)
class RenamePairDef:
    """One origin field fanned out to destination fields or paths."""

    origin: str
    targets: tuple[str, ...] = ()


@dataclass(frozen=True)
class TransformerBindingDef:
    """Destination field (or dotted path) -> transformer reference."""

    field: str
    ref: str  # name in the supplied mapping, or "package.module:attribute"


@dataclass(frozen=True)
class MappingProfile:
    """A complete, named copier configuration."""

    name: str
    version: int = 1
    description: str = ""
    policy: PolicyDef = PolicyDef()
    converters: tuple[str, ...] = ()
    rename_pairs: tuple[RenamePairDef, ...] = ()
    transformers: tuple[TransformerBindingDef, ...] = ()
    checksum: str = ""

"""
copier_config -- YAML mapping profiles for the copier kernel.

Responsibility:
    Lets a mapping be declared in a reviewable YAML file instead of in
    chained ``register_*`` calls: ``load_profile`` parses the file into a
    frozen ``MappingProfile``; ``build_copier`` turns it into a configured
    ``Copier``.

Architecture position:
    Configuration -- sits above ``copier_kernel``. The kernel MUST NEVER
    import from ``copier_config``.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` -- unreadable profile.
    - ``KeyError`` / ``ValueError`` -- malformed profile structure.
    - ``UnknownRegistrationError`` -- unknown converter or transformer ref.
"""

from pathlib import Path

from copier_config.builder import build_copier, resolve_reference
from copier_config.loader import compute_checksum, load_profile, parse_profile
from copier_config.schema import (
    MappingProfile,
    PolicyDef,
    RenamePairDef,
    TransformerBindingDef,
)


def copier_from_file(path: Path | str, **kwargs):
    """Load a profile and build its Copier in one step."""
    return build_copier(load_profile(path), **kwargs)


__all__ = [
    "MappingProfile",
    "PolicyDef",
    "RenamePairDef",
    "TransformerBindingDef",
    "build_copier",
    "compute_checksum",
    "copier_from_file",
    "load_profile",
    "parse_profile",
    "resolve_reference",
]

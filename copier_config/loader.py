"""
Profile Loader (``copier_config.loader``).

Responsibility
--------------
Loads YAML mapping-profile files and parses them into typed
``copier_config.schema`` dataclass instances.  Loading is I/O at the edge;
the parsed profile is pure, frozen data.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Field names and paths are validated with the kernel's own rules at
  parse time, so a typo in a profile fails on load, not mid-copy.
* ``compute_checksum`` produces a deterministic SHA-256 hash for profile
  identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Wrong value shapes  -> ``ValueError``.
* Malformed field names  -> ``InvalidFieldPathError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from copier_config.schema import (
    MappingProfile,
    PolicyDef,
    RenamePairDef,
    TransformerBindingDef,
)
from copier_kernel.domain.fields import validate_name
from copier_kernel.logging_config import get_logger

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _as_list(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"{key} must be a list, got {value!r}")


def parse_policy(data: dict[str, Any] | None) -> PolicyDef:
    """Parse a PolicyDef; absent keys keep the lenient defaults."""
    data = data or {}
    return PolicyDef(
        ignore_type_errors=_as_bool(data.get("ignore_type_errors", True), "ignore_type_errors"),
        ignore_zero_values=_as_bool(data.get("ignore_zero_values", False), "ignore_zero_values"),
    )


def parse_rename_pair(data: dict[str, Any]) -> RenamePairDef:
    """
    Parse a RenamePairDef from a dict.

    ``targets`` may be a list or a single name.
    """
    targets = data.get("targets", data.get("target", ()))
    if isinstance(targets, str):
        targets = [targets]
    return RenamePairDef(
        origin=validate_name(data["origin"]),
        targets=tuple(validate_name(t) for t in _as_list(targets, "targets")),
    )


def parse_transformer_binding(data: dict[str, Any]) -> TransformerBindingDef:
    """Parse a TransformerBindingDef from a dict."""
    ref = data["ref"]
    if not isinstance(ref, str) or not ref:
        raise ValueError(f"transformer ref must be a non-empty string, got {ref!r}")
    return TransformerBindingDef(field=validate_name(data["field"]), ref=ref)


def parse_profile(data: dict[str, Any]) -> MappingProfile:
    """
    Parse a ``MappingProfile`` from a dict.

    Preconditions:
        - ``data`` must contain at minimum ``name``.
    Postconditions:
        - Returns a fully populated ``MappingProfile`` carrying the checksum
          of ``data``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if values have the wrong shape.
    """
    converters = tuple(str(c) for c in _as_list(data.get("converters"), "converters"))
    return MappingProfile(
        name=data["name"],
        version=int(data.get("version", 1)),
        description=data.get("description", ""),
        policy=parse_policy(data.get("policy")),
        converters=converters,
        rename_pairs=tuple(
            parse_rename_pair(item)
            for item in _as_list(data.get("rename_pairs"), "rename_pairs")
        ),
        transformers=tuple(
            parse_transformer_binding(item)
            for item in _as_list(data.get("transformers"), "transformers")
        ),
        checksum=compute_checksum(data),
    )


def load_profile(path: Path | str) -> MappingProfile:
    """Load and parse one YAML profile file."""
    path = Path(path)
    profile = parse_profile(load_yaml_file(path))
    logger.info(
        "profile_loaded",
        extra={
            "profile": profile.name,
            "version": profile.version,
            "checksum": profile.checksum,
            "path": str(path),
        },
    )
    return profile


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

"""
Copier Kernel

A generic value-mapping engine: copies a source value into a destination
of a structurally similar type, field by field, with:
- Type converters for specific (origin, target) pairs
- Field renaming, including fan-out and dotted multi-level paths
- Per-destination-field transformers applied before conversion
- Best-effort (ignore type errors) or strict per-call policies
"""

__version__ = "0.1.0"

from copier_kernel.domain.converters import (
    BUILTIN_CONVERTERS,
    STRING_TIME_CONVERTER,
    TIME_STRING_CONVERTER,
)
from copier_kernel.domain.fields import FieldPath, embedded
from copier_kernel.domain.policy import MappingPolicy
from copier_kernel.domain.registry import Converter, RenamePair
from copier_kernel.domain.shapes import Ref
from copier_kernel.exceptions import (
    ConfigurationError,
    ConversionError,
    CopierError,
)
from copier_kernel.services.copier import Copier, PendingCopy

__all__ = [
    "BUILTIN_CONVERTERS",
    "STRING_TIME_CONVERTER",
    "TIME_STRING_CONVERTER",
    "ConfigurationError",
    "ConversionError",
    "Converter",
    "Copier",
    "CopierError",
    "FieldPath",
    "MappingPolicy",
    "PendingCopy",
    "Ref",
    "RenamePair",
    "embedded",
]

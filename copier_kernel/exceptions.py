"""
Typed exception hierarchy for the copier kernel.

Every error carries a ``code`` class attribute (machine-readable) and keeps
its context as attributes, so callers catch by type and read structured data
instead of parsing messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CopierError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidConverterError
    |   +-- InvalidTransformerError
    |   +-- InvalidFieldPathError
    |   +-- FieldPathError
    |   +-- DestinationNotAddressableError
    |   +-- UnknownRegistrationError
    |
    +-- ConversionError
        +-- TypeConversionError
        +-- ConverterFailedError
        +-- SequenceConversionError
        +-- StructConstructionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_CONVERTER           | Converter fn missing or not callable
                | INVALID_TRANSFORMER         | Transformer not callable / wrong arity
                | INVALID_FIELD_PATH          | Empty or malformed field name/path
                | FIELD_PATH_UNRESOLVABLE     | Path walks into a non-struct or unknown field
                | DESTINATION_NOT_ADDRESSABLE | Destination is not a Ref or mutable struct
                | UNKNOWN_REGISTRATION        | Profile names an unknown converter/transformer
----------------|-----------------------------|-----------------------------------------
Conversion      | TYPE_CONVERSION_FAILED      | No converter, no native conversion
                | CONVERTER_FAILED            | A registered converter raised
                | SEQUENCE_CONVERSION_FAILED  | An element of a sequence failed
                | STRUCT_CONSTRUCTION_FAILED  | A destination dataclass refused its zero values

===============================================================================
HANDLING PATTERNS
===============================================================================

Configuration errors are programmer misuse: they are raised at registration
time (or on the first copy that walks a bad path) and are never affected by
the ignore-type-errors policy.

Conversion errors are data errors: raised from the mapping call unless the
policy ignores type errors, in which case the destination field is left at
its zero value and the walk continues.

    try:
        copier.copy(order, Ref(OrderView), policy=MappingPolicy.strict())
    except SequenceConversionError as e:
        log.warning("line_failed", extra={"index": e.index})
    except ConversionError as e:
        api_response(code=e.code)
"""

from typing import Any


def type_name(tp: Any) -> str:
    """Readable name for a class or typing construct."""
    if tp is None:
        return "None"
    name = getattr(tp, "__name__", None)
    if isinstance(tp, type) and name:
        return name
    return repr(tp).replace("typing.", "")


class CopierError(Exception):
    """
    Base exception for all copier errors.

    All subclasses must have a `code` class attribute.
    """

    code: str = "COPIER_ERROR"


# Configuration errors


class ConfigurationError(CopierError):
    """Base exception for invalid copier configuration or usage."""

    code: str = "CONFIGURATION_ERROR"


class InvalidConverterError(ConfigurationError):
    """A converter was registered without a usable function."""

    code: str = "INVALID_CONVERTER"

    def __init__(self, origin: Any, target: Any, reason: str):
        self.origin = type_name(origin)
        self.target = type_name(target)
        self.reason = reason
        super().__init__(
            f"Invalid converter {self.origin} -> {self.target}: {reason}"
        )


class InvalidTransformerError(ConfigurationError):
    """A transformer is not a one-argument callable."""

    code: str = "INVALID_TRANSFORMER"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid transformer for {field!r}: {reason}")


class InvalidFieldPathError(ConfigurationError):
    """A field name or dotted path is empty or malformed."""

    code: str = "INVALID_FIELD_PATH"

    def __init__(self, path: Any, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid field path {path!r}: {reason}")


class FieldPathError(ConfigurationError):
    """A dotted path cannot be resolved against a value or type."""

    code: str = "FIELD_PATH_UNRESOLVABLE"

    def __init__(self, path: str, segment: str, owner: Any, reason: str):
        self.path = path
        self.segment = segment
        self.owner = type_name(owner)
        self.reason = reason
        super().__init__(
            f"Cannot resolve {segment!r} of path {path!r} on {self.owner}: {reason}"
        )


class DestinationNotAddressableError(ConfigurationError):
    """The copy destination cannot be written through."""

    code: str = "DESTINATION_NOT_ADDRESSABLE"

    def __init__(self, destination_type: Any):
        self.destination_type = type_name(destination_type)
        super().__init__(
            "copier destination should be a Ref or a mutable dataclass instance, "
            f"got {self.destination_type}"
        )


class UnknownRegistrationError(ConfigurationError):
    """A mapping profile refers to a converter or transformer nobody supplied."""

    code: str = "UNKNOWN_REGISTRATION"

    def __init__(self, kind: str, name: str, available: list[str]):
        self.kind = kind
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown {kind} {name!r}. Available: {available}"
        )


# Conversion errors


class ConversionError(CopierError):
    """Base exception for values that could not be mapped."""

    code: str = "CONVERSION_ERROR"


class TypeConversionError(ConversionError):
    """No converter, native conversion or recursive shape applies."""

    code: str = "TYPE_CONVERSION_FAILED"

    def __init__(self, from_type: Any, to_type: Any):
        self.from_type = type_name(from_type)
        self.to_type = type_name(to_type)
        super().__init__(
            f"cannot convert value from {self.from_type} to {self.to_type}"
        )


class ConverterFailedError(ConversionError):
    """A registered converter raised while converting a value."""

    code: str = "CONVERTER_FAILED"

    def __init__(self, origin: Any, target: Any, reason: str):
        self.origin = type_name(origin)
        self.target = type_name(target)
        self.reason = reason
        super().__init__(
            f"Converter {self.origin} -> {self.target} failed: {reason}"
        )


class SequenceConversionError(ConversionError):
    """An element failed; ``partial_result`` holds the elements built so far."""

    code: str = "SEQUENCE_CONVERSION_FAILED"

    def __init__(self, index: int, partial_result: Any, reason: str):
        self.index = index
        self.partial_result = partial_result
        self.reason = reason
        super().__init__(f"Sequence element {index} failed: {reason}")


class StructConstructionError(ConversionError):
    """A destination dataclass could not be instantiated."""

    code: str = "STRUCT_CONSTRUCTION_FAILED"

    def __init__(self, struct_type: Any, reason: str):
        self.struct_type = type_name(struct_type)
        self.reason = reason
        super().__init__(f"Cannot construct {self.struct_type}: {reason}")

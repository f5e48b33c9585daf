"""Core utilities and infrastructure."""

from .config import Settings, get_settings
from .errors import (
    GenUIError,
    SchemaDefinitionError,
    ElementValidationError,
    UnknownComponentError,
    PropSchemaError,
    ChildrenNotAllowedError,
    DispatchError,
    UnknownActionError,
    HandlerNotFoundError,
    InvalidParamsError,
    JSONParseError,
)
from .validate import GenerationRequest
from .logging_config import configure_logging, get_logger, LogContext
from .stream import StreamCounter
from .json import (
    extract_json,
    decode_json,
    safe_json_dumps,
    strip_code_fence,
    validate_json_size,
    validate_json_depth,
)


__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "GenUIError",
    "SchemaDefinitionError",
    "ElementValidationError",
    "UnknownComponentError",
    "PropSchemaError",
    "ChildrenNotAllowedError",
    "DispatchError",
    "UnknownActionError",
    "HandlerNotFoundError",
    "InvalidParamsError",
    "JSONParseError",
    # Validation
    "GenerationRequest",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Streaming
    "StreamCounter",
    # JSON
    "extract_json",
    "decode_json",
    "safe_json_dumps",
    "strip_code_fence",
    "validate_json_size",
    "validate_json_depth",
]

"""Fast, type-safe JSON parsing with multiple backends."""

from typing import Any
import json

import msgspec
import orjson
from json_repair import repair_json

from .errors import JSONParseError

_decoder = msgspec.json.Decoder()


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    working_text = text.strip()
    if "```" not in working_text:
        return working_text

    if "```json" in working_text:
        start_marker = working_text.find("```json") + 7
    else:
        start_marker = working_text.find("```") + 3

    end_marker = working_text.find("```", start_marker)
    if end_marker == -1:
        return working_text[start_marker:].strip()
    return working_text[start_marker:end_marker].strip()


def extract_json_boundaries(text: str) -> tuple[str, int, int] | None:
    """
    Extract JSON string and boundaries from text.

    Accepts both objects and arrays; whichever opens first wins.

    Args:
        text: Text potentially containing JSON

    Returns:
        (extracted_text, start, end) or None if not found
    """
    working_text = strip_code_fence(text)

    starts = [i for i in (working_text.find("{"), working_text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if working_text[start] == "{" else "]"
    end = working_text.rfind(closer)

    if end == -1 or end < start:
        return None

    return (working_text, start, end + 1)


def extract_json(text: str, repair: bool = True) -> Any:
    """
    Extract and parse JSON from text with automatic extraction and fallbacks.

    Args:
        text: Text containing a JSON object or array
        repair: Attempt to repair invalid JSON with json_repair

    Returns:
        Parsed JSON value (dict or list)

    Raises:
        JSONParseError: If parsing fails
    """
    boundaries = extract_json_boundaries(text)
    if boundaries is None:
        raise JSONParseError("No JSON object or array found in text")

    extracted_text, start, end = boundaries
    json_str = extracted_text[start:end]

    # Try msgspec first (fastest)
    try:
        return _decoder.decode(json_str.encode("utf-8"))
    except msgspec.DecodeError as e:
        if not repair:
            raise JSONParseError(f"Invalid JSON: {e}", e) from e

    # Last resort: try json_repair
    try:
        repaired = repair_json(json_str)
        result = json.loads(repaired)
    except (ValueError, TypeError) as repair_error:
        raise JSONParseError(f"JSON repair failed: {repair_error}", repair_error) from repair_error
    if not isinstance(result, (dict, list)):
        raise JSONParseError(f"Expected object or array, got {type(result).__name__}")
    return result


def decode_json(data: str | bytes) -> Any:
    """
    Decode one complete JSON document.

    Raises:
        JSONParseError: If the document is not valid JSON
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return _decoder.decode(data)
    except msgspec.DecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e) from e


def safe_json_dumps(obj: Any, **kwargs: Any) -> str:
    """
    Encode object to JSON string using fastest available library.

    Args:
        obj: Object to encode
        **kwargs: Additional arguments (indent, etc.)

    Returns:
        JSON string
    """
    indent = kwargs.get("indent", 0)

    # Use orjson for compact output (fastest)
    if indent == 0:
        try:
            return orjson.dumps(obj).decode("utf-8")
        except (TypeError, ValueError):
            # Fallback for edge cases (e.g., integers outside 64-bit range)
            pass

    # Use stdlib for pretty-printed output or as fallback (most compatible)
    return json.dumps(obj, indent=indent if indent > 0 else None, default=str)


def validate_json_size(data: str, max_size: int, name: str = "JSON") -> None:
    """
    Validate JSON size to prevent unbounded buffering.

    Args:
        data: JSON text to validate
        max_size: Maximum allowed size in bytes
        name: Name for error messages

    Raises:
        JSONParseError: If size exceeds limit
    """
    size = len(data.encode("utf-8"))
    if size > max_size:
        raise JSONParseError(f"{name} size {size} bytes exceeds maximum {max_size} bytes")


def validate_json_depth(obj: Any, max_depth: int = 20, current_depth: int = 0) -> None:
    """
    Validate JSON nesting depth to prevent stack overflow.

    Args:
        obj: Object to validate
        max_depth: Maximum allowed nesting depth
        current_depth: Current depth (internal)

    Raises:
        JSONParseError: If depth exceeds limit
    """
    if current_depth > max_depth:
        raise JSONParseError(f"JSON nesting depth {current_depth} exceeds maximum {max_depth}")

    if isinstance(obj, dict):
        for value in obj.values():
            validate_json_depth(value, max_depth, current_depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            validate_json_depth(item, max_depth, current_depth + 1)

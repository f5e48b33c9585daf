"""Built-in validator functions."""

import re
from typing import Any, Awaitable, Callable
from urllib.parse import urlparse

ValidatorFn = Callable[[Any, dict[str, Any]], bool | Awaitable[bool]]

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def required(value: Any, args: dict[str, Any]) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def email(value: Any, args: dict[str, Any]) -> bool:
    return isinstance(value, str) and bool(_EMAIL.match(value))


def min_length(value: Any, args: dict[str, Any]) -> bool:
    if not isinstance(value, (str, list)):
        return False
    bound = _number(args.get("min", 0))
    return bound is not None and len(value) >= bound


def max_length(value: Any, args: dict[str, Any]) -> bool:
    if not isinstance(value, (str, list)):
        return False
    bound = _number(args.get("max"))
    return bound is not None and len(value) <= bound


def pattern(value: Any, args: dict[str, Any]) -> bool:
    regex = args.get("pattern")
    if not isinstance(value, str) or not isinstance(regex, str):
        return False
    try:
        return re.search(regex, value) is not None
    except re.error:
        return False


def minimum(value: Any, args: dict[str, Any]) -> bool:
    number, bound = _number(value), _number(args.get("min"))
    return number is not None and bound is not None and number >= bound


def maximum(value: Any, args: dict[str, Any]) -> bool:
    number, bound = _number(value), _number(args.get("max"))
    return number is not None and bound is not None and number <= bound


def numeric(value: Any, args: dict[str, Any]) -> bool:
    return _number(value) is not None


def url(value: Any, args: dict[str, Any]) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def matches(value: Any, args: dict[str, Any]) -> bool:
    return value == args.get("other")


BUILTIN_VALIDATORS: dict[str, ValidatorFn] = {
    "required": required,
    "email": email,
    "minLength": min_length,
    "maxLength": max_length,
    "pattern": pattern,
    "min": minimum,
    "max": maximum,
    "numeric": numeric,
    "url": url,
    "matches": matches,
}

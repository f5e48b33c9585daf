"""Slash-delimited pointer paths into a JSON-like document."""

import copy
import math
from typing import Any, Callable


def parse_path(path: str) -> tuple[str, ...]:
    """
    Split a pointer path into segments.

    Empty segments are ignored, so ``"/form/email"``, ``"form/email"`` and
    ``"/form//email/"`` address the same value. ``~1`` and ``~0`` unescape to
    ``/`` and ``~`` as in JSON pointers.
    """
    return tuple(
        segment.replace("~1", "/").replace("~0", "~")
        for segment in path.split("/")
        if segment
    )


def join_path(segments: tuple[str, ...]) -> str:
    """Inverse of parse_path."""
    if not segments:
        return "/"
    return "/" + "/".join(s.replace("~", "~0").replace("/", "~1") for s in segments)


def is_index(segment: str) -> bool:
    return segment.isascii() and segment.isdigit()


def _fits(container: Any, segment: str) -> bool:
    """Whether segment can address into container without replacing it."""
    if isinstance(container, dict):
        return True
    return isinstance(container, list) and is_index(segment)


def get_in(document: Any, segments: tuple[str, ...]) -> Any:
    """Read the value at segments; missing paths read as None."""
    current = document
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, list):
            if not is_index(segment) or int(segment) >= len(current):
                return None
            current = current[int(segment)]
        else:
            return None
    return current


def set_in(document: Any, segments: tuple[str, ...], value: Any) -> Any:
    """
    Write value at segments and return the (possibly new) document root.

    Missing intermediate containers are created: a numeric next segment
    creates a list, anything else a dict. Lists are padded with None when
    an index lies past the end. A scalar standing in the way is replaced,
    and so is a list addressed by a non-numeric key.
    """
    if not segments:
        return value

    def fresh(segment: str) -> Any:
        return [] if is_index(segment) else {}

    if not _fits(document, segments[0]):
        document = fresh(segments[0])

    current = document
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1

        if isinstance(current, list):
            index = int(segment)
            if index >= len(current):
                current.extend([None] * (index + 1 - len(current)))
            if last:
                current[index] = value
                break
            if not _fits(current[index], segments[i + 1]):
                current[index] = fresh(segments[i + 1])
            current = current[index]
        else:
            if last:
                current[segment] = value
                break
            if not _fits(current.get(segment), segments[i + 1]):
                current[segment] = fresh(segments[i + 1])
            current = current[segment]

    return document


def is_path_ref(value: Any) -> bool:
    """A path reference is an object with exactly one string ``path`` field."""
    return isinstance(value, dict) and len(value) == 1 and isinstance(value.get("path"), str)


def resolve_value(value: Any, lookup: Callable[[str], Any]) -> Any:
    """Resolve a literal-or-PathRef into a value copy; literals pass through."""
    if is_path_ref(value):
        return copy.deepcopy(lookup(value["path"]))
    return value


def is_truthy(value: Any) -> bool:
    """
    Truthiness of generated JSON values.

    None, False, 0, "" and NaN are falsy. Empty lists and objects are
    truthy, matching how the generating model reasons about JSON.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True

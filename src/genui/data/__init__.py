"""Reactive data store and path helpers."""

from .paths import parse_path, join_path, get_in, set_in, is_path_ref, resolve_value, is_truthy
from .store import DataStore

__all__ = [
    "DataStore",
    "parse_path",
    "join_path",
    "get_in",
    "set_in",
    "is_path_ref",
    "resolve_value",
    "is_truthy",
]

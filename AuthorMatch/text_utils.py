from __future__ import annotations

import re
from typing import Any

from .exceptions import NUMERIC_ERRORS


__all__ = [
    "safe_get_nested",
    "to_int",
    "safe_file_id",
    "pad_index",
]

# characters that cannot appear in file names on common file systems
_RESERVED_PATH_CHARS = re.compile(r'[/\\:*?"<>|]+')


def safe_get_nested(obj: Any, *keys: str, default=None) -> Any:
    """
    Safely get a nested dictionary value with null-safety, traversing multiple keys
    and returning a default if any key is missing.
    """
    current = obj
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current if current is not None else default


def to_int(value: Any, default: int = 0) -> int:
    """
    Interpret counts that the search service reports as strings ("12"),
    returning the default for anything that is not a whole number.
    """
    if isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except NUMERIC_ERRORS:
        return default


def safe_file_id(name: str) -> str:
    """
    Turn an identity string into a file name fragment: spaces become
    underscores and reserved path characters become dashes.

    The mapping is not injective: "a b" and "a_b", or "x/y" and "x-y", give
    the same fragment and so share one cache file.
    """
    file_id = name.replace(" ", "_")
    return _RESERVED_PATH_CHARS.sub("-", file_id)


def pad_index(index: int, width: int, fill: str = "0") -> str:
    return str(index).rjust(width, fill)

"""Dotted-path access into parsed JSON documents."""

from __future__ import annotations

from typing import Any, List, Tuple


def split_path(path: str) -> List[str]:
    """Split `$.a.b`, `.a.b`, or `a.b` into segments; the root yields []."""
    trimmed = path.strip()
    if trimmed.startswith("$"):
        trimmed = trimmed[1:]
    trimmed = trimmed.lstrip(".")
    return [segment for segment in trimmed.split(".") if segment]


def json_path(path: str) -> str:
    """Render a dotted path in `$.a.b` form for issue reports."""
    segments = split_path(path)
    return "$." + ".".join(segments) if segments else "$"


def lookup(document: Any, path: str) -> Tuple[bool, Any]:
    """Return `(found, value)` for `path`; list indices are accepted when reading."""
    current = document
    for segment in split_path(path):
        if isinstance(current, dict):
            if segment not in current:
                return False, None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return False, None
            current = current[index]
        else:
            return False, None
    return True, current


def get(document: Any, path: str, default: Any = None) -> Any:
    found, value = lookup(document, path)
    return value if found else default


def set_value(document: Any, path: str, value: Any) -> Any:
    """Set `value` at `path`, creating missing intermediate objects.

    Returns the (possibly replaced) document root. A segment that walks
    through a non-object leaves the document unchanged.
    """
    segments = split_path(path)
    if not segments:
        return value
    current = document
    for segment in segments[:-1]:
        if not isinstance(current, dict):
            return document
        if segment not in current:
            current[segment] = {}
        current = current[segment]
    if isinstance(current, dict):
        current[segments[-1]] = value
    return document


def remove(document: Any, path: str) -> Any:
    """Remove the value at `path` if it exists; never creates intermediates."""
    segments = split_path(path)
    if not segments:
        return None
    current = document
    for segment in segments[:-1]:
        if not isinstance(current, dict) or segment not in current:
            return document
        current = current[segment]
    if isinstance(current, dict):
        current.pop(segments[-1], None)
    return document


def json_equal(left: Any, right: Any) -> bool:
    """Structural equality that never treats booleans as numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            json_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


__all__ = ["get", "json_equal", "json_path", "lookup", "remove", "set_value", "split_path"]

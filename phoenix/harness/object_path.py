"""Dotted-path lookups into decoded JSON bodies."""

from typing import Any

from phoenix.harness.errors import FatalError

_MISSING = object()


def extract(data: Any, path: str, default: Any = _MISSING) -> Any:
    """Walk ``path`` (``a.b.0.c``) through nested dicts and lists.

    Numeric segments index into lists. Keys may contain ``/`` so task names
    like ``xpack/rollup/job`` work as single segments.

    Args:
        data: Decoded JSON value
        path: Dot separated path
        default: Value returned when the path does not resolve

    Returns:
        The value found at ``path``

    Raises:
        FatalError: If the path does not resolve and no default was given
    """
    current = data
    for segment in path.split("."):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            if default is not _MISSING:
                return default
            raise FatalError(f"response has no value at [{path}]", details=data)
    return current

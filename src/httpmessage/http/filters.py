"""
Value filters shared by the header collection and the parameter bags.

A filter validates (and for numbers, converts) a raw string pulled out of a
bag. Values that fail validation come back as ``None`` or as the
``default`` option when one is given, never as an exception:

    headers.filter("Content-Length", filter_kind=FilterKind.INT)   # [42]
    server.filter("HTTPS", False, FilterKind.BOOLEAN)              # True
"""

import re
from enum import Enum
from typing import Any, Callable, Dict, Optional


class FilterKind(Enum):
    """Available filters."""

    DEFAULT = "default"     # Return the value unchanged
    INT = "int"             # Integer, optional min_range/max_range
    FLOAT = "float"         # Float, optional min_range/max_range
    BOOLEAN = "boolean"     # 1/true/on/yes vs 0/false/off/no/""
    REGEXP = "regexp"       # Keep the value if options["regexp"] matches
    CALLBACK = "callback"   # Pass through options["callback"]


_TRUE_STRINGS = {"1", "true", "on", "yes"}
_FALSE_STRINGS = {"0", "false", "off", "no", ""}


def _in_range(number: Any, options: Dict[str, Any]) -> bool:
    if "min_range" in options and number < options["min_range"]:
        return False
    if "max_range" in options and number > options["max_range"]:
        return False
    return True


def _filter_int(value: Any, options: Dict[str, Any]) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            return None
    return number if _in_range(number, options) else None


def _filter_float(value: Any, options: Dict[str, Any]) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if _in_range(number, options) else None


def _filter_boolean(value: Any, options: Dict[str, Any]) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


def _filter_regexp(value: Any, options: Dict[str, Any]) -> Any:
    pattern = options.get("regexp")
    if pattern is None:
        raise ValueError("FilterKind.REGEXP requires a 'regexp' option")
    return value if re.search(pattern, str(value)) else None


def _filter_callback(value: Any, options: Dict[str, Any]) -> Any:
    callback: Optional[Callable[[Any], Any]] = options.get("callback")
    if not callable(callback):
        raise ValueError("FilterKind.CALLBACK requires a callable 'callback' option")
    return callback(value)


_FILTERS: Dict[FilterKind, Callable[[Any, Dict[str, Any]], Any]] = {
    FilterKind.DEFAULT: lambda value, options: value,
    FilterKind.INT: _filter_int,
    FilterKind.FLOAT: _filter_float,
    FilterKind.BOOLEAN: _filter_boolean,
    FilterKind.REGEXP: _filter_regexp,
    FilterKind.CALLBACK: _filter_callback,
}


def apply_filter(
    value: Any,
    kind: FilterKind = FilterKind.DEFAULT,
    options: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Apply a filter to a scalar or to every element of a list.

    Args:
        value: Raw value, or a list/tuple of raw values.
        kind: Which filter to run.
        options: Filter options. ``default`` replaces values that fail.

    Returns:
        The filtered scalar, or a list of filtered values. ``None`` passes
        through untouched.
    """
    if value is None:
        return None

    options = options or {}
    func = _FILTERS[kind]

    def run(item: Any) -> Any:
        result = func(item, options)
        if result is None:
            return options.get("default")
        return result

    if isinstance(value, (list, tuple)):
        return [run(item) for item in value]
    return run(value)

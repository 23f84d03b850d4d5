"""Value conversion for filter parameters.

Filter values arrive as untyped strings. Each column kind has one converter
returning a typed value or raising `TypeConversionError`; nothing is ever
silently dropped.
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from .constants import ColumnKind
from .exceptions import TypeConversionError

__all__ = ("convert_value", "CONVERTERS")

_INT_RE = re.compile(r"^[+-]?\d+$")
_UINT_RE = re.compile(r"^\+?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}


def _to_string(value: str) -> str:
    return value


def _to_int(value: str) -> int:
    if not _INT_RE.match(value):
        raise ValueError("not an integer")
    return int(value)


def _to_uint(value: str) -> int:
    if not _UINT_RE.match(value):
        raise ValueError("not an unsigned integer")
    return int(value)


def _to_float(value: str) -> float:
    if not _FLOAT_RE.match(value):
        raise ValueError("not a decimal number")
    return float(value)


def _to_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError("not a boolean")


def _to_time(value: str) -> datetime:
    # epoch milliseconds first, ISO-8601 as a fallback
    if _INT_RE.match(value):
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    return datetime.fromisoformat(value)


CONVERTERS: Dict[ColumnKind, Callable[[str], Any]] = {
    ColumnKind.STRING: _to_string,
    ColumnKind.JSON: _to_string,
    ColumnKind.INT: _to_int,
    ColumnKind.UINT: _to_uint,
    ColumnKind.FLOAT: _to_float,
    ColumnKind.BOOL: _to_bool,
    ColumnKind.TIME: _to_time,
}


def convert_value(kind: ColumnKind, value: str, filter_name: str = "") -> Any:
    """Convert one raw filter value to the column kind.

    Args:
        kind: Target column kind
        value: Raw string value from the request
        filter_name: Filter path, reported in errors

    Returns:
        The typed value to bind

    Raises:
        TypeConversionError: If the value does not parse as `kind`
    """
    converter = CONVERTERS.get(kind)
    if converter is None:
        raise TypeConversionError("Column kind not supported", filter=filter_name, value=value, kind=str(kind))
    try:
        return converter(value.strip() if kind is not ColumnKind.STRING else value)
    except (ValueError, OverflowError, OSError) as e:
        raise TypeConversionError(
            f"Cannot convert filter value: {e}", filter=filter_name, value=value, kind=kind.value
        ) from e

"""
Type coercion: raw (usually textual) values to declared field types.

Pure functions, no I/O. Readers and the dynamic mapper call ``coerce`` for
every value they place into a typed record field.

Policy:
    - ``None`` or text that is empty after trimming coerces to ``None`` for
      every field type, ``string`` included.
    - A value already of the field's storage type is returned unchanged.
    - ``object`` and ``unknown`` fields pass values through unchanged.
    - A parse failure raises CoercionError; no default is ever substituted.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from etl_kernel.domain.schema import (
    INTEGER_BOUNDS,
    FieldType,
    parse_field_type,
    storage_type,
)
from etl_kernel.exceptions import CoercionError

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
    r"|[+-]?(?:nan|inf|infinity)",
    re.IGNORECASE,
)
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

_PASSTHROUGH = frozenset({FieldType.OBJECT, FieldType.UNKNOWN})


def is_empty(value: Any) -> bool:
    """True for None and for text that is blank after trimming."""
    return value is None or (isinstance(value, str) and not value.strip())


def _is_assignable(value: Any, field_type: FieldType) -> bool:
    target = storage_type(field_type)
    if target is None:
        return False
    if isinstance(value, bool):
        return target is bool
    return isinstance(value, target)


def _parse_integer(text: str, field_type: FieldType) -> int:
    if not _INTEGER_RE.fullmatch(text):
        raise ValueError(f"not a decimal integer: {text!r}")
    result = int(text)
    _check_bounds(result, field_type)
    return result


def _check_bounds(value: int, field_type: FieldType) -> None:
    low, high = INTEGER_BOUNDS[field_type]
    if not low <= value <= high:
        raise ValueError(f"{value} is outside the {field_type.value} range [{low}, {high}]")


def _parse_float(text: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"not a floating-point number: {text!r}")
    return float(text)


def _parse_boolean(text: str) -> bool:
    low = text.lower()
    if low == "true":
        return True
    if low == "false":
        return False
    raise ValueError(f"expected 'true' or 'false', got {text!r}")


def _parse_date(text: str) -> date:
    if not _DATE_RE.fullmatch(text):
        raise ValueError(f"expected an ISO-8601 date (YYYY-MM-DD), got {text!r}")
    return date.fromisoformat(text)


def coerce(raw_value: Any, field_type: FieldType | str) -> Any:
    """
    Convert ``raw_value`` to the semantic type ``field_type``.

    Args:
        raw_value: Value to convert, typically a string read from a file.
        field_type: Declared type of the destination field (enum or tag).

    Returns:
        The typed value, or None for empty input.

    Raises:
        CoercionError: The value does not parse as the declared type.
    """
    ftype = parse_field_type(field_type)

    if is_empty(raw_value):
        return None

    if ftype in _PASSTHROUGH:
        return raw_value

    if _is_assignable(raw_value, ftype):
        if ftype in INTEGER_BOUNDS:
            try:
                _check_bounds(raw_value, ftype)
            except ValueError as exc:
                raise CoercionError(raw_value, ftype.value, exc) from exc
        return raw_value

    if ftype == FieldType.STRING:
        return str(raw_value)

    text = raw_value.strip() if isinstance(raw_value, str) else str(raw_value).strip()
    try:
        if ftype in (FieldType.INTEGER, FieldType.LONG):
            return _parse_integer(text, ftype)
        if ftype in (FieldType.FLOAT, FieldType.DOUBLE):
            return _parse_float(text)
        if ftype == FieldType.BOOLEAN:
            return _parse_boolean(text)
        if ftype == FieldType.DATE:
            return _parse_date(text)
    except ValueError as exc:
        raise CoercionError(raw_value, ftype.value, exc) from exc

    return raw_value

"""
Record field schemas.

A field schema is an ordered tuple of FieldDefinition, each naming a field
and its declared type. Composite (``object``) fields carry their own nested
schema. This is part of the functional core - no I/O.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any


class FieldType(str, Enum):
    """Semantic field types a schema may declare."""

    STRING = "string"
    INTEGER = "integer"  # 32-bit signed
    LONG = "long"  # 64-bit signed
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    DATE = "date"  # ISO 8601 date (YYYY-MM-DD)
    OBJECT = "object"  # Nested record
    UNKNOWN = "unknown"  # Passthrough


_TYPE_ALIASES: dict[str, FieldType] = {
    "str": FieldType.STRING,
    "text": FieldType.STRING,
    "int": FieldType.INTEGER,
    "bool": FieldType.BOOLEAN,
}

# Python storage type per field type. Coercion produces values of exactly
# these types, and synthesized records annotate their slots with them.
STORAGE_TYPES: dict[FieldType, type] = {
    FieldType.STRING: str,
    FieldType.INTEGER: int,
    FieldType.LONG: int,
    FieldType.FLOAT: float,
    FieldType.DOUBLE: float,
    FieldType.BOOLEAN: bool,
    FieldType.DATE: date,
}

INTEGER_BOUNDS: dict[FieldType, tuple[int, int]] = {
    FieldType.INTEGER: (-(2**31), 2**31 - 1),
    FieldType.LONG: (-(2**63), 2**63 - 1),
}


def parse_field_type(type_tag: str | FieldType | None) -> FieldType:
    """
    Resolve a configured type tag to a FieldType.

    Tags are matched case-insensitively, with a few aliases. Unrecognised
    tags resolve to UNKNOWN so values of that field pass through untouched.
    """
    if isinstance(type_tag, FieldType):
        return type_tag
    if not type_tag:
        return FieldType.UNKNOWN
    key = str(type_tag).strip().lower()
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]
    try:
        return FieldType(key)
    except ValueError:
        return FieldType.UNKNOWN


def is_known_type_tag(type_tag: str | None) -> bool:
    """True when a tag names a FieldType (directly or via alias)."""
    if not type_tag:
        return False
    key = str(type_tag).strip().lower()
    return key in _TYPE_ALIASES or key in FieldType._value2member_map_


def storage_type(field_type: FieldType) -> type | None:
    """Python type values of this field are stored as; None if unconstrained."""
    return STORAGE_TYPES.get(field_type)


@dataclass(frozen=True)
class FieldDefinition:
    """
    One named, typed field in a schema.

    ``type_tag`` keeps the configured spelling so diagnostics can quote it;
    ``field_type`` is the resolved semantic type.
    """

    name: str
    type_tag: str = FieldType.STRING.value
    fields: tuple[FieldDefinition, ...] = ()

    @property
    def field_type(self) -> FieldType:
        return parse_field_type(self.type_tag)

    @property
    def is_composite(self) -> bool:
        return self.field_type == FieldType.OBJECT

    def canonical(self) -> dict[str, Any]:
        """Order-preserving, JSON-safe representation used for fingerprints."""
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.field_type.value,
        }
        if self.fields:
            data["fields"] = [f.canonical() for f in self.fields]
        return data


def split_path(path: str) -> list[str]:
    """Split a dotted field path into its segments."""
    return path.split(".")


def field_paths(
    fields: Sequence[FieldDefinition],
    prefix: str = "",
) -> Iterator[str]:
    """
    Recursively iterate all field paths.

    Yields:
        Field paths in dot notation, composite fields before their children.
    """
    for f in fields:
        path = f"{prefix}.{f.name}" if prefix else f.name
        yield path
        if f.fields:
            yield from field_paths(f.fields, path)


def find_field(
    fields: Sequence[FieldDefinition],
    path: str,
) -> FieldDefinition | None:
    """Return the definition at a dotted path, or None if it is not declared."""
    current: Sequence[FieldDefinition] = fields
    found: FieldDefinition | None = None
    for segment in split_path(path):
        found = next((f for f in current if f.name == segment), None)
        if found is None:
            return None
        current = found.fields
    return found


def shape_mismatch(
    source: FieldDefinition,
    target: FieldDefinition,
) -> str | None:
    """
    Why a value of field ``source`` cannot be copied into field ``target``.

    An object field maps only onto an object field, and every nested field
    of the target must exist on the source under the same name. Nested
    fields are compared recursively.

    Returns:
        A description of the first incompatibility, or None.
    """
    if source.is_composite != target.is_composite:
        return (
            f"'{source.name}' ({source.field_type.value}) cannot be mapped to "
            f"'{target.name}' ({target.field_type.value})"
        )
    if not target.is_composite:
        return None
    for child in target.fields:
        counterpart = next((f for f in source.fields if f.name == child.name), None)
        if counterpart is None:
            return f"nested field '{target.name}.{child.name}' has no counterpart in '{source.name}'"
        problem = shape_mismatch(counterpart, child)
        if problem is not None:
            return problem
    return None


def schema_fingerprint(fields: Sequence[FieldDefinition]) -> str:
    """SHA-256 over the canonical JSON form of a field schema."""
    canonical = json.dumps(
        [f.canonical() for f in fields],
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

"""
Generic record access by field name or dotted path.

``get_field`` and ``set_field`` work on any record representation through
a small capability interface, RecordAccess, with one implementation per
representation:

    SynthesizedRecord   declared slots only; nested types known
    Mapping / dict      any key; intermediates become plain dicts
    other objects       dataclass fields or existing attributes;
                        intermediates built from dataclass type hints

Reads stop at the first None intermediate and return None. Writes create
missing intermediates with their zero-argument constructor.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import MutableMapping
from typing import Any, Protocol, runtime_checkable

from etl_kernel.domain.records import SynthesizedRecord
from etl_kernel.domain.schema import split_path
from etl_kernel.exceptions import FieldAccessError


@runtime_checkable
class RecordAccess(Protocol):
    """Field-level capabilities of one record representation."""

    accepts_new_fields: bool

    def has_field(self, record: Any, name: str) -> bool: ...

    def get(self, record: Any, name: str) -> Any: ...

    def set(self, record: Any, name: str, value: Any) -> None: ...

    def new_child(self, record: Any, name: str) -> Any | None:
        """Default-constructed value for an intermediate field, or None if unknown."""
        ...


class _SynthesizedAccess:
    accepts_new_fields = False

    def has_field(self, record: SynthesizedRecord, name: str) -> bool:
        return type(record).__record_type__.definition(name) is not None

    def get(self, record: SynthesizedRecord, name: str) -> Any:
        return getattr(record, name)

    def set(self, record: SynthesizedRecord, name: str, value: Any) -> None:
        setattr(record, name, value)

    def new_child(self, record: SynthesizedRecord, name: str) -> Any | None:
        child = type(record).__record_type__.nested_type(name)
        return child.new() if child is not None else None


class _MappingAccess:
    accepts_new_fields = True

    def has_field(self, record: MutableMapping, name: str) -> bool:
        return name in record

    def get(self, record: MutableMapping, name: str) -> Any:
        return record[name]

    def set(self, record: MutableMapping, name: str, value: Any) -> None:
        record[name] = value

    def new_child(self, record: MutableMapping, name: str) -> Any | None:
        return {}


def _constructible_class(hint: Any) -> type | None:
    """The concrete class in a hint such as ``Address | None``."""
    if isinstance(hint, type):
        return hint
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        candidates = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(candidates) == 1 and isinstance(candidates[0], type):
            return candidates[0]
    return None


class _ObjectAccess:
    accepts_new_fields = False

    def has_field(self, record: Any, name: str) -> bool:
        if dataclasses.is_dataclass(record):
            return name in {f.name for f in dataclasses.fields(record)}
        return hasattr(record, name)

    def get(self, record: Any, name: str) -> Any:
        return getattr(record, name)

    def set(self, record: Any, name: str, value: Any) -> None:
        setattr(record, name, value)

    def new_child(self, record: Any, name: str) -> Any | None:
        try:
            hints = typing.get_type_hints(type(record))
        except (NameError, TypeError):
            return None
        cls = _constructible_class(hints.get(name))
        if cls is None:
            return None
        try:
            return cls()
        except TypeError:
            return None


_SYNTHESIZED = _SynthesizedAccess()
_MAPPING = _MappingAccess()
_OBJECT = _ObjectAccess()

_registered: dict[type, RecordAccess] = {}


def register_record_access(record_type: type, access: RecordAccess) -> None:
    """
    Use ``access`` for instances of ``record_type`` (and its subclasses).

    Raises:
        ValueError: If ``record_type`` already has a registered access.
    """
    if record_type in _registered:
        raise ValueError(f"Record access already registered for {record_type.__name__}")
    _registered[record_type] = access


def access_for(record: Any) -> RecordAccess:
    """Capability implementation for a record instance."""
    for cls in type(record).__mro__:
        if cls in _registered:
            return _registered[cls]
    if isinstance(record, SynthesizedRecord):
        return _SYNTHESIZED
    if isinstance(record, MutableMapping):
        return _MAPPING
    return _OBJECT


def _type_label(record: Any) -> str:
    if isinstance(record, SynthesizedRecord):
        return type(record).__record_type__.qualified_name
    return type(record).__name__


def _segments(record: Any, path: str) -> list[str]:
    segments = split_path(path) if isinstance(path, str) else []
    if not segments or any(not s for s in segments):
        raise FieldAccessError(_type_label(record), str(path), str(path), reason="malformed path")
    return segments


def get_field(record: Any, path: str) -> Any:
    """
    Read the value at ``path`` (``name`` or ``a.b.c``).

    Returns:
        The value, or None when any intermediate is None.

    Raises:
        FieldAccessError: A segment does not exist on the record it is
            applied to.
    """
    current = record
    for segment in _segments(record, path):
        if current is None:
            return None
        access = access_for(current)
        if not access.has_field(current, segment):
            raise FieldAccessError(_type_label(current), path, segment)
        current = access.get(current, segment)
    return current


def _check_writable(access: RecordAccess, record: Any, path: str, segment: str) -> bool:
    """True if ``segment`` already exists; raise if it cannot be added."""
    if access.has_field(record, segment):
        return True
    if not access.accepts_new_fields:
        raise FieldAccessError(_type_label(record), path, segment)
    return False


def set_field(record: Any, path: str, value: Any) -> None:
    """
    Write ``value`` at ``path``, creating missing intermediates.

    Raises:
        FieldAccessError: A segment does not exist, or a missing
            intermediate has no zero-argument constructor.
    """
    segments = _segments(record, path)
    current = record
    for segment in segments[:-1]:
        access = access_for(current)
        exists = _check_writable(access, current, path, segment)
        child = access.get(current, segment) if exists else None
        if child is None:
            child = access.new_child(current, segment)
            if child is None:
                raise FieldAccessError(
                    _type_label(current),
                    path,
                    segment,
                    reason=f"cannot create intermediate '{segment}'",
                )
            access.set(current, segment, child)
        current = child

    access = access_for(current)
    _check_writable(access, current, path, segments[-1])
    access.set(current, segments[-1], value)

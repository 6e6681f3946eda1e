"""
Reader / writer adapter protocols, probe DTO and shared record helpers.

Contract:
    SourceAdapter.read() yields one synthesized record per source record
    (streaming), with every value coerced to its declared field type.
    SourceAdapter.probe() returns a quick snapshot: row count, columns,
    sample rows.
    TargetAdapter.open() returns a RecordSink; the caller writes chunks
    of records to it and always closes it.

Architecture: etl_pipeline/adapters. Format I/O only.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from etl_config.schema import DataFormat, RecordDescriptor
from etl_kernel.domain.accessor import get_field
from etl_kernel.domain.coercion import coerce
from etl_kernel.domain.records import RecordTypeHandle, SynthesizedRecord
from etl_kernel.domain.schema import FieldDefinition
from etl_kernel.exceptions import CoercionError, ConfigurationError, RecordReadError


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading one storage format into synthesized records."""

    format: DataFormat

    def read(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> Iterator[SynthesizedRecord]:
        """Yield one record per source record. Streams; does not load entire file."""
        ...

    def probe(self, descriptor: RecordDescriptor) -> SourceProbe:
        """Quick probe: row count, detected columns, sample rows."""
        ...


@runtime_checkable
class RecordSink(Protocol):
    """An open destination accepting chunks of records."""

    def write(self, records: Sequence[SynthesizedRecord]) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class TargetAdapter(Protocol):
    """Protocol for writing synthesized records in one storage format."""

    format: DataFormat

    def open(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> RecordSink:
        """Prepare the destination (create file / table) and return its sink."""
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing a source (row count, columns, first N rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]  # First 5 rows; do not mutate
    encoding: str | None = None
    detected_delimiter: str | None = None


SAMPLE_SIZE = 5


# ---------------------------------------------------------------------------
# Helpers shared by adapters
# ---------------------------------------------------------------------------


def leaf_paths(fields: Sequence[FieldDefinition], prefix: str = "") -> list[str]:
    """Dotted paths of all non-composite fields, in declared order."""
    paths: list[str] = []
    for f in fields:
        path = f"{prefix}.{f.name}" if prefix else f.name
        if f.is_composite:
            paths.extend(leaf_paths(f.fields, path))
        else:
            paths.append(path)
    return paths


def _lookup(values: Mapping[str, Any], name: str) -> Any:
    """Exact key first, then a case-insensitive match."""
    if name in values:
        return values[name]
    lowered = name.lower()
    for key, value in values.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def _populate(
    record: SynthesizedRecord,
    handle: RecordTypeHandle,
    values: Mapping[str, Any],
) -> None:
    for f in handle.fields:
        raw = _lookup(values, f.name)
        if f.is_composite:
            child_type = handle.nested_type(f.name)
            if isinstance(raw, Mapping) and child_type is not None:
                child = child_type.new()
                _populate(child, child_type, raw)
                setattr(record, f.name, child)
            continue
        setattr(record, f.name, coerce(raw, f.field_type))


def build_record(
    record_type: RecordTypeHandle,
    values: Mapping[str, Any],
    descriptor: RecordDescriptor,
    row: int,
) -> SynthesizedRecord:
    """
    Create a record of ``record_type`` from raw (nested) values.

    Keys not declared in the schema are ignored; declared fields missing
    from ``values`` stay None.

    Raises:
        RecordReadError: A value does not coerce to its declared type.
    """
    record = record_type.new()
    try:
        _populate(record, record_type, values)
    except CoercionError as exc:
        raise RecordReadError(
            record_type.qualified_name,
            str(descriptor.location or descriptor.option("table") or "?"),
            row,
            str(exc),
            exc,
        ) from exc
    return record


def flatten_record(record: Any, paths: Sequence[str]) -> list[Any]:
    """Values at each dotted path; None where an intermediate is None."""
    return [get_field(record, p) for p in paths]


def format_text(value: Any) -> str:
    """Text form of a typed value for text-based formats."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def source_path(descriptor: RecordDescriptor) -> Path:
    """
    Existing file a source reads from.

    Raises:
        ConfigurationError: No location configured.
        RecordReadError: The file does not exist.
    """
    if not descriptor.location:
        raise ConfigurationError(
            f"source '{descriptor.model_name}' has no location"
        )
    path = Path(descriptor.location)
    if not path.is_file():
        raise RecordReadError(
            descriptor.model_name, str(path), 0, "source file does not exist"
        )
    return path


def output_path(descriptor: RecordDescriptor, extension: str) -> Path:
    """
    File a target writes to.

    A location that ends with a path separator or names an existing
    directory gets ``<model name lowercased>.<extension>`` appended.
    Parent directories are created.
    """
    if not descriptor.location:
        raise ConfigurationError(
            f"target '{descriptor.model_name}' has no location"
        )
    location = descriptor.location
    path = Path(location)
    if location.endswith(("/", os.sep)) or path.is_dir():
        path = path / f"{descriptor.model_name.lower()}.{extension}"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def text_encoding(descriptor: RecordDescriptor, *, reading: bool) -> str:
    enc = str(descriptor.option("encoding", "utf-8"))
    if reading and enc.lower() == "utf-8":
        return "utf-8-sig"  # Strip BOM if present
    return enc

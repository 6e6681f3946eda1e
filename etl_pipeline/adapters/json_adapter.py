"""
JSON adapters.

Handles JSON array (file is [{...}, {...}, ...]) and JSON Lines (one object
per line). Configurable: ``json_path`` for nested arrays (e.g.
"data.records"), ``json_format`` "array" | "jsonl". Object keys are matched
to declared fields exactly first, then case-insensitively.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from datetime import date
from pathlib import Path
from typing import Any

from etl_config.schema import DataFormat, RecordDescriptor
from etl_kernel.domain.records import RecordTypeHandle, SynthesizedRecord, record_to_dict
from etl_kernel.exceptions import RecordReadError
from etl_pipeline.adapters.base import (
    SAMPLE_SIZE,
    SourceProbe,
    build_record,
    output_path,
    source_path,
    text_encoding,
)


def _get_nested(data: Any, path: str) -> Any:
    """Follow dot-separated path into dict/list. Returns None if key missing."""
    if not path.strip():
        return data
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


def _all_keys(rows: list[dict[str, Any]]) -> tuple[str, ...]:
    """Union of keys from the sample rows for the column list."""
    seen: set[str] = set()
    for row in rows[:SAMPLE_SIZE]:
        seen.update(str(k) for k in row)
    return tuple(sorted(seen))


def _json_format(descriptor: RecordDescriptor) -> str:
    return str(descriptor.option("json_format", "array")).lower()


def _iter_objects(path: Path, descriptor: RecordDescriptor) -> Iterator[tuple[int, Any]]:
    """Yield (position, item) for every item of the configured collection."""
    encoding = text_encoding(descriptor, reading=True)
    try:
        if _json_format(descriptor) == "jsonl":
            with path.open("r", encoding=encoding) as f:
                position = 0
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    position += 1
                    yield position, json.loads(line)
            return

        with path.open("r", encoding=encoding) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise RecordReadError(
            descriptor.model_name, str(path), 0, f"malformed JSON: {exc}", exc
        ) from exc

    json_path = descriptor.option("json_path")
    root = _get_nested(data, json_path) if json_path else data
    if not isinstance(root, list):
        raise RecordReadError(
            descriptor.model_name,
            str(path),
            0,
            f"expected a JSON array at '{json_path or '$'}', got {type(root).__name__}",
        )
    yield from enumerate(root, start=1)


class JsonSourceAdapter:
    """Read JSON array or JSON Lines files as one record per object."""

    format = DataFormat.JSON

    def read(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> Iterator[SynthesizedRecord]:
        path = source_path(descriptor)
        for position, item in _iter_objects(path, descriptor):
            if not isinstance(item, dict):
                raise RecordReadError(
                    record_type.qualified_name,
                    str(path),
                    position,
                    f"expected a JSON object, got {type(item).__name__}",
                )
            yield build_record(record_type, item, descriptor, position)

    def probe(self, descriptor: RecordDescriptor) -> SourceProbe:
        path = source_path(descriptor)
        sample: list[dict[str, Any]] = []
        count = 0
        for _, item in _iter_objects(path, descriptor):
            count += 1
            if isinstance(item, dict) and len(sample) < SAMPLE_SIZE:
                sample.append(item)
        return SourceProbe(
            row_count=count,
            columns=_all_keys(sample),
            sample_rows=tuple(sample),
            encoding=text_encoding(descriptor, reading=True),
            detected_delimiter=None,
        )


def _json_default(obj: Any) -> Any:
    if isinstance(obj, date):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class _JsonSink:
    def __init__(self, path: Path, descriptor: RecordDescriptor):
        self.path = path
        self._lines = _json_format(descriptor) == "jsonl"
        self._file = path.open("w", encoding=text_encoding(descriptor, reading=False))
        self._count = 0
        if not self._lines:
            self._file.write("[")

    def write(self, records: Sequence[SynthesizedRecord]) -> None:
        for record in records:
            text = json.dumps(record_to_dict(record), default=_json_default)
            if self._lines:
                self._file.write(text + "\n")
            else:
                self._file.write(("," if self._count else "") + "\n  " + text)
            self._count += 1
        self._file.flush()

    def close(self) -> None:
        if self._file.closed:
            return
        if not self._lines:
            self._file.write("\n]\n" if self._count else "]\n")
        self._file.close()


class JsonTargetAdapter:
    """Write records as a JSON array or as JSON Lines."""

    format = DataFormat.JSON

    def open(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> _JsonSink:
        extension = "jsonl" if _json_format(descriptor) == "jsonl" else "json"
        return _JsonSink(output_path(descriptor, extension), descriptor)

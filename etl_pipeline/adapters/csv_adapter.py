"""
CSV (delimited text) adapters.

Columns are positional: the n-th column feeds the n-th declared leaf field
(nested fields flattened in declared order). Configurable: delimiter,
encoding, has_header, quoting, skip_rows. Handles BOM via utf-8-sig when
encoding is utf-8. Streams rows.

The writer emits the same shape: one column per leaf field, with a header
row of dotted field paths unless ``has_header`` is false.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from etl_config.schema import DataFormat, RecordDescriptor
from etl_kernel.domain.accessor import set_field
from etl_kernel.domain.records import RecordTypeHandle, SynthesizedRecord
from etl_kernel.exceptions import RecordReadError
from etl_pipeline.adapters.base import (
    SAMPLE_SIZE,
    SourceProbe,
    build_record,
    flatten_record,
    format_text,
    leaf_paths,
    output_path,
    source_path,
    text_encoding,
)

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "nonnumeric": csv.QUOTE_NONNUMERIC,
    "none": csv.QUOTE_NONE,
}


def _get_quoting(descriptor: RecordDescriptor) -> int:
    q = descriptor.option("quoting", "minimal")
    if isinstance(q, int):
        return q
    return _QUOTING.get(str(q).lower(), csv.QUOTE_MINIMAL)


def _dialect(descriptor: RecordDescriptor) -> dict[str, Any]:
    return {
        "delimiter": str(descriptor.option("delimiter", ",")),
        "quoting": _get_quoting(descriptor),
    }


class CsvSourceAdapter:
    """Read delimited files as one record per row."""

    format = DataFormat.CSV

    def read(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> Iterator[SynthesizedRecord]:
        path = source_path(descriptor)
        has_header = bool(descriptor.option("has_header", True))
        skip_rows = int(descriptor.option("skip_rows", 0))
        paths = leaf_paths(record_type.fields)

        with path.open("r", encoding=text_encoding(descriptor, reading=True), newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.reader(f, **_dialect(descriptor))
            if has_header:
                next(reader, None)
            for row_no, row in enumerate(reader, start=1):
                if not row:
                    continue
                if len(row) != len(paths):
                    raise RecordReadError(
                        record_type.qualified_name,
                        str(path),
                        row_no,
                        f"expected {len(paths)} columns, got {len(row)}",
                    )
                values: dict[str, Any] = {}
                for p, raw in zip(paths, row):
                    set_field(values, p, raw)
                yield build_record(record_type, values, descriptor, row_no)

    def probe(self, descriptor: RecordDescriptor) -> SourceProbe:
        path = source_path(descriptor)
        encoding = text_encoding(descriptor, reading=True)
        dialect = _dialect(descriptor)
        has_header = bool(descriptor.option("has_header", True))
        skip_rows = int(descriptor.option("skip_rows", 0))
        columns: tuple[str, ...] = tuple(leaf_paths(descriptor.fields))

        with path.open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.reader(f, **dialect)
            if has_header:
                header = next(reader, None)
                if header:
                    columns = tuple(header)
            sample: list[dict[str, Any]] = []
            count = 0
            for row in reader:
                if not row:
                    continue
                count += 1
                if len(sample) < SAMPLE_SIZE:
                    sample.append(dict(zip(columns, row)))

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=dialect["delimiter"],
        )


class _CsvSink:
    def __init__(self, path: Path, paths: Sequence[str], descriptor: RecordDescriptor):
        self.path = path
        self._paths = list(paths)
        self._file = path.open(
            "w", encoding=text_encoding(descriptor, reading=False), newline=""
        )
        self._writer = csv.writer(self._file, **_dialect(descriptor))
        if descriptor.option("has_header", True):
            self._writer.writerow(self._paths)

    def write(self, records: Sequence[SynthesizedRecord]) -> None:
        for record in records:
            self._writer.writerow(
                [format_text(v) for v in flatten_record(record, self._paths)]
            )
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class CsvTargetAdapter:
    """Write records as delimited rows, one column per leaf field."""

    format = DataFormat.CSV

    def open(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> _CsvSink:
        return _CsvSink(
            output_path(descriptor, "csv"),
            leaf_paths(record_type.fields),
            descriptor,
        )

"""
XML (markup) adapters.

Layout::

    <Customers>                 <- root_element (default: model name)
      <record>                  <- record_element (default: "record")
        <id>7</id>
        <address>               <- object field
          <city>Paris</city>
        </address>
      </record>
    </Customers>

A field may also be given as an attribute of the record element. The
reader streams with ``iterparse`` and clears each record element once it
has been converted.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from etl_config.schema import DataFormat, RecordDescriptor
from etl_kernel.domain.records import RecordTypeHandle, SynthesizedRecord
from etl_kernel.domain.schema import FieldDefinition
from etl_kernel.exceptions import RecordReadError
from etl_pipeline.adapters.base import (
    SAMPLE_SIZE,
    SourceProbe,
    build_record,
    format_text,
    leaf_paths,
    output_path,
    source_path,
    text_encoding,
)

DEFAULT_RECORD_ELEMENT = "record"


def _root_element(descriptor: RecordDescriptor) -> str:
    return str(descriptor.option("root_element") or descriptor.model_name)


def _record_element(descriptor: RecordDescriptor) -> str:
    return str(descriptor.option("record_element") or DEFAULT_RECORD_ELEMENT)


def _element_values(elem: ET.Element, fields: Sequence[FieldDefinition]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for f in fields:
        child = elem.find(f.name)
        if child is None:
            values[f.name] = elem.get(f.name)
        elif f.is_composite:
            values[f.name] = _element_values(child, f.fields)
        else:
            values[f.name] = child.text
    return values


def _iter_records(
    path: Path,
    descriptor: RecordDescriptor,
) -> Iterator[ET.Element]:
    """Yield each record element once fully parsed, checking the root tag."""
    expected_root = descriptor.option("root_element")
    record_tag = _record_element(descriptor)
    depth = 0
    try:
        for event, elem in ET.iterparse(str(path), events=("start", "end")):
            if event == "start":
                if depth == 0 and expected_root and elem.tag != expected_root:
                    raise RecordReadError(
                        descriptor.model_name,
                        str(path),
                        0,
                        f"root element is <{elem.tag}>, expected <{expected_root}>",
                    )
                depth += 1
                continue
            depth -= 1
            if depth == 1 and elem.tag == record_tag:
                yield elem
                elem.clear()
    except ET.ParseError as exc:
        raise RecordReadError(
            descriptor.model_name, str(path), 0, f"malformed XML: {exc}", exc
        ) from exc


class XmlSourceAdapter:
    """Read ``record_element`` children of the root as one record each."""

    format = DataFormat.XML

    def read(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> Iterator[SynthesizedRecord]:
        path = source_path(descriptor)
        for row_no, elem in enumerate(_iter_records(path, descriptor), start=1):
            values = _element_values(elem, record_type.fields)
            yield build_record(record_type, values, descriptor, row_no)

    def probe(self, descriptor: RecordDescriptor) -> SourceProbe:
        path = source_path(descriptor)
        sample: list[dict[str, Any]] = []
        count = 0
        for elem in _iter_records(path, descriptor):
            count += 1
            if len(sample) < SAMPLE_SIZE:
                sample.append(_element_values(elem, descriptor.fields))
        return SourceProbe(
            row_count=count,
            columns=tuple(leaf_paths(descriptor.fields)),
            sample_rows=tuple(sample),
            encoding=None,
            detected_delimiter=None,
        )


def _record_to_element(
    tag: str,
    record: Any,
    fields: Sequence[FieldDefinition],
) -> ET.Element:
    elem = ET.Element(tag)
    for f in fields:
        value = getattr(record, f.name)
        if f.is_composite:
            if value is not None:
                elem.append(_record_to_element(f.name, value, f.fields))
            continue
        child = ET.SubElement(elem, f.name)
        if value is not None:
            child.text = format_text(value)
    return elem


class _XmlSink:
    def __init__(self, path: Path, descriptor: RecordDescriptor, record_type: RecordTypeHandle):
        self.path = path
        self._root = _root_element(descriptor)
        self._record_tag = _record_element(descriptor)
        self._fields = record_type.fields
        encoding = text_encoding(descriptor, reading=False)
        self._file = path.open("w", encoding=encoding)
        self._file.write(f'<?xml version="1.0" encoding="{encoding.upper()}"?>\n')
        self._file.write(f"<{self._root}>\n")

    def write(self, records: Sequence[SynthesizedRecord]) -> None:
        for record in records:
            elem = _record_to_element(self._record_tag, record, self._fields)
            ET.indent(elem, space="  ", level=1)
            self._file.write("  " + ET.tostring(elem, encoding="unicode") + "\n")
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.write(f"</{self._root}>\n")
            self._file.close()


class XmlTargetAdapter:
    """Write records as ``record_element`` children of ``root_element``."""

    format = DataFormat.XML

    def open(
        self,
        descriptor: RecordDescriptor,
        record_type: RecordTypeHandle,
    ) -> _XmlSink:
        return _XmlSink(output_path(descriptor, "xml"), descriptor, record_type)

"""
Dynamic mapper: the transform step of every pipeline.

For one input record it allocates a fresh output record, then for each
field pair in declared order reads the source value (dotted paths allowed),
coerces it to the declared type of the destination field, and writes it.
Object fields are copied field by field into a fresh nested record, so no
output record shares nested state with its input. No per-pipeline code is generated; only the two schemas and the mapping
drive the copy.
"""

from __future__ import annotations

from typing import Any

from etl_config.schema import EntityMappingDef
from etl_kernel.domain.accessor import get_field, set_field
from etl_kernel.domain.coercion import coerce
from etl_kernel.domain.records import RecordTypeHandle, SynthesizedRecord
from etl_kernel.exceptions import (
    CoercionError,
    FieldAccessError,
    RecordTransformError,
)


def transform_record(
    record: Any,
    mapping: EntityMappingDef,
    output_type: RecordTypeHandle,
) -> SynthesizedRecord:
    """
    Copy and coerce ``record`` into a new instance of ``output_type``.

    Raises:
        RecordTransformError: A field pair failed; carries the pair and
            the FieldAccessError or CoercionError that caused it. The
            partly filled output record is discarded.
    """
    output = output_type.new()
    for pair in mapping.fields:
        try:
            value = get_field(record, pair.from_path)
            set_field(output, pair.to_path, _convert(value, output_type, pair.to_path))
        except (FieldAccessError, CoercionError) as exc:
            raise RecordTransformError(
                mapping.source,
                mapping.target,
                pair.from_path,
                pair.to_path,
                exc,
            ) from exc
    return output


def _convert(value: Any, handle: RecordTypeHandle, path: str) -> Any:
    """Coerce a leaf value, or copy a nested value into a fresh nested record."""
    owner, definition = handle.resolve(path)
    if not definition.is_composite:
        return coerce(value, definition.field_type)
    if value is None:
        return None
    nested_type = owner.nested_type(definition.name)
    copy = nested_type.new()
    for child in nested_type.fields:
        child_value = get_field(value, child.name)
        set_field(copy, child.name, _convert(child_value, nested_type, child.name))
    return copy


class DynamicMapper:
    """Transform bound to one mapping and one output record type."""

    def __init__(self, mapping: EntityMappingDef, output_type: RecordTypeHandle):
        self.mapping = mapping
        self.output_type = output_type

    def __call__(self, record: Any) -> SynthesizedRecord:
        return transform_record(record, self.mapping, self.output_type)

    def __repr__(self) -> str:
        return (
            f"DynamicMapper({self.mapping.source!r} -> "
            f"{self.output_type.qualified_name!r}, {len(self.mapping.fields)} fields)"
        )

"""
Pure domain layer.

Field schemas, type coercion, generic record access and record type
synthesis. No dependencies on configuration files, adapters or I/O.
"""

from etl_kernel.domain.accessor import (
    RecordAccess,
    access_for,
    get_field,
    register_record_access,
    set_field,
)
from etl_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from etl_kernel.domain.coercion import coerce, is_empty
from etl_kernel.domain.records import (
    RecordTypeHandle,
    RecordTypeSynthesizer,
    SynthesizedRecord,
    default_synthesizer,
    record_to_dict,
)
from etl_kernel.domain.schema import (
    FieldDefinition,
    FieldType,
    field_paths,
    find_field,
    is_known_type_tag,
    parse_field_type,
    schema_fingerprint,
    shape_mismatch,
    storage_type,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "FieldDefinition",
    "FieldType",
    "RecordAccess",
    "RecordTypeHandle",
    "RecordTypeSynthesizer",
    "SynthesizedRecord",
    "SystemClock",
    "access_for",
    "coerce",
    "default_synthesizer",
    "field_paths",
    "find_field",
    "get_field",
    "is_empty",
    "is_known_type_tag",
    "parse_field_type",
    "record_to_dict",
    "register_record_access",
    "schema_fingerprint",
    "set_field",
    "shape_mismatch",
    "storage_type",
]

"""Mapping resolution and the dynamic record transform."""

from etl_pipeline.mapping.mapper import DynamicMapper, transform_record
from etl_pipeline.mapping.resolver import check_mapping, resolve_mapping

__all__ = [
    "DynamicMapper",
    "check_mapping",
    "resolve_mapping",
    "transform_record",
]

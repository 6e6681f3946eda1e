"""
Mapping resolution: the one EntityMapping for a (source, target) pair.

Model names match case-insensitively. When several mappings name the same
pair, the first in configuration order is used (configuration validation
warns about the duplicates). The match is re-checked before it is returned
so that a mapping with no field pairs or an empty path never reaches a
pipeline step.
"""

from __future__ import annotations

from collections.abc import Sequence

from etl_config.schema import EntityMappingDef
from etl_kernel.exceptions import InvalidMappingError, MappingNotFoundError
from etl_kernel.logging_config import get_logger

logger = get_logger("pipeline.mapping.resolver")


def check_mapping(mapping: EntityMappingDef) -> None:
    """
    Raises:
        InvalidMappingError: No field pairs, or a pair with an empty path.
    """
    if not mapping.fields:
        raise InvalidMappingError(mapping.source, mapping.target, "no field mappings")
    for i, pair in enumerate(mapping.fields):
        if not pair.from_path or not pair.to_path:
            raise InvalidMappingError(
                mapping.source,
                mapping.target,
                f"field mapping #{i} needs non-empty 'from' and 'to' "
                f"(got {pair.from_path!r} -> {pair.to_path!r})",
            )


def resolve_mapping(
    mappings: Sequence[EntityMappingDef],
    source_model_name: str,
    target_model_name: str,
) -> EntityMappingDef:
    """
    Find the mapping for a source/target model pair.

    Args:
        mappings: Configured mappings, in configuration order.
        source_model_name: Source model name (case-insensitive).
        target_model_name: Target model name (case-insensitive).

    Returns:
        The first matching EntityMappingDef.

    Raises:
        MappingNotFoundError: No mapping names this pair.
        InvalidMappingError: The matching mapping is unusable.
    """
    for mapping in mappings:
        if mapping.matches(source_model_name, target_model_name):
            check_mapping(mapping)
            logger.debug(
                "mapping_resolved",
                extra={
                    "source": source_model_name,
                    "target": target_model_name,
                    "field_count": len(mapping.fields),
                },
            )
            return mapping

    logger.warning(
        "mapping_not_found",
        extra={
            "source": source_model_name,
            "target": target_model_name,
            "mapping_count": len(mappings),
        },
    )
    raise MappingNotFoundError(source_model_name, target_model_name)

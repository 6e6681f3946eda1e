"""
etl_config -- single public entrypoint for ETL job configuration.

Responsibility:
    Provides the ONLY way to obtain a job configuration at runtime through
    ``load_job_config()``.  YAML loading and fragment assembly are
    internal tooling and are not called by pipeline or batch code.

Architecture position:
    Configuration -- YAML-driven, validated before use.  This package sits
    above ``etl_kernel`` and below ``etl_pipeline`` / ``etl_batch``.  The
    kernel MUST NEVER import from ``etl_config``.

Failure modes:
    - ``ConfigurationError`` -- missing directory or fragment, malformed
      YAML, or validation errors (all of them listed in ``errors``).

Audit relevance:
    Every successful ``load_job_config()`` call emits an
    ``ETL_CONFIG_TRACE`` log entry with the job name, version, checksum
    and source/target/mapping counts.
"""

from __future__ import annotations

from pathlib import Path

from etl_config.assembler import assemble_from_directory
from etl_config.schema import (
    DataFormat,
    EntityMappingDef,
    FieldMappingDef,
    JobConfiguration,
    ProcessorDef,
    RecordDescriptor,
    RecordRole,
    ValidationRuleDef,
)
from etl_config.validator import ConfigValidationResult, validate_configuration
from etl_kernel.exceptions import ConfigurationError
from etl_kernel.logging_config import get_logger

_logger = get_logger("config")

__all__ = [
    "ConfigValidationResult",
    "DataFormat",
    "EntityMappingDef",
    "FieldMappingDef",
    "JobConfiguration",
    "ProcessorDef",
    "RecordDescriptor",
    "RecordRole",
    "ValidationRuleDef",
    "load_job_config",
    "validate_configuration",
]


def load_job_config(config_dir: Path | str) -> JobConfiguration:
    """The ONLY public configuration entrypoint.

    Guarantees:
        - The returned ``JobConfiguration`` has passed structural
          validation; warnings have been logged.
        - An ``ETL_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - This function does NOT cache configurations across calls.

    Args:
        config_dir: Directory holding the job's YAML fragments.

    Returns:
        The validated, frozen ``JobConfiguration``.

    Raises:
        ConfigurationError: If fragments are missing, malformed, or fail
            validation.
    """
    config = assemble_from_directory(Path(config_dir))

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"job": config.job_name, "warning": warning},
        )
    if not validation.is_valid:
        _logger.error(
            "config_validation_failed",
            extra={"job": config.job_name, "errors": validation.errors},
        )
        raise ConfigurationError(
            f"Configuration validation failed for job '{config.job_name}'",
            errors=validation.errors,
        )

    _logger.info(
        "ETL_CONFIG_TRACE",
        extra={
            "trace_type": "ETL_CONFIG_TRACE",
            "job": config.job_name,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_dir": str(config.config_dir),
            "source_count": len(config.sources),
            "target_count": len(config.targets),
            "mapping_count": len(config.mappings),
            "rule_count": len(config.validation_rules),
        },
    )
    return config

"""
Typed Exception Hierarchy for the ETL engine.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from EtlError:

    EtlError (base)
    |
    +-- ConfigurationError
    |
    +-- SchemaError
    |   +-- SchemaConflictError
    |   +-- TypeSynthesisError
    |
    +-- RecordError
    |   +-- FieldAccessError
    |   +-- CoercionError
    |   +-- RecordTransformError
    |   +-- RecordValidationError
    |   +-- RecordReadError
    |   +-- RecordWriteError
    |
    +-- DocumentValidationError
    |
    +-- MappingError
    |   +-- MappingNotFoundError
    |   +-- InvalidMappingError
    |
    +-- RegistryError
    |   +-- UnknownFormatError
    |   +-- UnknownProcessorError
    |
    +-- AssemblyError
    |
    +-- StepExecutionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_INVALID       | YAML missing, malformed or inconsistent
----------------|-----------------------------|-----------------------------------------
Schema          | SCHEMA_CONFLICT             | Same model name, different field set
                | TYPE_SYNTHESIS_FAILED       | Field schema cannot become a record type
----------------|-----------------------------|-----------------------------------------
Record          | FIELD_ACCESS_FAILED         | Path segment missing on record type
                | COERCION_FAILED             | Raw value does not parse as field type
                | RECORD_TRANSFORM_FAILED     | A field pair failed inside the mapper
                | RECORD_VALIDATION_FAILED    | Transformed record broke a rule
                | RECORD_READ_FAILED          | Source row cannot become a record
                | RECORD_WRITE_FAILED         | Target cannot be prepared or written
----------------|-----------------------------|-----------------------------------------
Document        | DOCUMENT_VALIDATION_FAILED  | XML source or target breaks its XSD
----------------|-----------------------------|-----------------------------------------
Mapping         | MAPPING_NOT_FOUND           | No mapping for (source, target)
                | INVALID_MAPPING             | Mapping has no fields, empty paths or
                |                             | an object field paired with a scalar
----------------|-----------------------------|-----------------------------------------
Registry        | UNKNOWN_FORMAT              | No adapter registered for format tag
                | UNKNOWN_PROCESSOR           | No processor registered for type
----------------|-----------------------------|-----------------------------------------
Pipeline        | PIPELINE_ASSEMBLY_FAILED    | A step could not be built
                | STEP_EXECUTION_FAILED       | A step stopped while running

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ASSEMBLY ERRORS STOP THE JOB BEFORE IT RUNS:

    try:
        job = assembler.assemble_job(config)
    except AssemblyError as e:
        log.error("assembly_failed", extra={"step": e.step_name})
        return 1

2. PER-RECORD ERRORS CARRY THE FAILING FIELD PAIR:

    except RecordTransformError as e:
        report(e.code, e.source_model, e.from_path, e.to_path, e.cause)

3. THE UNDERLYING CAUSE IS NEVER DROPPED:

    Wrapping errors keep the original exception in ``cause`` and are raised
    with ``raise ... from``, so ``__cause__`` holds it too.
"""

from typing import Any


class EtlError(Exception):
    """
    Base exception for all ETL engine errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ETL_ERROR"


# Configuration


class ConfigurationError(EtlError):
    """Job configuration is missing, malformed or inconsistent."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


# Schema / record type synthesis


class SchemaError(EtlError):
    """Base exception for record schema errors."""

    code: str = "SCHEMA_ERROR"


class SchemaConflictError(SchemaError):
    """A model name was synthesized again with a different field set."""

    code: str = "SCHEMA_CONFLICT"

    def __init__(
        self,
        model_name: str,
        existing_fingerprint: str,
        new_fingerprint: str,
    ):
        self.model_name = model_name
        self.existing_fingerprint = existing_fingerprint
        self.new_fingerprint = new_fingerprint
        super().__init__(
            f"Record type '{model_name}' already exists with a different "
            f"schema (existing {existing_fingerprint[:12]}, "
            f"requested {new_fingerprint[:12]})"
        )


class TypeSynthesisError(SchemaError):
    """A field schema could not be turned into a runtime record type."""

    code: str = "TYPE_SYNTHESIS_FAILED"

    def __init__(
        self,
        model_name: str,
        diagnostic: str,
        cause: BaseException | None = None,
    ):
        self.model_name = model_name
        self.diagnostic = diagnostic
        self.cause = cause
        super().__init__(
            f"Cannot synthesize record type '{model_name}': {diagnostic}"
        )


# Record-level errors


class RecordError(EtlError):
    """Base exception for errors tied to a single record."""

    code: str = "RECORD_ERROR"


class FieldAccessError(RecordError):
    """A path segment does not exist on the record it is applied to."""

    code: str = "FIELD_ACCESS_FAILED"

    def __init__(self, record_type: str, path: str, segment: str, reason: str = ""):
        self.record_type = record_type
        self.path = path
        self.segment = segment
        self.reason = reason or f"no field '{segment}'"
        super().__init__(
            f"Cannot access '{path}' on {record_type}: {self.reason}"
        )


class CoercionError(RecordError):
    """A raw value could not be converted to the declared field type."""

    code: str = "COERCION_FAILED"

    def __init__(
        self,
        raw_value: Any,
        target_type: str,
        cause: BaseException | None = None,
    ):
        self.raw_value = raw_value
        self.target_type = target_type
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Cannot convert {raw_value!r} to {target_type}{detail}"
        )


class RecordTransformError(RecordError):
    """One field pair of a mapping failed while transforming a record."""

    code: str = "RECORD_TRANSFORM_FAILED"

    def __init__(
        self,
        source_model: str,
        target_model: str,
        from_path: str,
        to_path: str,
        cause: BaseException,
    ):
        self.source_model = source_model
        self.target_model = target_model
        self.from_path = from_path
        self.to_path = to_path
        self.cause = cause
        super().__init__(
            f"Mapping {source_model} -> {target_model} failed on "
            f"'{from_path}' -> '{to_path}': {cause}"
        )


class RecordValidationError(RecordError):
    """A transformed record violates a configured validation rule."""

    code: str = "RECORD_VALIDATION_FAILED"

    def __init__(self, model_name: str, field: str, rule: str, detail: str):
        self.model_name = model_name
        self.field = field
        self.rule = rule
        self.detail = detail
        super().__init__(
            f"Validation rule '{rule}' failed for {model_name}.{field}: {detail}"
        )


class RecordReadError(RecordError):
    """A source row could not be read into a record."""

    code: str = "RECORD_READ_FAILED"

    def __init__(
        self,
        model_name: str,
        location: str,
        row: int,
        detail: str,
        cause: BaseException | None = None,
    ):
        self.model_name = model_name
        self.location = location
        self.row = row
        self.detail = detail
        self.cause = cause
        super().__init__(
            f"Cannot read {model_name} record {row} from {location}: {detail}"
        )


class RecordWriteError(RecordError):
    """A target could not be prepared or a chunk could not be written."""

    code: str = "RECORD_WRITE_FAILED"

    def __init__(
        self,
        model_name: str,
        location: str,
        detail: str,
        cause: BaseException | None = None,
    ):
        self.model_name = model_name
        self.location = location
        self.detail = detail
        self.cause = cause
        super().__init__(f"Cannot write {model_name} records to {location}: {detail}")


class DocumentValidationError(EtlError):
    """A source or target document does not conform to its XML schema."""

    code: str = "DOCUMENT_VALIDATION_FAILED"

    def __init__(self, model_name: str, location: str, issues: list[str]):
        self.model_name = model_name
        self.location = location
        self.issues = list(issues)
        super().__init__(
            f"{location} does not conform to the schema of {model_name}: "
            + "; ".join(self.issues)
        )


# Mapping resolution


class MappingError(EtlError):
    """Base exception for mapping resolution errors."""

    code: str = "MAPPING_ERROR"


class MappingNotFoundError(MappingError):
    """No mapping is configured for a (source, target) pair."""

    code: str = "MAPPING_NOT_FOUND"

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(f"Mapping not found for {source} → {target}")


class InvalidMappingError(MappingError):
    """A mapping entry exists but cannot be used."""

    code: str = "INVALID_MAPPING"

    def __init__(self, source: str, target: str, detail: str):
        self.source = source
        self.target = target
        self.detail = detail
        super().__init__(f"Invalid mapping {source} -> {target}: {detail}")


# Registries


class RegistryError(EtlError):
    """Base exception for registry lookups."""

    code: str = "REGISTRY_ERROR"


class UnknownFormatError(RegistryError):
    """No adapter is registered for a format tag."""

    code: str = "UNKNOWN_FORMAT"

    def __init__(self, format_tag: str, role: str, available: list[str]):
        self.format_tag = format_tag
        self.role = role
        self.available = available
        super().__init__(
            f"No {role} registered for format '{format_tag}'. "
            f"Available: {', '.join(available) or '(none)'}"
        )


class UnknownProcessorError(RegistryError):
    """No processor is registered for a processor type."""

    code: str = "UNKNOWN_PROCESSOR"

    def __init__(self, processor_type: str, available: list[str]):
        self.processor_type = processor_type
        self.available = available
        super().__init__(
            f"No processor found for type '{processor_type}'. "
            f"Available: {', '.join(available) or '(none)'}"
        )


# Pipeline


class AssemblyError(EtlError):
    """A pipeline step could not be assembled."""

    code: str = "PIPELINE_ASSEMBLY_FAILED"

    def __init__(
        self,
        detail: str,
        step_name: str | None = None,
        source: str | None = None,
        target: str | None = None,
        cause: BaseException | None = None,
    ):
        self.detail = detail
        self.step_name = step_name
        self.source = source
        self.target = target
        self.cause = cause
        where = f" [{step_name}]" if step_name else ""
        super().__init__(f"Pipeline assembly failed{where}: {detail}")


class StepExecutionError(EtlError):
    """A pipeline step stopped before finishing."""

    code: str = "STEP_EXECUTION_FAILED"

    def __init__(self, step_name: str, detail: str, cause: BaseException | None = None):
        self.step_name = step_name
        self.detail = detail
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {detail}")

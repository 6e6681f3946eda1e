"""
Configuration Validator (``etl_config.validator``).

Responsibility
--------------
Validates an assembled ``JobConfiguration`` before any pipeline is built,
so that structural problems are reported together and up front.

Invariants enforced
-------------------
* Model names are present and unique per role.
* Field schemas are non-empty with unique names at every level; ``object``
  fields declare nested fields.
* Mappings name a source and a target, have at least one field pair, and
  every ``from`` / ``to`` path resolves in the referenced schemas; an
  ``object`` field maps only onto an ``object`` field of compatible shape.
* Validation rules name a known rule, and ``regex`` rules compile.
  ``xsd`` rules name an xml source or target and an existing schema file.
* ``chunk_size`` is positive and ``skip_limit`` is not negative.

Failure modes
-------------
* Errors (``ConfigValidationResult.errors``)  -> the job MUST NOT run.
* Warnings (``ConfigValidationResult.warnings``)  -> the job may run but
  the configuration should be reviewed: duplicate mappings (first wins),
  unknown field types (values pass through), source/target count
  mismatch, mappings no positional pair uses.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from etl_config.schema import (
    DataFormat,
    EntityMappingDef,
    JobConfiguration,
    RecordDescriptor,
    ValidationRuleDef,
)
from etl_kernel.domain.schema import (
    FieldDefinition,
    find_field,
    is_known_type_tag,
    shape_mismatch,
)

KNOWN_RULES = frozenset({"not_null", "regex", "xsd"})


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block the job but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: JobConfiguration) -> ConfigValidationResult:
    """
    Validate a job configuration.

    Postconditions:
        - Returns a ``ConfigValidationResult`` with errors and warnings.
        - A configuration with errors MUST NOT be run.
    """
    result = ConfigValidationResult()

    _validate_job_settings(config, result)
    _validate_descriptors(config.sources, "source", result)
    _validate_descriptors(config.targets, "target", result)
    _validate_pairing(config, result)
    _validate_mappings(config, result)
    _validate_rules(config, result)

    return result


def _validate_job_settings(
    config: JobConfiguration, result: ConfigValidationResult
) -> None:
    if config.chunk_size < 1:
        result.add_error(f"chunk_size must be positive, got {config.chunk_size}")
    if config.skip_limit < 0:
        result.add_error(f"skip_limit must not be negative, got {config.skip_limit}")


def _validate_fields(
    fields: Sequence[FieldDefinition],
    where: str,
    result: ConfigValidationResult,
) -> None:
    if not fields:
        result.add_error(f"{where}: no fields declared")
        return
    seen: set[str] = set()
    for f in fields:
        if not f.name:
            result.add_error(f"{where}: field with empty name")
            continue
        if not f.name.isidentifier():
            result.add_error(f"{where}: field name '{f.name}' is not a valid identifier")
        if f.name in seen:
            result.add_error(f"{where}: duplicate field '{f.name}'")
        seen.add(f.name)
        if f.is_composite:
            _validate_fields(f.fields, f"{where}.{f.name}", result)
        elif f.fields:
            result.add_error(
                f"{where}: field '{f.name}' has nested fields but type '{f.type_tag}'"
            )
        elif not is_known_type_tag(f.type_tag):
            result.add_warning(
                f"{where}: field '{f.name}' has unknown type '{f.type_tag}'; "
                "values will pass through unconverted"
            )


def _validate_descriptors(
    descriptors: Sequence[RecordDescriptor],
    role: str,
    result: ConfigValidationResult,
) -> None:
    if not descriptors:
        result.add_error(f"No {role}s configured")
        return
    seen: set[tuple[str, str]] = set()
    for i, d in enumerate(descriptors):
        if not d.model_name:
            result.add_error(f"{role} #{i}: model_name is required")
            continue
        key = (d.scope, d.model_name.lower())
        if key in seen:
            result.add_error(f"{role} '{d.model_name}': declared more than once")
        seen.add(key)
        where = f"{role} '{d.model_name}'"
        _validate_fields(d.fields, where, result)
        if d.format == DataFormat.RELATIONAL:
            if not d.option("url"):
                result.add_error(f"{where}: relational format requires options.url")
        elif not d.location:
            result.add_error(f"{where}: location is required for {d.format.value} format")


def _validate_pairing(
    config: JobConfiguration, result: ConfigValidationResult
) -> None:
    if config.sources and config.targets and len(config.sources) != len(config.targets):
        result.add_warning(
            f"{len(config.sources)} source(s) but {len(config.targets)} target(s); "
            "sources and targets are paired by position and assembly will fail"
        )


def _find_descriptor(
    descriptors: Sequence[RecordDescriptor], model_name: str
) -> RecordDescriptor | None:
    key = model_name.lower()
    return next((d for d in descriptors if d.model_name.lower() == key), None)


def _validate_mapping_paths(
    mapping: EntityMappingDef,
    source: RecordDescriptor | None,
    target: RecordDescriptor | None,
    where: str,
    result: ConfigValidationResult,
) -> None:
    for pair in mapping.fields:
        if not pair.from_path or not pair.to_path:
            result.add_error(f"{where}: field mapping needs non-empty 'from' and 'to'")
            continue
        from_def = find_field(source.fields, pair.from_path) if source is not None else None
        to_def = find_field(target.fields, pair.to_path) if target is not None else None
        if source is not None and from_def is None:
            result.add_error(
                f"{where}: 'from' path '{pair.from_path}' is not declared on "
                f"source '{source.model_name}'"
            )
        if target is not None and to_def is None:
            result.add_error(
                f"{where}: 'to' path '{pair.to_path}' is not declared on "
                f"target '{target.model_name}'"
            )
        if from_def is not None and to_def is not None:
            mismatch = shape_mismatch(from_def, to_def)
            if mismatch is not None:
                result.add_error(f"{where}: {pair.from_path} -> {pair.to_path}: {mismatch}")


def _validate_mappings(
    config: JobConfiguration, result: ConfigValidationResult
) -> None:
    if not config.mappings:
        result.add_error("processor: no mappings configured")
        return

    seen: set[tuple[str, str]] = set()
    for i, mapping in enumerate(config.mappings):
        where = f"mapping #{i} ({mapping.source or '?'} -> {mapping.target or '?'})"
        if not mapping.source or not mapping.target:
            result.add_error(f"{where}: 'source' and 'target' are required")
            continue
        if not mapping.fields:
            result.add_error(f"{where}: no field mappings")
            continue
        key = (mapping.source.lower(), mapping.target.lower())
        if key in seen:
            result.add_warning(f"{where}: duplicate mapping; the first one is used")
            continue
        seen.add(key)

        source = _find_descriptor(config.sources, mapping.source)
        target = _find_descriptor(config.targets, mapping.target)
        if source is None:
            result.add_error(f"{where}: source '{mapping.source}' is not declared")
        if target is None:
            result.add_error(f"{where}: target '{mapping.target}' is not declared")
        _validate_mapping_paths(mapping, source, target, where, result)

    used = {
        (s.model_name.lower(), t.model_name.lower())
        for s, t in zip(config.sources, config.targets)
    }
    for key in seen - used:
        result.add_warning(
            f"mapping {key[0]} -> {key[1]} is not used by any positional source/target pair"
        )


def _validate_rules(
    config: JobConfiguration, result: ConfigValidationResult
) -> None:
    for i, rule in enumerate(config.validation_rules):
        subject = f"{rule.model}.{rule.field}" if rule.field else rule.model
        where = f"validation rule #{i} ({subject})"
        if rule.rule not in KNOWN_RULES:
            result.add_error(
                f"{where}: unknown rule '{rule.rule}' "
                f"(known: {', '.join(sorted(KNOWN_RULES))})"
            )
            continue
        if rule.rule == "xsd":
            _validate_xsd_rule(config, rule, where, result)
            continue
        target = _find_descriptor(config.targets, rule.model)
        if target is None:
            result.add_error(f"{where}: target model '{rule.model}' is not declared")
        elif find_field(target.fields, rule.field) is None:
            result.add_error(f"{where}: field '{rule.field}' is not declared on '{rule.model}'")
        if rule.rule == "regex":
            if not rule.pattern:
                result.add_error(f"{where}: regex rule requires a pattern")
                continue
            try:
                re.compile(rule.pattern)
            except re.error as exc:
                result.add_error(f"{where}: invalid regex {rule.pattern!r}: {exc}")


def _validate_xsd_rule(
    config: JobConfiguration,
    rule: ValidationRuleDef,
    where: str,
    result: ConfigValidationResult,
) -> None:
    desc = _find_descriptor(config.sources, rule.model) or _find_descriptor(
        config.targets, rule.model
    )
    if desc is None:
        result.add_error(f"{where}: model '{rule.model}' is not declared")
    elif desc.format != DataFormat.XML:
        result.add_error(
            f"{where}: xsd rules apply to xml documents, "
            f"'{rule.model}' is {desc.format.value}"
        )
    if not rule.xsd_path:
        result.add_error(f"{where}: xsd rule requires an xsd_path")
    elif not Path(rule.xsd_path).is_file():
        result.add_error(f"{where}: schema file {rule.xsd_path} does not exist")

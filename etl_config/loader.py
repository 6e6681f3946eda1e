"""
Configuration Loader (``etl_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into typed
``etl_config.schema`` dataclass instances.  The single public entry point
for runtime config is ``etl_config.load_job_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Consumed by
``etl_config.assembler``.  Depends only on ``etl_kernel.domain.schema``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; the assembler turns them into ``ConfigurationError``.
* Missing-but-optional content (empty model names, empty mapping paths)
  is parsed as empty strings so that the validator can report every
  problem at once instead of stopping at the first.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown format tag  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any

import yaml

from etl_config.schema import (
    DEFAULT_PROCESSOR_TYPE,
    EntityMappingDef,
    FieldMappingDef,
    ProcessorDef,
    RecordDescriptor,
    RecordRole,
    ValidationRuleDef,
    parse_data_format,
)
from etl_kernel.domain.schema import FieldDefinition

_RULE_ALIASES = {
    "notnull": "not_null",
    "not_null": "not_null",
    "required": "not_null",
    "regex": "regex",
    "pattern": "regex",
    "xsd": "xsd",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: top level must be a mapping, got {type(data).__name__}")
    return data


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _as_list(data: dict[str, Any], key: str, where: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where}: '{key}' must be a list")
    return value


def parse_field_definition(data: dict[str, Any]) -> FieldDefinition:
    """Parse ``{name, type, fields?}``; ``type`` defaults to ``string``."""
    if not isinstance(data, dict):
        raise ValueError(f"Field definition must be a mapping, got {data!r}")
    nested = tuple(
        parse_field_definition(f)
        for f in _as_list(data, "fields", f"field '{data.get('name')}'")
    )
    type_tag = _text(data.get("type")) or ("object" if nested else "string")
    return FieldDefinition(
        name=_text(data["name"]),
        type_tag=type_tag,
        fields=nested,
    )


def resolve_location(location: str | None, base_dir: Path | None) -> str | None:
    """
    Resolve a relative location against the configuration directory.

    A trailing separator (meaning "write into this directory") survives.
    """
    if not location:
        return None
    trailing = location.endswith(("/", os.sep))
    path = Path(location).expanduser()
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    resolved = str(path)
    return resolved + os.sep if trailing else resolved


def parse_record_descriptor(
    data: dict[str, Any],
    role: RecordRole,
    base_dir: Path | None = None,
) -> RecordDescriptor:
    """
    Parse one ``sources:`` or ``targets:`` entry.

    Raises:
        KeyError: ``format`` is missing.
        ValueError: ``format`` is not a known data format.
    """
    if not isinstance(data, dict):
        raise ValueError(f"{role.value} entry must be a mapping, got {data!r}")
    where = f"{role.value} '{data.get('model_name', '?')}'"
    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError(f"{where}: 'options' must be a mapping")
    return RecordDescriptor(
        role=role,
        model_name=_text(data.get("model_name")),
        naming_scope=_text(data.get("naming_scope")),
        format=parse_data_format(data["format"]),
        fields=tuple(
            parse_field_definition(f) for f in _as_list(data, "fields", where)
        ),
        location=resolve_location(_text(data.get("location")) or None, base_dir),
        options=dict(options),
    )


def parse_entity_mapping(data: dict[str, Any]) -> EntityMappingDef:
    """Parse ``{source, target, fields: [{from, to}]}``."""
    if not isinstance(data, dict):
        raise ValueError(f"Mapping entry must be a mapping, got {data!r}")
    where = f"mapping '{data.get('source')}' -> '{data.get('target')}'"
    pairs = []
    for item in _as_list(data, "fields", where):
        if not isinstance(item, dict):
            raise ValueError(f"{where}: field mapping must be a mapping, got {item!r}")
        pairs.append(
            FieldMappingDef(
                from_path=_text(item.get("from")),
                to_path=_text(item.get("to")),
            )
        )
    return EntityMappingDef(
        source=_text(data.get("source")),
        target=_text(data.get("target")),
        fields=tuple(pairs),
    )


def parse_processor(data: dict[str, Any]) -> ProcessorDef:
    """Parse the ``processor:`` block."""
    if not isinstance(data, dict):
        raise ValueError(f"'processor' must be a mapping, got {data!r}")
    return ProcessorDef(
        processor_type=_text(data.get("type")) or DEFAULT_PROCESSOR_TYPE,
        mappings=tuple(
            parse_entity_mapping(m) for m in _as_list(data, "mappings", "processor")
        ),
    )


def parse_validation_rule(
    data: dict[str, Any],
    base_dir: Path | None = None,
) -> ValidationRuleDef:
    """
    Parse ``{model, field?, rule, pattern?, xsd_path?, enabled?}``.

    A relative ``xsd_path`` is resolved against ``base_dir``.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Validation rule must be a mapping, got {data!r}")
    rule = _text(data.get("rule"))
    return ValidationRuleDef(
        model=_text(data.get("model")),
        field=_text(data.get("field")),
        rule=_RULE_ALIASES.get(rule.lower(), rule),
        pattern=data.get("pattern"),
        enabled=bool(data.get("enabled", True)),
        xsd_path=resolve_location(_text(data.get("xsd_path")) or None, base_dir),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

"""
Configuration Schema (``etl_config.schema``).

Responsibility
--------------
Frozen dataclasses describing one ETL job as read from YAML: the ordered
source and target descriptors, the processor block with its entity
mappings, optional record validation rules, and job-level settings.

Architecture position
---------------------
**Config layer** -- pure data.  Produced by ``etl_config.loader`` /
``etl_config.assembler`` and consumed by ``etl_pipeline``.  Field
schemas reuse ``etl_kernel.domain.schema.FieldDefinition`` so the kernel
never imports from this package.

Invariants enforced
-------------------
* All dataclasses are frozen; descriptors are read-only after load.
* ``DataFormat`` is a closed enumeration; tags are parsed once at load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from etl_kernel.domain.schema import FieldDefinition

DEFAULT_CHUNK_SIZE = 50
DEFAULT_PROCESSOR_TYPE = "default"


class DataFormat(str, Enum):
    """Storage formats a source or target may use."""

    CSV = "csv"
    XML = "xml"
    JSON = "json"
    RELATIONAL = "relational"


_FORMAT_ALIASES: dict[str, DataFormat] = {
    "delimited": DataFormat.CSV,
    "markup": DataFormat.XML,
    "db": DataFormat.RELATIONAL,
}


def parse_data_format(tag: str | DataFormat) -> DataFormat:
    """
    Resolve a format tag (case-insensitive, aliases allowed).

    Raises:
        ValueError: if the tag names no known format.
    """
    if isinstance(tag, DataFormat):
        return tag
    key = str(tag).strip().lower()
    if key in _FORMAT_ALIASES:
        return _FORMAT_ALIASES[key]
    try:
        return DataFormat(key)
    except ValueError:
        known = ", ".join(f.value for f in DataFormat)
        raise ValueError(f"Unknown data format {tag!r} (known: {known})") from None


class RecordRole(str, Enum):
    SOURCE = "source"
    TARGET = "target"


@dataclass(frozen=True)
class RecordDescriptor:
    """
    Where one model's records live and what they look like.

    ``location`` is a file path for file formats; relational descriptors
    carry their connection in ``options`` instead.
    """

    role: RecordRole
    model_name: str
    format: DataFormat
    fields: tuple[FieldDefinition, ...]
    naming_scope: str = ""
    location: str | None = None
    options: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    @property
    def scope(self) -> str:
        """Naming scope, defaulting to the role so sources and targets never collide."""
        return self.naming_scope or self.role.value


@dataclass(frozen=True)
class FieldMappingDef:
    """One field copy: ``from_path`` on the source, ``to_path`` on the target."""

    from_path: str
    to_path: str


@dataclass(frozen=True)
class EntityMappingDef:
    """Ordered field mappings for one (source model, target model) pair."""

    source: str
    target: str
    fields: tuple[FieldMappingDef, ...]

    def matches(self, source_model: str, target_model: str) -> bool:
        return (
            self.source.lower() == source_model.lower()
            and self.target.lower() == target_model.lower()
        )


@dataclass(frozen=True)
class ProcessorDef:
    """Transformation strategy and the mappings it works from."""

    processor_type: str = DEFAULT_PROCESSOR_TYPE
    mappings: tuple[EntityMappingDef, ...] = ()


@dataclass(frozen=True)
class ValidationRuleDef:
    """
    A check bound to one model.

    ``not_null`` and ``regex`` apply to each transformed record of a target
    model. ``xsd`` applies to the whole XML document of a source (before
    it is read) or a target (after it is written); ``field`` is unused.
    """

    model: str
    field: str
    rule: str
    pattern: str | None = None
    enabled: bool = True
    xsd_path: str | None = None

@dataclass(frozen=True)
class JobConfiguration:
    """
    A complete, assembled ETL job configuration.

    ``checksum`` is the SHA-256 of the canonical form of every fragment
    that went into the job.
    """

    job_name: str
    sources: tuple[RecordDescriptor, ...]
    targets: tuple[RecordDescriptor, ...]
    processor: ProcessorDef
    version: str = "1"
    description: str = ""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    skip_limit: int = 0
    validation_rules: tuple[ValidationRuleDef, ...] = ()
    checksum: str = ""
    config_dir: Path | None = None

    @property
    def mappings(self) -> tuple[EntityMappingDef, ...]:
        return self.processor.mappings

    def rules_for(self, model_name: str) -> tuple[ValidationRuleDef, ...]:
        key = model_name.lower()
        return tuple(
            r for r in self.validation_rules
            if r.enabled and r.model.lower() == key
        )

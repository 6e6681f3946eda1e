"""
Pipeline assembly: configured sources, targets and mappings -> ordered steps.

Contract:
    ``sources[i]`` is paired with ``targets[i]``. For each pair the
    assembler resolves the mapping, synthesizes the source and target
    record types, checks every mapped path and its shape against those
    types, and looks up the reader, writer, processor and validators. The result is a
    list of fully resolved, stateless PipelineStep objects, or an
    AssemblyError; a partial list is never returned.

Guarantees:
    - Step names are ``etl_step_<index>_<source model name>`` and stable
      across calls for the same configuration.
    - All record types are synthesized before any step runs.

Non-goals:
    - Pairing by model name. Pairing is positional, so the number of
      sources and targets must match.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from etl_config.schema import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PROCESSOR_TYPE,
    DataFormat,
    EntityMappingDef,
    JobConfiguration,
    RecordDescriptor,
    ValidationRuleDef,
)
from etl_kernel.domain.records import (
    RecordTypeHandle,
    RecordTypeSynthesizer,
    SynthesizedRecord,
    default_synthesizer,
)
from etl_kernel.domain.schema import shape_mismatch
from etl_kernel.exceptions import (
    AssemblyError,
    ConfigurationError,
    EtlError,
    InvalidMappingError,
)
from etl_kernel.logging_config import get_logger
from etl_pipeline.adapters import SourceAdapter, TargetAdapter
from etl_pipeline.mapping.resolver import resolve_mapping
from etl_pipeline.registry import (
    FormatRegistry,
    ProcessorRegistry,
    default_format_registry,
    default_processor_registry,
)
from etl_pipeline.validation import DocumentValidator, RecordValidator, XsdRule

logger = get_logger("pipeline.assembler")


class ChainPolicy(str, Enum):
    """How the steps of a job are chained."""

    SEQUENTIAL = "sequential"  # In order; stop at the first failed step


@dataclass(frozen=True)
class PipelineStep:
    """One source -> transform -> target unit, fully resolved."""

    name: str
    index: int
    source: RecordDescriptor
    target: RecordDescriptor
    mapping: EntityMappingDef
    source_type: RecordTypeHandle
    target_type: RecordTypeHandle
    reader: SourceAdapter = field(repr=False)
    writer: TargetAdapter = field(repr=False)
    processor: Callable[[Any], SynthesizedRecord] = field(repr=False)
    validator: RecordValidator | None = field(default=None, repr=False)
    source_check: DocumentValidator | None = field(default=None, repr=False)
    target_check: DocumentValidator | None = field(default=None, repr=False)


@dataclass(frozen=True)
class EtlJob:
    """Ordered steps plus the policy the executor chains them with."""

    name: str
    steps: tuple[PipelineStep, ...]
    chain_policy: ChainPolicy = ChainPolicy.SEQUENTIAL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    skip_limit: int = 0
    checksum: str = ""


def step_name(index: int, source: RecordDescriptor) -> str:
    return f"etl_step_{index}_{source.model_name}"


def _document_validator(
    descriptor: RecordDescriptor, validation_rules: Sequence[ValidationRuleDef]
) -> DocumentValidator | None:
    rules = [
        r for r in validation_rules
        if r.enabled and r.rule == XsdRule.name
        and r.model.lower() == descriptor.model_name.lower()
    ]
    if not rules:
        return None
    if descriptor.format != DataFormat.XML:
        raise ConfigurationError(
            f"xsd rule on {descriptor.model_name}: format is {descriptor.format.value}, not xml"
        )
    return DocumentValidator(descriptor, rules)


class PipelineAssembler:
    """
    Builds pipeline steps from configuration.

    Usage:
        assembler = PipelineAssembler()
        job = assembler.assemble_job(load_job_config(config_dir))
    """

    def __init__(
        self,
        formats: FormatRegistry | None = None,
        processors: ProcessorRegistry | None = None,
        synthesizer: RecordTypeSynthesizer | None = None,
    ):
        self._formats = formats if formats is not None else default_format_registry()
        self._processors = processors if processors is not None else default_processor_registry()
        self._synthesizer = synthesizer if synthesizer is not None else default_synthesizer()

    def assemble_steps(
        self,
        sources: Sequence[RecordDescriptor],
        targets: Sequence[RecordDescriptor],
        mappings: Sequence[EntityMappingDef],
        processor_type: str = DEFAULT_PROCESSOR_TYPE,
        validation_rules: Sequence[ValidationRuleDef] = (),
    ) -> list[PipelineStep]:
        """
        Pair sources with targets by position and build one step per pair.

        Raises:
            AssemblyError: Empty or unequal source/target lists, or any
                failure while resolving, synthesizing or looking up a
                handler. The cause is attached.
        """
        if not sources:
            raise AssemblyError("no sources configured")
        if not targets:
            raise AssemblyError("no targets configured")
        if len(sources) != len(targets):
            raise AssemblyError(
                f"{len(sources)} source(s) but {len(targets)} target(s); "
                "sources and targets are paired by position"
            )

        try:
            factory = self._processors.get(processor_type)
        except EtlError as exc:
            raise AssemblyError(str(exc), cause=exc) from exc

        steps = [
            self._assemble_step(i, source, target, mappings, factory, validation_rules)
            for i, (source, target) in enumerate(zip(sources, targets))
        ]
        logger.info(
            "pipeline_assembled",
            extra={
                "step_count": len(steps),
                "steps": [s.name for s in steps],
            },
        )
        return steps

    def assemble_job(self, config: JobConfiguration) -> EtlJob:
        """Assemble every step of a configured job."""
        steps = self.assemble_steps(
            config.sources,
            config.targets,
            config.mappings,
            processor_type=config.processor.processor_type,
            validation_rules=config.validation_rules,
        )
        return EtlJob(
            name=config.job_name,
            steps=tuple(steps),
            chunk_size=config.chunk_size,
            skip_limit=config.skip_limit,
            checksum=config.checksum,
        )

    def _assemble_step(
        self,
        index: int,
        source: RecordDescriptor,
        target: RecordDescriptor,
        mappings: Sequence[EntityMappingDef],
        factory: Callable[[EntityMappingDef, RecordTypeHandle], Any],
        validation_rules: Sequence[ValidationRuleDef],
    ) -> PipelineStep:
        name = step_name(index, source)
        try:
            mapping = resolve_mapping(mappings, source.model_name, target.model_name)
            source_type = self._synthesizer.synthesize(
                source.model_name, source.fields, naming_scope=source.scope
            )
            target_type = self._synthesizer.synthesize(
                target.model_name, target.fields, naming_scope=target.scope
            )
            for pair in mapping.fields:
                _, from_def = source_type.resolve(pair.from_path)
                _, to_def = target_type.resolve(pair.to_path)
                mismatch = shape_mismatch(from_def, to_def)
                if mismatch is not None:
                    raise InvalidMappingError(
                        mapping.source,
                        mapping.target,
                        f"{pair.from_path} -> {pair.to_path}: {mismatch}",
                    )
            reader = self._formats.reader_for(source.format)
            writer = self._formats.writer_for(target.format)
            rules = [
                r for r in validation_rules
                if r.enabled and r.rule != XsdRule.name
                and r.model.lower() == target.model_name.lower()
            ]
            validator = RecordValidator(target.model_name, rules) if rules else None
            source_check = _document_validator(source, validation_rules)
            target_check = _document_validator(target, validation_rules)
        except EtlError as exc:
            logger.error(
                "pipeline_assembly_failed",
                extra={
                    "step": name,
                    "source": source.model_name,
                    "target": target.model_name,
                    "error_code": exc.code,
                },
            )
            raise AssemblyError(
                str(exc),
                step_name=name,
                source=source.model_name,
                target=target.model_name,
                cause=exc,
            ) from exc

        step = PipelineStep(
            name=name,
            index=index,
            source=source,
            target=target,
            mapping=mapping,
            source_type=source_type,
            target_type=target_type,
            reader=reader,
            writer=writer,
            processor=factory(mapping, target_type),
            validator=validator,
            source_check=source_check,
            target_check=target_check,
        )
        logger.info(
            "pipeline_step_assembled",
            extra={
                "step": name,
                "source": source.model_name,
                "target": target.model_name,
                "source_format": source.format.value,
                "target_format": target.format.value,
                "field_count": len(mapping.fields),
            },
        )
        return step


def assemble_pipeline(
    sources: Sequence[RecordDescriptor],
    targets: Sequence[RecordDescriptor],
    mappings: Sequence[EntityMappingDef],
) -> list[PipelineStep]:
    """Assemble steps with the default registries and process-wide synthesizer."""
    return PipelineAssembler().assemble_steps(sources, targets, mappings)

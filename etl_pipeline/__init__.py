"""
etl_pipeline -- from configuration to executable pipeline steps.

Provides the format registry and adapters, mapping resolution, the dynamic
record transform, record and XSD document validation and the pipeline assembler.

Architecture:
    etl_pipeline/ sits above etl_kernel and etl_config. It never runs
    steps itself; etl_batch executes the EtlJob it assembles.
"""

from etl_pipeline.assembler import (
    ChainPolicy,
    EtlJob,
    PipelineAssembler,
    PipelineStep,
    assemble_pipeline,
    step_name,
)
from etl_pipeline.registry import (
    FormatRegistry,
    ProcessorRegistry,
    default_format_registry,
    default_processor_registry,
)

__all__ = [
    "ChainPolicy",
    "EtlJob",
    "FormatRegistry",
    "PipelineAssembler",
    "PipelineStep",
    "ProcessorRegistry",
    "assemble_pipeline",
    "default_format_registry",
    "default_processor_registry",
    "step_name",
]

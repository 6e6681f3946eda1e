"""
EtlOrchestrator -- configuration directory to finished job run.

Wires ``load_job_config`` -> ``PipelineAssembler`` -> ``JobExecutor``.
Assembly happens once per orchestrator; every record type is synthesized
before the first record is read.
"""

from __future__ import annotations

from pathlib import Path

from etl_batch.domain.types import JobRunResult
from etl_batch.executor import JobExecutor
from etl_config import JobConfiguration, load_job_config
from etl_kernel.logging_config import get_logger
from etl_pipeline.adapters import SourceProbe
from etl_pipeline.assembler import EtlJob, PipelineAssembler

logger = get_logger("batch.orchestrator")


class EtlOrchestrator:
    """Runs one configured ETL job.

    Usage:
        orchestrator = EtlOrchestrator.from_config_dir("etl_config/sets/customers-demo")
        result = orchestrator.run()
    """

    def __init__(
        self,
        config: JobConfiguration,
        assembler: PipelineAssembler | None = None,
        executor: JobExecutor | None = None,
    ):
        self._config = config
        self._assembler = assembler or PipelineAssembler()
        self._executor = executor or JobExecutor()
        self._job: EtlJob | None = None

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Path | str,
        assembler: PipelineAssembler | None = None,
        executor: JobExecutor | None = None,
    ) -> EtlOrchestrator:
        """Load and validate the configuration in ``config_dir``.

        Raises:
            ConfigurationError: Missing, malformed or invalid fragments.
        """
        return cls(load_job_config(config_dir), assembler=assembler, executor=executor)

    @property
    def config(self) -> JobConfiguration:
        return self._config

    def assemble(self) -> EtlJob:
        """Assemble the job's steps (once).

        Raises:
            AssemblyError: See ``PipelineAssembler.assemble_steps``.
        """
        if self._job is None:
            self._job = self._assembler.assemble_job(self._config)
        return self._job

    def probe_sources(self) -> dict[str, SourceProbe]:
        """Probe every source of the assembled job, keyed by step name."""
        job = self.assemble()
        return {step.name: step.reader.probe(step.source) for step in job.steps}

    def run(self, correlation_id: str | None = None) -> JobRunResult:
        job = self.assemble()
        result = self._executor.run(job, correlation_id=correlation_id)
        logger.info(
            "etl_orchestrator_finished",
            extra={
                "job": job.name,
                "status": result.status.value,
                "correlation_id": result.correlation_id,
            },
        )
        return result


def run_job(config_dir: Path | str) -> JobRunResult:
    """Load, assemble and run the job configured in ``config_dir``."""
    return EtlOrchestrator.from_config_dir(config_dir).run()

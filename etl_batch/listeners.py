"""
Job listeners: hooks around job and step execution.

LoggingJobListener logs job start, every step outcome, and job completion
or failure with its duration.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from etl_batch.domain.types import JobRunResult, JobStatus, StepResult, StepStatus
from etl_kernel.logging_config import get_logger
from etl_pipeline.assembler import EtlJob

logger = get_logger("batch.listener")


@runtime_checkable
class JobListener(Protocol):
    """Receives lifecycle callbacks from JobExecutor."""

    def before_job(self, job: EtlJob) -> None: ...

    def after_step(self, job: EtlJob, result: StepResult) -> None: ...

    def after_job(self, job: EtlJob, result: JobRunResult) -> None: ...


class LoggingJobListener:
    """Structured log lines for job and step lifecycle events."""

    def before_job(self, job: EtlJob) -> None:
        logger.info(
            "etl_job_started",
            extra={
                "job": job.name,
                "step_count": len(job.steps),
                "chunk_size": job.chunk_size,
                "skip_limit": job.skip_limit,
                "checksum": job.checksum,
            },
        )

    def after_step(self, job: EtlJob, result: StepResult) -> None:
        payload = {
            "job": job.name,
            "step": result.step_name,
            "status": result.status.value,
            "read_count": result.read_count,
            "write_count": result.write_count,
            "skip_count": result.skip_count,
            "duration_ms": result.duration_ms,
        }
        if result.status == StepStatus.FAILED:
            payload["error_code"] = result.error_code
            payload["error_message"] = result.error_message
            logger.error("etl_step_failed", extra=payload)
        elif result.status == StepStatus.NOT_RUN:
            logger.warning("etl_step_not_run", extra=payload)
        else:
            logger.info("etl_step_completed", extra=payload)

    def after_job(self, job: EtlJob, result: JobRunResult) -> None:
        payload = {
            "job": job.name,
            "status": result.status.value,
            "read_count": result.read_count,
            "write_count": result.write_count,
            "skip_count": result.skip_count,
            "duration_ms": result.duration_ms,
        }
        if result.status == JobStatus.COMPLETED:
            logger.info("etl_job_completed", extra=payload)
        else:
            failed = result.failed_step
            payload["failed_step"] = failed.step_name if failed else None
            logger.error("etl_job_failed", extra=payload)

"""
etl_batch -- job execution for assembled ETL pipelines.

Runs the steps of an EtlJob sequentially with chunked writes, a skip
limit for bad records, listener callbacks and structured logging.

Architecture:
    etl_batch/ is the top layer. It imports etl_pipeline, etl_config and
    etl_kernel; nothing imports etl_batch.
"""

from etl_batch.domain.types import (
    JobRunResult,
    JobStatus,
    RecordFailure,
    StepResult,
    StepStatus,
)
from etl_batch.executor import JobExecutor
from etl_batch.listeners import JobListener, LoggingJobListener
from etl_batch.orchestrator import EtlOrchestrator, run_job

__all__ = [
    "EtlOrchestrator",
    "JobExecutor",
    "JobListener",
    "JobRunResult",
    "JobStatus",
    "LoggingJobListener",
    "RecordFailure",
    "StepResult",
    "StepStatus",
    "run_job",
]

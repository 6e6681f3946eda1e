"""Pure result types for ETL job runs."""

from etl_batch.domain.types import (
    JobRunResult,
    JobStatus,
    RecordFailure,
    StepResult,
    StepStatus,
)

__all__ = [
    "JobRunResult",
    "JobStatus",
    "RecordFailure",
    "StepResult",
    "StepStatus",
]

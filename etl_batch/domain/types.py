"""
etl_batch.domain.types -- Pure frozen dataclasses for ETL job runs.

ZERO I/O. Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# =============================================================================
# Status enums
# =============================================================================


class JobStatus(str, Enum):
    """Job-level outcome."""

    COMPLETED = "completed"  # Every step completed
    FAILED = "failed"  # A step failed; later steps did not run


class StepStatus(str, Enum):
    """Per-step outcome within a job run."""

    COMPLETED = "completed"  # All records read; failures within skip limit
    FAILED = "failed"  # Read/write failure or skip limit exceeded
    NOT_RUN = "not_run"  # An earlier step failed


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class RecordFailure:
    """A record that was skipped because it failed to transform or validate."""

    record_index: int  # 1-indexed position in the source
    error_code: str
    error_message: str


@dataclass(frozen=True)
class StepResult:
    """Immutable result of running one pipeline step."""

    step_name: str
    status: StepStatus
    source_model: str
    target_model: str
    read_count: int = 0
    write_count: int = 0
    skip_count: int = 0
    chunk_count: int = 0
    failures: tuple[RecordFailure, ...] = ()
    error_code: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class JobRunResult:
    """Immutable result of running a complete ETL job.

    Returned by ``JobExecutor.run()``.
    """

    job_name: str
    status: JobStatus
    step_results: tuple[StepResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    correlation_id: str | None = None

    @property
    def read_count(self) -> int:
        return sum(s.read_count for s in self.step_results)

    @property
    def write_count(self) -> int:
        return sum(s.write_count for s in self.step_results)

    @property
    def skip_count(self) -> int:
        return sum(s.skip_count for s in self.step_results)

    @property
    def failed_step(self) -> StepResult | None:
        return next(
            (s for s in self.step_results if s.status == StepStatus.FAILED), None
        )

"""
JobExecutor -- chunk-oriented, sequential execution of an assembled EtlJob.

Contract:
    ``run()`` executes the job's steps in order. Each step streams records
    from its reader, transforms and validates them one at a time, and hands
    full chunks of ``chunk_size`` records to its writer.

Invariants enforced:
    - One record is fully transformed before the next is read; a record
      is never mutated concurrently.
    - Records failing to transform or validate are skipped up to the
      job's ``skip_limit``; one more failure fails the step.
    - An XML source with ``xsd`` rules is checked before anything is read,
      and an XML target after its sink is closed. A non-conforming
      document fails the step; it is never skipped.
    - A failed step stops the job; the remaining steps are NOT_RUN.
    - The step's sink is closed whether the step succeeds or fails, and
      records buffered for an unfinished chunk are discarded.
    - All timestamps come from the injected Clock.

Non-goals:
    - Retry, restart from a checkpoint, or parallel steps.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator
from typing import Any
from uuid import uuid4

from etl_batch.domain.types import (
    JobRunResult,
    JobStatus,
    RecordFailure,
    StepResult,
    StepStatus,
)
from etl_batch.listeners import JobListener, LoggingJobListener
from etl_kernel.domain.clock import Clock, SystemClock
from etl_kernel.exceptions import (
    EtlError,
    RecordTransformError,
    RecordValidationError,
    StepExecutionError,
)
from etl_kernel.logging_config import LogContext, get_logger
from etl_pipeline.adapters import RecordSink
from etl_pipeline.assembler import ChainPolicy, EtlJob, PipelineStep

logger = get_logger("batch.executor")


class _StepCounters:
    def __init__(self) -> None:
        self.read = 0
        self.written = 0
        self.skipped = 0
        self.chunks = 0
        self.failures: list[RecordFailure] = []


class JobExecutor:
    """Runs EtlJobs step by step, chunk by chunk.

    Contract:
        - ``run()`` never raises for a step failure; the failure is in the
          returned JobRunResult.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        listeners: Iterable[JobListener] | None = None,
    ):
        self._clock = clock or SystemClock()
        self._listeners: tuple[JobListener, ...] = (
            tuple(listeners) if listeners is not None else (LoggingJobListener(),)
        )

    def run(self, job: EtlJob, correlation_id: str | None = None) -> JobRunResult:
        """Execute every step of ``job`` under its chain policy."""
        if job.chain_policy != ChainPolicy.SEQUENTIAL:
            raise ValueError(f"Unsupported chain policy: {job.chain_policy}")

        correlation_id = correlation_id or str(uuid4())
        start_time = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(correlation_id=correlation_id, job_name=job.name):
            for listener in self._listeners:
                listener.before_job(job)

            step_results: list[StepResult] = []
            stopped = False
            for step in job.steps:
                if stopped:
                    result = StepResult(
                        step_name=step.name,
                        status=StepStatus.NOT_RUN,
                        source_model=step.source.model_name,
                        target_model=step.target.model_name,
                    )
                else:
                    result = self._run_step(job, step)
                    stopped = result.status == StepStatus.FAILED
                step_results.append(result)
                for listener in self._listeners:
                    listener.after_step(job, result)

            result = JobRunResult(
                job_name=job.name,
                status=JobStatus.FAILED if stopped else JobStatus.COMPLETED,
                step_results=tuple(step_results),
                started_at=started_at,
                completed_at=self._clock.now(),
                duration_ms=int((time.monotonic() - start_time) * 1000),
                correlation_id=correlation_id,
            )
            for listener in self._listeners:
                listener.after_job(job, result)

        return result

    # -------------------------------------------------------------------------
    # Step execution
    # -------------------------------------------------------------------------

    def _run_step(self, job: EtlJob, step: PipelineStep) -> StepResult:
        step_start = time.monotonic()
        started_at = self._clock.now()
        counters = _StepCounters()
        error: BaseException | None = None
        error_code: str | None = None

        with LogContext.bind(
            step_name=step.name,
            source_model=step.source.model_name,
            target_model=step.target.model_name,
        ):
            sink: RecordSink | None = None
            records: Iterator[Any] | None = None
            try:
                if step.source_check is not None:
                    step.source_check.validate()
                sink = step.writer.open(step.target, step.target_type)
                records = step.reader.read(step.source, step.source_type)
                self._process(job, step, records, sink, counters)
                if step.target_check is not None:
                    sink.close()
                    step.target_check.validate()
            except EtlError as exc:
                error, error_code = exc, exc.code
                logger.error("etl_step_error", exc_info=True)
            except Exception as exc:
                error, error_code = exc, "UNHANDLED_EXCEPTION"
                logger.error("etl_step_error", exc_info=True)
            finally:
                if records is not None and hasattr(records, "close"):
                    records.close()
                if sink is not None:
                    sink.close()

        return StepResult(
            step_name=step.name,
            status=StepStatus.FAILED if error is not None else StepStatus.COMPLETED,
            source_model=step.source.model_name,
            target_model=step.target.model_name,
            read_count=counters.read,
            write_count=counters.written,
            skip_count=counters.skipped,
            chunk_count=counters.chunks,
            failures=tuple(counters.failures),
            error_code=error_code,
            error_message=str(error) if error is not None else None,
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=int((time.monotonic() - step_start) * 1000),
        )

    def _process(
        self,
        job: EtlJob,
        step: PipelineStep,
        records: Iterable[Any],
        sink: RecordSink,
        counters: _StepCounters,
    ) -> None:
        chunk: list[Any] = []
        for record in records:
            counters.read += 1
            try:
                output = step.processor(record)
                if step.validator is not None:
                    step.validator.validate(output)
            except (RecordTransformError, RecordValidationError) as exc:
                if counters.skipped >= job.skip_limit:
                    raise StepExecutionError(
                        step.name,
                        f"record {counters.read} failed and the skip limit "
                        f"({job.skip_limit}) is reached: {exc}",
                        exc,
                    ) from exc
                counters.skipped += 1
                counters.failures.append(
                    RecordFailure(
                        record_index=counters.read,
                        error_code=exc.code,
                        error_message=str(exc),
                    )
                )
                logger.warning(
                    "etl_record_skipped",
                    extra={
                        "record_index": counters.read,
                        "error_code": exc.code,
                        "error_message": str(exc),
                    },
                )
                continue

            chunk.append(output)
            if len(chunk) >= job.chunk_size:
                self._flush(sink, chunk, counters)
                chunk = []

        if chunk:
            self._flush(sink, chunk, counters)

    @staticmethod
    def _flush(sink: RecordSink, chunk: list[Any], counters: _StepCounters) -> None:
        sink.write(chunk)
        counters.written += len(chunk)
        counters.chunks += 1
        logger.debug(
            "etl_chunk_written",
            extra={"chunk_index": counters.chunks, "record_count": len(chunk)},
        )

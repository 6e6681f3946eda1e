#!/usr/bin/env python3
"""
Run a configured ETL job: load config -> assemble steps -> execute.

The config directory holds job.yaml, sources.yaml, targets.yaml,
processor.yaml and (optionally) validation.yaml.

Usage:
    python3 scripts/run_etl.py --config-dir <path> [options]

Examples:
    # Run the demo job
    python3 scripts/run_etl.py --config-dir etl_config/sets/customers-demo

    # Validate config and assemble steps only; nothing is read or written
    python3 scripts/run_etl.py --config-dir etl_config/sets/customers-demo --dry-run

    # Probe every source (row count, columns, sample rows) and exit
    python3 scripts/run_etl.py --config-dir etl_config/sets/customers-demo --probe

Exit codes:
    0  job completed
    1  configuration or assembly error
    2  job ran and a step failed
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a config-driven ETL job: load -> assemble -> execute.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config-dir",
        required=True,
        type=Path,
        help="Directory holding the job's YAML fragments.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load, validate and assemble only; do not read or write records.",
    )
    parser.add_argument(
        "--probe",
        action="store_true",
        help="Probe every source (row count, columns, sample rows) and exit.",
    )
    parser.add_argument(
        "--skip-limit",
        type=int,
        default=None,
        help="Override job.yaml skip_limit (records allowed to fail per step).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Override job.yaml chunk_size (records per write).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for the JSON log stream on stderr (default: INFO).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from etl_batch import EtlOrchestrator, JobStatus
    from etl_config import load_job_config
    from etl_kernel.exceptions import AssemblyError, ConfigurationError
    from etl_kernel.logging_config import configure_logging

    configure_logging(level=getattr(logging, args.log_level))

    config_dir = args.config_dir.resolve()
    if not config_dir.is_dir():
        print(f"ERROR: Config directory not found: {config_dir}", file=sys.stderr)
        return 1

    try:
        config = load_job_config(config_dir)
    except ConfigurationError as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    overrides = {}
    if args.skip_limit is not None:
        overrides["skip_limit"] = args.skip_limit
    if args.chunk_size is not None:
        overrides["chunk_size"] = args.chunk_size
    if overrides:
        config = dataclasses.replace(config, **overrides)

    orchestrator = EtlOrchestrator(config)
    try:
        job = orchestrator.assemble()
    except AssemblyError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"Job {job.name} ({len(job.steps)} step(s), checksum {job.checksum[:12]})")
    for step in job.steps:
        print(
            f"  {step.name}: {step.source.model_name} [{step.source.format.value}]"
            f" -> {step.target.model_name} [{step.target.format.value}]"
        )

    if args.dry_run:
        print("Dry run: steps assembled, nothing executed.")
        return 0

    if args.probe:
        for name, probe in orchestrator.probe_sources().items():
            print(f"{name}:")
            print(f"  Rows: {probe.row_count}")
            print(f"  Columns: {list(probe.columns)}")
            print("  Sample (first 3):")
            for i, row in enumerate(probe.sample_rows[:3], 1):
                print(f"    {i}: {row}")
        return 0

    result = orchestrator.run()
    for step in result.step_results:
        line = (
            f"  {step.step_name}: {step.status.value}"
            f" read={step.read_count} written={step.write_count}"
            f" skipped={step.skip_count}"
        )
        if step.error_message:
            line += f" error={step.error_code}: {step.error_message}"
        print(line)
        for failure in step.failures[:10]:
            print(f"    Record {failure.record_index}: {failure.error_message}")
        if len(step.failures) > 10:
            print(f"    ... and {len(step.failures) - 10} more skipped records.")

    print(f"Job {result.status.value} in {result.duration_ms} ms")
    return 0 if result.status == JobStatus.COMPLETED else 2


if __name__ == "__main__":
    sys.exit(main())

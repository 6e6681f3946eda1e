"""
Pytest fixtures for the ETL engine test suite.

Provides:
- Structured logging configured once per session, with a per-test
  LogContext reset and a ``captured_logs`` fixture
- A clean process-wide record type synthesizer for every test
- A deterministic clock
- Small schema / descriptor builders shared across test packages
"""

import json
import logging
from io import StringIO
from pathlib import Path

import pytest
import yaml

from etl_config.schema import (
    DataFormat,
    EntityMappingDef,
    FieldMappingDef,
    RecordDescriptor,
    RecordRole,
)
from etl_kernel.domain.clock import DeterministicClock
from etl_kernel.domain.records import default_synthesizer
from etl_kernel.domain.schema import FieldDefinition
from etl_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

DEMO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "etl_config" / "sets" / "customers-demo"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture etl logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            run_job(...)
            logs = captured_logs()
            assert any(r["message"] == "etl_job_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("etl")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _clean_synthesizer():
    """Each test starts with no synthesized record types."""
    default_synthesizer().clear()
    yield
    default_synthesizer().clear()


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Builders
# =============================================================================


def fields_of(**types: str) -> tuple[FieldDefinition, ...]:
    """``fields_of(id="integer", name="string")`` -> flat field schema."""
    return tuple(FieldDefinition(name, tag) for name, tag in types.items())


def descriptor(
    model_name: str,
    fields: tuple[FieldDefinition, ...],
    role: RecordRole = RecordRole.SOURCE,
    fmt: DataFormat = DataFormat.CSV,
    location: str | Path | None = None,
    **options,
) -> RecordDescriptor:
    return RecordDescriptor(
        role=role,
        model_name=model_name,
        format=fmt,
        fields=fields,
        location=str(location) if location is not None else None,
        options=options,
    )


def mapping(source: str, target: str, *pairs: tuple[str, str]) -> EntityMappingDef:
    return EntityMappingDef(
        source=source,
        target=target,
        fields=tuple(FieldMappingDef(from_path=f, to_path=t) for f, t in pairs),
    )


ADDRESS = FieldDefinition(
    "address",
    "object",
    (FieldDefinition("city"), FieldDefinition("zip", "integer")),
)


# =============================================================================
# Configuration directory fixtures
# =============================================================================


@pytest.fixture
def job_fragments():
    """A minimal valid job: one CSV source mapped to one JSON target."""
    return {
        "job.yaml": {"job_name": "customers-test", "chunk_size": 2},
        "sources.yaml": {
            "sources": [
                {
                    "model_name": "Customers",
                    "format": "csv",
                    "location": "data/customers.csv",
                    "fields": [
                        {"name": "id", "type": "integer"},
                        {"name": "name"},
                        {"name": "email"},
                    ],
                }
            ]
        },
        "targets.yaml": {
            "targets": [
                {
                    "model_name": "CustomerOut",
                    "format": "json",
                    "location": "out/",
                    "fields": [
                        {"name": "customer_id", "type": "long"},
                        {"name": "full_name"},
                        {"name": "email"},
                    ],
                }
            ]
        },
        "processor.yaml": {
            "processor": {
                "type": "default",
                "mappings": [
                    {
                        "source": "Customers",
                        "target": "CustomerOut",
                        "fields": [
                            {"from": "id", "to": "customer_id"},
                            {"from": "name", "to": "full_name"},
                            {"from": "email", "to": "email"},
                        ],
                    }
                ],
            }
        },
    }


@pytest.fixture
def write_config(tmp_path):
    """
    Write YAML fragments (dicts are dumped, strings written verbatim)
    into a job directory and return its path.
    """

    def _write(fragments: dict, directory: Path | None = None) -> Path:
        target = directory or tmp_path / "job"
        target.mkdir(parents=True, exist_ok=True)
        for name, content in fragments.items():
            text = content if isinstance(content, str) else yaml.safe_dump(content, sort_keys=False)
            (target / name).write_text(text, encoding="utf-8")
        return target

    return _write


CUSTOMERS_CSV = """id,name,email
1,Ada Lovelace,ada@example.org
2,Grace Hopper,grace@example.org
3,Alan Turing,alan@example.org
"""

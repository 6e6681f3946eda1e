"""
etl_config.assembler -- composes YAML fragments into one JobConfiguration.

Responsibility:
    Operators edit small YAML fragments, one per concern.  This module
    composes them into a single frozen ``JobConfiguration``.

Fragment structure::

    jobs/customers-demo/
    +-- job.yaml          # job_name, version, chunk_size, skip_limit (required)
    +-- sources.yaml      # sources: [...]  (required)
    +-- targets.yaml      # targets: [...]  (required)
    +-- processor.yaml    # processor: {type, mappings}  (required)
    +-- validation.yaml   # rules: [...]  (optional)

Invariants enforced:
    - ``job.yaml`` with a ``job_name`` must exist.
    - Relative locations are resolved against the fragment directory.
    - A deterministic SHA-256 checksum is computed over all assembled data.

Failure modes:
    - ``ConfigurationError`` -- directory or required fragment missing,
      malformed YAML, or a fragment that cannot be parsed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from etl_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_processor,
    parse_record_descriptor,
    parse_validation_rule,
)
from etl_config.schema import (
    DEFAULT_CHUNK_SIZE,
    JobConfiguration,
    ProcessorDef,
    RecordRole,
)
from etl_kernel.exceptions import ConfigurationError

JOB_FILE = "job.yaml"
SOURCES_FILE = "sources.yaml"
TARGETS_FILE = "targets.yaml"
PROCESSOR_FILE = "processor.yaml"
VALIDATION_FILE = "validation.yaml"

_REQUIRED_FILES = (JOB_FILE, SOURCES_FILE, TARGETS_FILE, PROCESSOR_FILE)


def _load_fragment(fragment_dir: Path, name: str, required: bool = True) -> dict[str, Any]:
    path = fragment_dir / name
    if not path.exists():
        if required:
            raise ConfigurationError(f"{name} not found in {fragment_dir}")
        return {}
    try:
        return load_yaml_file(path)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{name}: invalid YAML: {exc}") from exc
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _as_int(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"{JOB_FILE}: '{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{JOB_FILE}: '{key}' must be an integer, got {value!r}") from exc


def assemble_from_directory(fragment_dir: Path) -> JobConfiguration:
    """Compose fragments from a directory into one JobConfiguration.

    Preconditions:
        - ``fragment_dir`` is an existing directory holding at least
          ``job.yaml``, ``sources.yaml``, ``targets.yaml`` and
          ``processor.yaml``.

    Postconditions:
        - Returns a frozen ``JobConfiguration`` with a deterministic
          SHA-256 ``checksum`` and ``config_dir`` set to ``fragment_dir``.

    Raises:
        ConfigurationError: If required fragments are missing or malformed.
    """
    fragment_dir = Path(fragment_dir)
    if not fragment_dir.is_dir():
        raise ConfigurationError(f"Configuration directory not found: {fragment_dir}")

    for name in _REQUIRED_FILES:
        if not (fragment_dir / name).exists():
            raise ConfigurationError(f"{name} not found in {fragment_dir}")

    job_data = _load_fragment(fragment_dir, JOB_FILE)
    sources_data = _load_fragment(fragment_dir, SOURCES_FILE)
    targets_data = _load_fragment(fragment_dir, TARGETS_FILE)
    processor_data = _load_fragment(fragment_dir, PROCESSOR_FILE)
    validation_data = _load_fragment(fragment_dir, VALIDATION_FILE, required=False)

    job_name = str(job_data.get("job_name") or "").strip()
    if not job_name:
        raise ConfigurationError(f"{JOB_FILE}: 'job_name' is required")

    try:
        sources = tuple(
            parse_record_descriptor(s, RecordRole.SOURCE, fragment_dir)
            for s in sources_data.get("sources") or []
        )
        targets = tuple(
            parse_record_descriptor(t, RecordRole.TARGET, fragment_dir)
            for t in targets_data.get("targets") or []
        )
        processor_block = processor_data.get("processor")
        processor = (
            parse_processor(processor_block)
            if processor_block is not None
            else ProcessorDef()
        )
        rules = tuple(
            parse_validation_rule(r, fragment_dir)
            for r in validation_data.get("rules") or []
        )
    except KeyError as exc:
        raise ConfigurationError(
            f"Missing required key {exc} in {fragment_dir}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration in {fragment_dir}: {exc}") from exc

    checksum = compute_checksum({
        "job": job_data,
        "sources": sources_data,
        "targets": targets_data,
        "processor": processor_data,
        "validation": validation_data,
    })
    assert len(checksum) == 64, f"Invalid checksum length: {len(checksum)}"

    return JobConfiguration(
        job_name=job_name,
        version=str(job_data.get("version", "1")),
        description=str(job_data.get("description") or ""),
        chunk_size=_as_int(job_data.get("chunk_size"), "chunk_size", DEFAULT_CHUNK_SIZE),
        skip_limit=_as_int(job_data.get("skip_limit"), "skip_limit", 0),
        sources=sources,
        targets=targets,
        processor=processor,
        validation_rules=rules,
        checksum=checksum,
        config_dir=fragment_dir,
    )

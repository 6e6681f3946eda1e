"""
Tests for etl_batch.orchestrator -- configuration directory to job run.
"""

import json

import pytest

from etl_batch import EtlOrchestrator, JobExecutor, JobStatus, run_job
from etl_kernel.domain.records import RecordTypeSynthesizer
from etl_kernel.exceptions import AssemblyError, ConfigurationError
from etl_pipeline import PipelineAssembler
from tests.conftest import CUSTOMERS_CSV


@pytest.fixture
def config_dir(write_config, job_fragments):
    directory = write_config(job_fragments)
    data = directory / "data"
    data.mkdir()
    (data / "customers.csv").write_text(CUSTOMERS_CSV, encoding="utf-8")
    return directory


class TestEtlOrchestrator:
    def test_run_writes_target(self, config_dir):
        result = EtlOrchestrator.from_config_dir(config_dir).run()

        assert result.status == JobStatus.COMPLETED
        assert (result.read_count, result.write_count) == (3, 3)
        output = json.loads((config_dir / "out" / "customerout.json").read_text(encoding="utf-8"))
        assert output[0] == {"customer_id": 1, "full_name": "Ada Lovelace", "email": "ada@example.org"}

    def test_assembles_once(self, config_dir):
        orchestrator = EtlOrchestrator.from_config_dir(
            config_dir, assembler=PipelineAssembler(synthesizer=RecordTypeSynthesizer())
        )
        assert orchestrator.assemble() is orchestrator.assemble()
        assert orchestrator.config.job_name == "customers-test"

    def test_probe_sources(self, config_dir):
        probes = EtlOrchestrator.from_config_dir(config_dir).probe_sources()
        probe = probes["etl_step_0_Customers"]
        assert probe.row_count == 3
        assert probe.columns == ("id", "name", "email")

    def test_injected_executor(self, config_dir, deterministic_clock):
        executor = JobExecutor(clock=deterministic_clock, listeners=[])
        result = EtlOrchestrator.from_config_dir(config_dir, executor=executor).run(correlation_id="c-1")
        assert result.started_at == deterministic_clock.now()
        assert result.correlation_id == "c-1"

    def test_logs_finish(self, config_dir, captured_logs):
        EtlOrchestrator.from_config_dir(config_dir).run(correlation_id="c-2")
        finished = [r for r in captured_logs() if r["message"] == "etl_orchestrator_finished"]
        assert finished[0]["status"] == "completed"
        assert finished[0]["correlation_id"] == "c-2"

    def test_invalid_configuration(self, write_config, job_fragments):
        job_fragments["targets.yaml"]["targets"][0]["fields"] = []
        with pytest.raises(ConfigurationError, match="no fields declared"):
            EtlOrchestrator.from_config_dir(write_config(job_fragments))

    def test_assembly_error_surfaces_before_run(self, write_config, job_fragments, tmp_path):
        job_fragments["sources.yaml"]["sources"].append(
            dict(job_fragments["sources.yaml"]["sources"][0], model_name="Extra")
        )
        orchestrator = EtlOrchestrator.from_config_dir(write_config(job_fragments))
        with pytest.raises(AssemblyError, match="paired by position"):
            orchestrator.run()
        assert not (tmp_path / "job" / "out").exists()

    def test_source_failure_fails_job(self, config_dir):
        (config_dir / "data" / "customers.csv").write_text(
            "id,name,email\nnot-a-number,Ada,ada@example.org\n", encoding="utf-8"
        )
        result = run_job(config_dir)
        assert result.status == JobStatus.FAILED
        assert result.failed_step.error_code == "RECORD_READ_FAILED"

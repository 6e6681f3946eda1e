"""
Tests for etl_config.assembler and etl_config.load_job_config -- composing
a job directory into a validated JobConfiguration.
"""

import pytest

from etl_config import load_job_config
from etl_config.assembler import assemble_from_directory
from etl_config.schema import DataFormat
from etl_kernel.exceptions import ConfigurationError
from tests.conftest import DEMO_CONFIG_DIR


class TestAssembleFromDirectory:
    def test_assembles_all_fragments(self, write_config, job_fragments):
        job_fragments["validation.yaml"] = {
            "rules": [{"model": "CustomerOut", "field": "email", "rule": "not_null"}]
        }
        config_dir = write_config(job_fragments)

        config = assemble_from_directory(config_dir)

        assert config.job_name == "customers-test"
        assert config.chunk_size == 2
        assert config.skip_limit == 0
        assert config.version == "1"
        assert config.config_dir == config_dir
        assert [s.model_name for s in config.sources] == ["Customers"]
        assert config.targets[0].format == DataFormat.JSON
        assert config.processor.processor_type == "default"
        assert len(config.mappings) == 1
        assert config.rules_for("customerout")[0].field == "email"
        assert len(config.checksum) == 64

    def test_validation_fragment_is_optional(self, write_config, job_fragments):
        config = assemble_from_directory(write_config(job_fragments))
        assert config.validation_rules == ()

    @pytest.mark.parametrize("missing", ["job.yaml", "sources.yaml", "targets.yaml", "processor.yaml"])
    def test_required_fragment_missing(self, write_config, job_fragments, missing):
        del job_fragments[missing]
        with pytest.raises(ConfigurationError, match=missing):
            assemble_from_directory(write_config(job_fragments))

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            assemble_from_directory(tmp_path / "nope")

    def test_job_name_required(self, write_config, job_fragments):
        job_fragments["job.yaml"] = {"chunk_size": 10}
        with pytest.raises(ConfigurationError, match="job_name"):
            assemble_from_directory(write_config(job_fragments))

    def test_malformed_yaml(self, write_config, job_fragments):
        job_fragments["sources.yaml"] = "sources: [unclosed\n"
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            assemble_from_directory(write_config(job_fragments))

    def test_unknown_format_is_configuration_error(self, write_config, job_fragments):
        job_fragments["targets.yaml"]["targets"][0]["format"] = "parquet"
        with pytest.raises(ConfigurationError, match="parquet") as exc_info:
            assemble_from_directory(write_config(job_fragments))
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_non_integer_chunk_size(self, write_config, job_fragments):
        job_fragments["job.yaml"]["chunk_size"] = "lots"
        with pytest.raises(ConfigurationError, match="chunk_size"):
            assemble_from_directory(write_config(job_fragments))

    def test_checksum_changes_with_content(self, write_config, job_fragments, tmp_path):
        first = assemble_from_directory(write_config(job_fragments, tmp_path / "a"))
        same = assemble_from_directory(write_config(job_fragments, tmp_path / "b"))
        job_fragments["job.yaml"]["chunk_size"] = 3
        changed = assemble_from_directory(write_config(job_fragments, tmp_path / "c"))

        assert first.checksum == same.checksum
        assert first.checksum != changed.checksum


class TestLoadJobConfig:
    def test_emits_config_trace(self, write_config, job_fragments, captured_logs):
        config = load_job_config(write_config(job_fragments))

        traces = [r for r in captured_logs() if r["message"] == "ETL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["job"] == "customers-test"
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["source_count"] == 1
        assert traces[0]["mapping_count"] == 1

    def test_validation_errors_raise_with_all_errors(self, write_config, job_fragments):
        job_fragments["job.yaml"]["chunk_size"] = 0
        job_fragments["processor.yaml"]["processor"]["mappings"][0]["fields"].append(
            {"from": "phone", "to": "full_name"}
        )
        with pytest.raises(ConfigurationError) as exc_info:
            load_job_config(write_config(job_fragments))

        errors = exc_info.value.errors
        assert any("chunk_size" in e for e in errors)
        assert any("'phone'" in e for e in errors)

    def test_warnings_are_logged(self, write_config, job_fragments, captured_logs):
        job_fragments["processor.yaml"]["processor"]["mappings"].append(
            job_fragments["processor.yaml"]["processor"]["mappings"][0]
        )
        load_job_config(write_config(job_fragments))

        warnings = [r for r in captured_logs() if r["message"] == "config_validation_warning"]
        assert any("duplicate mapping" in w["warning"] for w in warnings)

    def test_demo_configuration_is_valid(self):
        config = load_job_config(DEMO_CONFIG_DIR)
        assert config.job_name == "customers-demo"
        assert [s.model_name for s in config.sources] == ["Customers", "Department"]
        assert [t.model_name for t in config.targets] == ["CustomerExport", "DepartmentExport"]
        schemas = [r.xsd_path for r in config.validation_rules if r.rule == "xsd"]
        assert schemas == [
            str(DEMO_CONFIG_DIR / "data" / "departments.xsd"),
            str(DEMO_CONFIG_DIR / "data" / "customerexport.xsd"),
        ]

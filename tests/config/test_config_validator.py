"""
Tests for etl_config.validator -- structural errors and warnings reported
together, before any pipeline is built.
"""

from dataclasses import replace

import pytest

from etl_config.schema import (
    DataFormat,
    JobConfiguration,
    ProcessorDef,
    RecordRole,
    ValidationRuleDef,
)
from etl_config.validator import validate_configuration
from etl_kernel.domain.schema import FieldDefinition
from tests.conftest import ADDRESS, descriptor, fields_of, mapping


def _config(**overrides) -> JobConfiguration:
    source = descriptor(
        "Customers",
        fields_of(id="integer", name="string") + (ADDRESS,),
        location="/data/customers.csv",
    )
    target = descriptor(
        "Department",
        fields_of(customer_id="long", city="string"),
        role=RecordRole.TARGET,
        fmt=DataFormat.XML,
        location="/out/",
    )
    base = JobConfiguration(
        job_name="job",
        sources=(source,),
        targets=(target,),
        processor=ProcessorDef(
            mappings=(
                mapping("Customers", "Department", ("id", "customer_id"), ("address.city", "city")),
            )
        ),
    )
    return replace(base, **overrides)


def _errors(config) -> list[str]:
    return validate_configuration(config).errors


class TestValidConfiguration:
    def test_baseline_is_valid(self):
        result = validate_configuration(_config())
        assert result.is_valid, result.errors
        assert result.warnings == []


class TestJobSettings:
    def test_chunk_size_and_skip_limit(self):
        errors = _errors(_config(chunk_size=0, skip_limit=-1))
        assert any("chunk_size" in e for e in errors)
        assert any("skip_limit" in e for e in errors)


class TestDescriptors:
    def test_no_sources(self):
        assert "No sources configured" in _errors(_config(sources=()))

    def test_missing_model_name(self):
        bad = descriptor("", fields_of(id="integer"), location="/x.csv")
        assert any("model_name is required" in e for e in _errors(_config(sources=(bad,))))

    def test_duplicate_model_name(self):
        config = _config()
        errors = _errors(replace(config, sources=config.sources * 2, targets=config.targets * 2))
        assert any("declared more than once" in e for e in errors)

    def test_field_problems(self):
        bad = descriptor(
            "Customers",
            (
                FieldDefinition("id", "integer"),
                FieldDefinition("id"),
                FieldDefinition("first name"),
                FieldDefinition("address", "object"),
                FieldDefinition("city", "string", (FieldDefinition("x"),)),
            ),
            location="/x.csv",
        )
        errors = _errors(_config(sources=(bad,)))
        assert any("duplicate field 'id'" in e for e in errors)
        assert any("'first name' is not a valid identifier" in e for e in errors)
        assert any("Customers'.address: no fields declared" in e for e in errors)
        assert any("field 'city' has nested fields" in e for e in errors)

    def test_unknown_type_is_warning(self):
        src = descriptor(
            "Customers",
            fields_of(id="integer", name="varchar") + (ADDRESS,),
            location="/x.csv",
        )
        result = validate_configuration(_config(sources=(src,)))
        assert result.is_valid
        assert any("unknown type 'varchar'" in w for w in result.warnings)

    def test_file_formats_need_location(self):
        src = replace(_config().sources[0], location=None)
        assert any("location is required" in e for e in _errors(_config(sources=(src,))))

    def test_relational_needs_url(self):
        tgt = replace(_config().targets[0], format=DataFormat.RELATIONAL, location=None)
        assert any("options.url" in e for e in _errors(_config(targets=(tgt,))))


class TestPairingAndMappings:
    def test_count_mismatch_is_warning(self):
        config = _config()
        extra = descriptor("Orders", fields_of(id="integer"), location="/o.csv")
        result = validate_configuration(replace(config, sources=config.sources + (extra,)))
        assert any("paired by position" in w for w in result.warnings)

    def test_no_mappings(self):
        assert "processor: no mappings configured" in _errors(_config(processor=ProcessorDef()))

    def test_undeclared_models_and_paths(self):
        processor = ProcessorDef(
            mappings=(
                mapping("Customers", "Department", ("id", "customer_id"), ("address.street", "city")),
                mapping("Ghost", "Department", ("id", "customer_id")),
            )
        )
        errors = _errors(_config(processor=processor))
        assert any("'address.street' is not declared" in e for e in errors)
        assert any("source 'Ghost' is not declared" in e for e in errors)

    def test_object_field_shapes(self):
        processor = ProcessorDef(
            mappings=(
                mapping("Customers", "Department", ("address", "city"), ("name", "customer_id")),
            )
        )
        errors = _errors(_config(processor=processor))
        assert any("address -> city: 'address' (object) cannot be mapped" in e for e in errors), errors
        assert len(errors) == 1

    def test_empty_paths(self):
        processor = ProcessorDef(mappings=(mapping("Customers", "Department", ("id", "")),))
        assert any("non-empty 'from' and 'to'" in e for e in _errors(_config(processor=processor)))

    def test_missing_source_or_fields(self):
        processor = ProcessorDef(
            mappings=(mapping("", "Department", ("id", "customer_id")), mapping("Customers", "Department"))
        )
        errors = _errors(_config(processor=processor))
        assert any("'source' and 'target' are required" in e for e in errors)
        assert any("no field mappings" in e for e in errors)

    def test_duplicate_mapping_is_warning_and_case_insensitive(self):
        config = _config()
        dup = mapping("CUSTOMERS", "department", ("id", "customer_id"))
        result = validate_configuration(
            replace(config, processor=ProcessorDef(mappings=config.mappings + (dup,)))
        )
        assert result.is_valid
        assert any("duplicate mapping" in w for w in result.warnings)

    def test_unused_mapping_is_warning(self):
        config = _config()
        other = descriptor("Orders", fields_of(id="integer"), location="/o.csv")
        unused = mapping("Orders", "Department", ("id", "customer_id"))
        result = validate_configuration(
            replace(
                config,
                sources=config.sources + (other,),
                processor=ProcessorDef(mappings=config.mappings + (unused,)),
            )
        )
        assert any("orders -> department is not used" in w for w in result.warnings)


class TestRules:
    @pytest.mark.parametrize(
        "rule, fragment",
        [
            (ValidationRuleDef("Department", "city", "unique"), "unknown rule 'unique'"),
            (ValidationRuleDef("Nope", "city", "not_null"), "target model 'Nope'"),
            (ValidationRuleDef("Department", "zip", "not_null"), "field 'zip' is not declared"),
            (ValidationRuleDef("Department", "city", "regex"), "requires a pattern"),
            (ValidationRuleDef("Department", "city", "regex", "[unclosed"), "invalid regex"),
        ],
    )
    def test_invalid_rules(self, rule, fragment):
        errors = _errors(_config(validation_rules=(rule,)))
        assert any(fragment in e for e in errors), errors

    def test_valid_rules(self):
        rules = (
            ValidationRuleDef("department", "city", "not_null"),
            ValidationRuleDef("Department", "customer_id", "regex", r"\d+"),
        )
        assert _errors(_config(validation_rules=rules)) == []

    def test_xsd_rule(self, tmp_path):
        xsd = tmp_path / "department.xsd"
        xsd.write_text("<xs:schema xmlns:xs='http://www.w3.org/2001/XMLSchema'/>", encoding="utf-8")
        rule = ValidationRuleDef("Department", "", "xsd", xsd_path=str(xsd))
        assert _errors(_config(validation_rules=(rule,))) == []

    @pytest.mark.parametrize(
        "rule, fragment",
        [
            (ValidationRuleDef("Department", "", "xsd"), "rule #0 (Department): xsd rule requires an xsd_path"),
            (
                ValidationRuleDef("Department", "", "xsd", xsd_path="/nowhere/department.xsd"),
                "schema file /nowhere/department.xsd does not exist",
            ),
            (
                ValidationRuleDef("Customers", "", "xsd", xsd_path="/nowhere/c.xsd"),
                "xsd rules apply to xml documents, 'Customers' is csv",
            ),
            (ValidationRuleDef("Ghost", "", "xsd", xsd_path="/nowhere/g.xsd"), "model 'Ghost' is not declared"),
        ],
    )
    def test_invalid_xsd_rules(self, rule, fragment):
        errors = _errors(_config(validation_rules=(rule,)))
        assert any(fragment in e for e in errors), errors

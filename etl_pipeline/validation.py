"""
Validation rules applied to transformed records and to XML documents.

Rules come from ``validation.yaml``. Record rules are keyed by target model
name:

    not_null   the field value is not None (and not blank text)
    regex      ``str(value)`` fully matches ``pattern``; None passes

Document rules are keyed by source or target model name and only apply to
the ``xml`` format:

    xsd        the whole document conforms to the schema at ``xsd_path``;
               a source is checked before it is read, a target after it
               is written and closed

Validators return every violation as a ValidationIssue. The executor raises
RecordValidationError for the first record issue, so the record can be
skipped or the step failed, and DocumentValidationError with all document
issues, which always fails the step.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lxml import etree

from etl_config.schema import RecordDescriptor, RecordRole, ValidationRuleDef
from etl_kernel.domain.accessor import get_field
from etl_kernel.domain.coercion import is_empty
from etl_kernel.exceptions import (
    ConfigurationError,
    DocumentValidationError,
    RecordValidationError,
)
from etl_kernel.logging_config import get_logger
from etl_pipeline.adapters.base import output_path, source_path

logger = get_logger("pipeline.validation")


@dataclass(frozen=True)
class ValidationIssue:
    """One failed rule on one field."""

    code: str
    message: str
    field: str
    rule: str


class NotNullRule:
    name = "not_null"

    def __init__(self, field: str):
        self.field = field

    def check(self, value: Any) -> ValidationIssue | None:
        if is_empty(value):
            return ValidationIssue(
                code="NULL_VALUE",
                message=f"{self.field} must not be null",
                field=self.field,
                rule=self.name,
            )
        return None


class RegexRule:
    name = "regex"

    def __init__(self, field: str, pattern: str):
        self.field = field
        self.pattern = re.compile(pattern)

    def check(self, value: Any) -> ValidationIssue | None:
        if value is None:
            return None
        if not self.pattern.fullmatch(str(value)):
            return ValidationIssue(
                code="PATTERN_MISMATCH",
                message=f"{self.field} value {value!r} does not match {self.pattern.pattern!r}",
                field=self.field,
                rule=self.name,
            )
        return None


def build_rule(rule: ValidationRuleDef) -> NotNullRule | RegexRule:
    """
    Raises:
        ConfigurationError: Unknown rule name, missing or invalid pattern.
    """
    if rule.rule == NotNullRule.name:
        return NotNullRule(rule.field)
    if rule.rule == RegexRule.name:
        if not rule.pattern:
            raise ConfigurationError(f"regex rule on {rule.model}.{rule.field} has no pattern")
        try:
            return RegexRule(rule.field, rule.pattern)
        except re.error as exc:
            raise ConfigurationError(
                f"regex rule on {rule.model}.{rule.field}: invalid pattern {rule.pattern!r}: {exc}"
            ) from exc
    raise ConfigurationError(f"Unknown validation rule '{rule.rule}' on {rule.model}.{rule.field}")


class RecordValidator:
    """All enabled rules for one target model."""

    def __init__(self, model_name: str, rules: Sequence[ValidationRuleDef]):
        self.model_name = model_name
        self.rules = tuple(build_rule(r) for r in rules if r.enabled)

    def issues(self, record: Any) -> list[ValidationIssue]:
        found: list[ValidationIssue] = []
        for rule in self.rules:
            issue = rule.check(get_field(record, rule.field))
            if issue is not None:
                found.append(issue)
        return found

    def validate(self, record: Any) -> None:
        """
        Raises:
            RecordValidationError: For the first violated rule.
        """
        issues = self.issues(record)
        if issues:
            first = issues[0]
            raise RecordValidationError(self.model_name, first.field, first.rule, first.message)

    def __len__(self) -> int:
        return len(self.rules)


class XsdRule:
    """Check a whole XML document against an XML Schema (XSD 1.0)."""

    name = "xsd"

    def __init__(self, xsd_path: str | Path):
        self.xsd_path = Path(xsd_path)
        try:
            self.schema = etree.XMLSchema(etree.parse(str(self.xsd_path)))
        except (OSError, etree.XMLSyntaxError, etree.XMLSchemaParseError) as exc:
            raise ConfigurationError(f"Cannot load XML schema {self.xsd_path}: {exc}") from exc

    def issues(self, document: str | Path) -> list[ValidationIssue]:
        try:
            tree = etree.parse(str(document))
        except (OSError, etree.XMLSyntaxError) as exc:
            return [
                ValidationIssue(code="MALFORMED_DOCUMENT", message=str(exc), field="", rule=self.name)
            ]
        if self.schema.validate(tree):
            return []
        return [
            ValidationIssue(
                code="XSD_VIOLATION",
                message=f"line {entry.line}: {entry.message}",
                field="",
                rule=self.name,
            )
            for entry in self.schema.error_log
        ]


class DocumentValidator:
    """
    All enabled ``xsd`` rules for one XML source or target.

    The document checked is the file the descriptor resolves to: the source
    file for a source, the written output file for a target.

    Raises:
        ConfigurationError: A schema file is missing or not a valid XSD.
    """

    def __init__(self, descriptor: RecordDescriptor, rules: Sequence[ValidationRuleDef]):
        self.descriptor = descriptor
        self.rules = tuple(build_xsd_rule(r) for r in rules if r.enabled)

    @property
    def model_name(self) -> str:
        return self.descriptor.model_name

    def document_path(self) -> Path:
        if self.descriptor.role == RecordRole.SOURCE:
            return source_path(self.descriptor)
        return output_path(self.descriptor, "xml")

    def validate(self) -> None:
        """
        Raises:
            DocumentValidationError: The document breaks any schema.
            RecordReadError: A source document does not exist.
        """
        path = self.document_path()
        issues = [issue for rule in self.rules for issue in rule.issues(path)]
        if issues:
            logger.warning(
                "etl_document_invalid",
                extra={
                    "model": self.model_name,
                    "location": str(path),
                    "issue_count": len(issues),
                },
            )
            raise DocumentValidationError(self.model_name, str(path), [i.message for i in issues])
        logger.info(
            "etl_document_validated",
            extra={"model": self.model_name, "location": str(path), "rule_count": len(self.rules)},
        )

    def __len__(self) -> int:
        return len(self.rules)


def build_xsd_rule(rule: ValidationRuleDef) -> XsdRule:
    if rule.rule != XsdRule.name:
        raise ConfigurationError(f"'{rule.rule}' rule on {rule.model} is not a document rule")
    if not rule.xsd_path:
        raise ConfigurationError(f"xsd rule on {rule.model} has no xsd_path")
    return XsdRule(rule.xsd_path)

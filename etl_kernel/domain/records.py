"""
Record type synthesis.

Turns a field schema into a concrete runtime record type: a slotted
dataclass with one attribute per declared field, every attribute defaulting
to ``None``. Composite (``object``) fields get their own synthesized type.

Synthesized types are cached per (naming scope, model name). Asking again
with the same fields returns the cached handle; asking with different
fields raises SchemaConflictError. The cache is guarded by a lock: the
first synthesis wins and concurrent callers block, then reuse it.

This is part of the functional core - no I/O.
"""

from __future__ import annotations

import keyword
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields as dataclass_fields, make_dataclass
from typing import Any, ClassVar, Optional

from etl_kernel.domain.schema import (
    FieldDefinition,
    FieldType,
    schema_fingerprint,
    split_path,
    storage_type,
)
from etl_kernel.exceptions import (
    FieldAccessError,
    SchemaConflictError,
    TypeSynthesisError,
)
from etl_kernel.logging_config import get_logger

logger = get_logger("domain.records")

_RESERVED_NAMES = frozenset({"to_dict"})


class SynthesizedRecord:
    """Base class of every synthesized record type."""

    __slots__ = ()

    __record_type__: ClassVar[RecordTypeHandle]

    def to_dict(self) -> dict[str, Any]:
        return record_to_dict(self)


@dataclass(frozen=True)
class RecordTypeHandle:
    """
    Reference to a synthesized record type.

    Equality and hashing use the qualified name and fingerprint only.
    """

    model_name: str
    naming_scope: str
    fingerprint: str
    fields: tuple[FieldDefinition, ...]
    record_class: type[SynthesizedRecord] = field(compare=False, repr=False)
    nested: Mapping[str, RecordTypeHandle] = field(
        default_factory=dict, compare=False, repr=False
    )

    @property
    def qualified_name(self) -> str:
        if self.naming_scope:
            return f"{self.naming_scope}.{self.model_name}"
        return self.model_name

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def new(self, **values: Any) -> SynthesizedRecord:
        """Create a record with every field None unless given."""
        return self.record_class(**values)

    def definition(self, name: str) -> FieldDefinition | None:
        return next((f for f in self.fields if f.name == name), None)

    def nested_type(self, name: str) -> RecordTypeHandle | None:
        return self.nested.get(name)

    def resolve(self, path: str) -> tuple[RecordTypeHandle, FieldDefinition]:
        """
        Walk a dotted path through this type and its nested types.

        Returns:
            The handle owning the last segment and that segment's definition.

        Raises:
            FieldAccessError: A segment is not declared, or a non-composite
                field is followed by further segments.
        """
        handle = self
        segments = split_path(path)
        for i, segment in enumerate(segments):
            definition = handle.definition(segment)
            if definition is None:
                raise FieldAccessError(handle.qualified_name, path, segment)
            if i == len(segments) - 1:
                return handle, definition
            child = handle.nested_type(segment)
            if child is None:
                raise FieldAccessError(
                    handle.qualified_name,
                    path,
                    segment,
                    reason=f"'{segment}' is a {definition.field_type.value} field, not a nested record",
                )
            handle = child
        raise FieldAccessError(self.qualified_name, path, path, reason="empty path")

    def field_type(self, path: str) -> FieldType:
        """Declared type of the field at a dotted path."""
        return self.resolve(path)[1].field_type

    def has_path(self, path: str) -> bool:
        try:
            self.resolve(path)
        except FieldAccessError:
            return False
        return True


def record_to_dict(record: SynthesizedRecord) -> dict[str, Any]:
    """Plain nested dict of a synthesized record, in declared field order."""
    data: dict[str, Any] = {}
    for f in dataclass_fields(record):
        value = getattr(record, f.name)
        if isinstance(value, SynthesizedRecord):
            value = record_to_dict(value)
        data[f.name] = value
    return data


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def _check_schema(model_name: str, fields: Sequence[FieldDefinition]) -> None:
    if not fields:
        raise TypeSynthesisError(model_name, "schema declares no fields")
    seen: set[str] = set()
    for f in fields:
        name = f.name
        if not isinstance(name, str) or not name.isidentifier():
            raise TypeSynthesisError(
                model_name, f"field name {name!r} is not a valid identifier"
            )
        if keyword.iskeyword(name):
            raise TypeSynthesisError(
                model_name, f"field name {name!r} is a reserved word"
            )
        if name in _RESERVED_NAMES or name.startswith("__"):
            raise TypeSynthesisError(
                model_name, f"field name {name!r} is reserved for record internals"
            )
        if name in seen:
            raise TypeSynthesisError(model_name, f"duplicate field name {name!r}")
        seen.add(name)
        if f.is_composite and not f.fields:
            raise TypeSynthesisError(
                model_name, f"object field {name!r} declares no nested fields"
            )
        if f.fields and not f.is_composite:
            raise TypeSynthesisError(
                model_name,
                f"field {name!r} declares nested fields but has type "
                f"{f.type_tag!r}, expected 'object'",
            )


def _build(
    model_name: str,
    naming_scope: str,
    fields: tuple[FieldDefinition, ...],
    fingerprint: str,
) -> RecordTypeHandle:
    _check_schema(model_name, fields)

    nested: dict[str, RecordTypeHandle] = {}
    slots: list[tuple[str, Any, Any]] = []
    for f in fields:
        if f.is_composite:
            child = _build(
                f"{model_name}_{f.name}",
                naming_scope,
                f.fields,
                schema_fingerprint(f.fields),
            )
            nested[f.name] = child
            annotation: Any = Optional[child.record_class]
        else:
            target = storage_type(f.field_type)
            annotation = Optional[target] if target is not None else Any
        slots.append((f.name, annotation, field(default=None)))

    try:
        record_class = make_dataclass(
            model_name,
            slots,
            bases=(SynthesizedRecord,),
            slots=True,
        )
    except TypeError as exc:
        raise TypeSynthesisError(model_name, str(exc), exc) from exc

    record_class.__module__ = __name__
    record_class.__qualname__ = (
        f"{naming_scope}.{model_name}" if naming_scope else model_name
    )

    handle = RecordTypeHandle(
        model_name=model_name,
        naming_scope=naming_scope,
        fingerprint=fingerprint,
        fields=fields,
        record_class=record_class,
        nested=nested,
    )
    record_class.__record_type__ = handle
    return handle


class RecordTypeSynthesizer:
    """
    Process-wide cache of synthesized record types.

    Usage:
        synthesizer = RecordTypeSynthesizer()
        handle = synthesizer.synthesize("Customers", fields, naming_scope="source")
        record = handle.new(id=7)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._types: dict[tuple[str, str], RecordTypeHandle] = {}

    def synthesize(
        self,
        model_name: str,
        fields: Sequence[FieldDefinition],
        naming_scope: str = "",
    ) -> RecordTypeHandle:
        """
        Return the record type for a schema, creating it on first request.

        Args:
            model_name: Type name, unique within ``naming_scope``.
            fields: Ordered field schema.
            naming_scope: Namespace separating e.g. source and target types
                that share a model name.

        Returns:
            The cached or newly built RecordTypeHandle.

        Raises:
            SchemaConflictError: The name is already bound to other fields.
            TypeSynthesisError: The schema cannot become a record type.
                Nothing is cached in that case.
        """
        if not model_name or not str(model_name).strip():
            raise TypeSynthesisError(str(model_name), "model name is empty")

        field_tuple = tuple(fields)
        fingerprint = schema_fingerprint(field_tuple)
        key = (naming_scope, model_name)

        with self._lock:
            existing = self._types.get(key)
            if existing is not None:
                if existing.fingerprint != fingerprint:
                    logger.warning(
                        "record_type_conflict",
                        extra={
                            "model_name": model_name,
                            "naming_scope": naming_scope,
                            "existing_fingerprint": existing.fingerprint,
                            "new_fingerprint": fingerprint,
                        },
                    )
                    raise SchemaConflictError(
                        existing.qualified_name, existing.fingerprint, fingerprint
                    )
                logger.debug(
                    "record_type_reused",
                    extra={"model_name": model_name, "naming_scope": naming_scope},
                )
                return existing

            handle = _build(model_name, naming_scope, field_tuple, fingerprint)
            self._types[key] = handle

        logger.info(
            "record_type_synthesized",
            extra={
                "model_name": model_name,
                "naming_scope": naming_scope,
                "fingerprint": fingerprint,
                "field_count": len(field_tuple),
            },
        )
        return handle

    def get(self, model_name: str, naming_scope: str = "") -> RecordTypeHandle | None:
        with self._lock:
            return self._types.get((naming_scope, model_name))

    def list_types(self) -> list[str]:
        with self._lock:
            return sorted(h.qualified_name for h in self._types.values())

    def clear(self) -> None:
        """Forget all synthesized types. FOR TESTING ONLY."""
        with self._lock:
            self._types.clear()

    def __len__(self) -> int:
        return len(self._types)


_default_synthesizer = RecordTypeSynthesizer()


def default_synthesizer() -> RecordTypeSynthesizer:
    """The process-wide synthesizer shared by assemblers that are not given one."""
    return _default_synthesizer

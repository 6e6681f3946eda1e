"""
Format and processor registries.

FormatRegistry maps a DataFormat to the source adapter that reads it and
the target adapter that writes it. ProcessorRegistry maps a processor type
string (``processor.type`` in configuration) to a factory building the
per-step transform. Both fail loudly, listing what is registered, when a
key is missing.
"""

from __future__ import annotations

from collections.abc import Callable

from etl_config.schema import DataFormat, EntityMappingDef, parse_data_format
from etl_kernel.domain.records import RecordTypeHandle
from etl_kernel.exceptions import UnknownFormatError, UnknownProcessorError
from etl_pipeline.adapters import (
    CsvSourceAdapter,
    CsvTargetAdapter,
    JsonSourceAdapter,
    JsonTargetAdapter,
    RelationalSourceAdapter,
    RelationalTargetAdapter,
    SourceAdapter,
    TargetAdapter,
    XmlSourceAdapter,
    XmlTargetAdapter,
)
from etl_pipeline.mapping.mapper import DynamicMapper


class FormatRegistry:
    """Registry mapping data formats to reader and writer adapters.

    Contract:
        - ``register_reader()`` / ``register_writer()`` add an adapter for
          its ``format``; raise ValueError on duplicate.
        - ``reader_for()`` / ``writer_for()`` retrieve by format or tag;
          raise UnknownFormatError if missing.
    """

    def __init__(self) -> None:
        self._readers: dict[DataFormat, SourceAdapter] = {}
        self._writers: dict[DataFormat, TargetAdapter] = {}

    def register_reader(self, adapter: SourceAdapter) -> None:
        """Register a source adapter.

        Raises:
            ValueError: If a reader for the same format is already registered.
        """
        if adapter.format in self._readers:
            raise ValueError(f"Reader for format '{adapter.format.value}' is already registered")
        self._readers[adapter.format] = adapter

    def register_writer(self, adapter: TargetAdapter) -> None:
        """Register a target adapter.

        Raises:
            ValueError: If a writer for the same format is already registered.
        """
        if adapter.format in self._writers:
            raise ValueError(f"Writer for format '{adapter.format.value}' is already registered")
        self._writers[adapter.format] = adapter

    @staticmethod
    def _key(fmt: DataFormat | str, role: str, available: list[str]) -> DataFormat:
        try:
            return parse_data_format(fmt)
        except ValueError:
            raise UnknownFormatError(str(fmt), role, available) from None

    def reader_for(self, fmt: DataFormat | str) -> SourceAdapter:
        """Retrieve the reader for a format.

        Raises:
            UnknownFormatError: If no reader is registered for the format.
        """
        available = self.list_readers()
        key = self._key(fmt, "reader", available)
        try:
            return self._readers[key]
        except KeyError:
            raise UnknownFormatError(key.value, "reader", available) from None

    def writer_for(self, fmt: DataFormat | str) -> TargetAdapter:
        """Retrieve the writer for a format.

        Raises:
            UnknownFormatError: If no writer is registered for the format.
        """
        available = self.list_writers()
        key = self._key(fmt, "writer", available)
        try:
            return self._writers[key]
        except KeyError:
            raise UnknownFormatError(key.value, "writer", available) from None

    def list_readers(self) -> list[str]:
        return sorted(f.value for f in self._readers)

    def list_writers(self) -> list[str]:
        return sorted(f.value for f in self._writers)

    def __contains__(self, fmt: DataFormat) -> bool:
        return fmt in self._readers or fmt in self._writers


ProcessorFactory = Callable[[EntityMappingDef, RecordTypeHandle], Callable]


class ProcessorRegistry:
    """Registry mapping processor type strings to transform factories.

    Contract:
        - ``register()`` adds a factory; raises ValueError on duplicate.
        - ``get()`` retrieves by type (case-insensitive); raises
          UnknownProcessorError if missing.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ProcessorFactory] = {}

    def register(self, processor_type: str, factory: ProcessorFactory) -> None:
        key = processor_type.strip().lower()
        if key in self._factories:
            raise ValueError(f"Processor type '{processor_type}' is already registered")
        self._factories[key] = factory

    def get(self, processor_type: str) -> ProcessorFactory:
        try:
            return self._factories[processor_type.strip().lower()]
        except KeyError:
            raise UnknownProcessorError(processor_type, self.list_types()) from None

    def list_types(self) -> list[str]:
        return sorted(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def __contains__(self, processor_type: str) -> bool:
        return processor_type.strip().lower() in self._factories


def default_format_registry() -> FormatRegistry:
    """Create a FormatRegistry with every built-in format registered."""
    registry = FormatRegistry()
    for reader in (
        CsvSourceAdapter(),
        XmlSourceAdapter(),
        JsonSourceAdapter(),
        RelationalSourceAdapter(),
    ):
        registry.register_reader(reader)
    for writer in (
        CsvTargetAdapter(),
        XmlTargetAdapter(),
        JsonTargetAdapter(),
        RelationalTargetAdapter(),
    ):
        registry.register_writer(writer)
    return registry


def default_processor_registry() -> ProcessorRegistry:
    """Create a ProcessorRegistry with the ``default`` (dynamic mapper) type."""
    registry = ProcessorRegistry()
    registry.register("default", DynamicMapper)
    return registry

"""Format adapters: streaming readers and chunked writers per data format."""

from etl_pipeline.adapters.base import (
    RecordSink,
    SourceAdapter,
    SourceProbe,
    TargetAdapter,
)
from etl_pipeline.adapters.csv_adapter import CsvSourceAdapter, CsvTargetAdapter
from etl_pipeline.adapters.json_adapter import JsonSourceAdapter, JsonTargetAdapter
from etl_pipeline.adapters.relational_adapter import (
    RelationalSourceAdapter,
    RelationalTargetAdapter,
)
from etl_pipeline.adapters.xml_adapter import XmlSourceAdapter, XmlTargetAdapter

__all__ = [
    "CsvSourceAdapter",
    "CsvTargetAdapter",
    "JsonSourceAdapter",
    "JsonTargetAdapter",
    "RecordSink",
    "RelationalSourceAdapter",
    "RelationalTargetAdapter",
    "SourceAdapter",
    "SourceProbe",
    "TargetAdapter",
    "XmlSourceAdapter",
    "XmlTargetAdapter",
]

from .reader import build_limited_query, build_record, read_records
from .stream import RecordSink, publish_stream

__all__ = [
    "build_limited_query",
    "build_record",
    "read_records",
    "RecordSink",
    "publish_stream",
]

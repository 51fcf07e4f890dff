"""
Pipeline package for the Redshift sink.

Re-exports the per-chunk stages so downstream code can import from
`redshift_sink.pipeline` directly:

- SchemaResolver: target table columns, cached per table
- RecordSerializer: record -> escaped delimited row
- ChunkWriter: chunk -> gzip staging file
- StagingUploader: staging file -> S3 object
- WarehouseLoader: S3 object -> Redshift COPY
"""

from redshift_sink.pipeline.chunk_writer import Chunk, ChunkWriter
from redshift_sink.pipeline.loader import (
    WarehouseLoader,
    build_copy_template,
    classify_load_error,
    is_load_data_error,
)
from redshift_sink.pipeline.schema import SchemaResolver, build_columns_query
from redshift_sink.pipeline.serializer import (
    RecordSerializer,
    escape_value,
    split_row,
    unescape_value,
)
from redshift_sink.pipeline.uploader import StagingUploader

__all__ = [
    "Chunk",
    "ChunkWriter",
    "RecordSerializer",
    "SchemaResolver",
    "StagingUploader",
    "WarehouseLoader",
    "build_columns_query",
    "build_copy_template",
    "classify_load_error",
    "escape_value",
    "is_load_data_error",
    "split_row",
    "unescape_value",
]

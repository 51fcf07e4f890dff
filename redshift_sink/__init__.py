"""
Redshift sink - land batches of log records in Amazon Redshift via S3 staging.

Each chunk of buffered records goes through the same steps:

- resolve the target table's columns from the catalog (cached)
- serialize every record into an escaped, schema-ordered delimited row
- stream the rows into a gzip file
- upload the file to S3 under a collision-free key
- COPY the object into Redshift and classify the outcome

Bad records are dropped with a log line; rejected data is logged and not
retried; every other failure is raised for the buffering engine to retry.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from redshift_sink.config import Settings, get_settings
from redshift_sink.domain import BufferChunk, LoadResult, TableRef, TableSchema, WriteOutcome
from redshift_sink.errors import (
    ChunkDecodeError,
    ConfigError,
    EmptySchemaError,
    LoadDataError,
    LoadFatalError,
    RecordDecodeError,
    RecordSerializeError,
    RedshiftSinkError,
    SchemaFetchError,
    UploadError,
)
from redshift_sink.output import RedshiftOutput
from redshift_sink.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Output
    "RedshiftOutput",
    "BufferChunk",
    # Domain values
    "LoadResult",
    "TableRef",
    "TableSchema",
    "WriteOutcome",
    # Errors
    "RedshiftSinkError",
    "ConfigError",
    "SchemaFetchError",
    "ChunkDecodeError",
    "EmptySchemaError",
    "RecordDecodeError",
    "RecordSerializeError",
    "UploadError",
    "LoadDataError",
    "LoadFatalError",
    # Logging
    "configure_logging",
    "get_logger",
]

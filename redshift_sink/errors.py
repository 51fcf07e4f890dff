"""
Error taxonomy for the Redshift sink.

Fatal errors propagate to the buffering engine, which retries the whole chunk.
Record-level errors are recovered inside the chunk writer and never escape it.
"""

from __future__ import annotations

from typing import Any, Optional


class RedshiftSinkError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(RedshiftSinkError):
    """Invalid or unsupported configuration detected at startup."""


class SchemaFetchError(RedshiftSinkError):
    """The catalog query for the target table failed."""


class EmptySchemaError(RedshiftSinkError):
    """The target table has no visible columns."""


class RecordError(RedshiftSinkError):
    """
    A single record could not be turned into a row.

    Carries the offending raw payload so it can be logged for diagnosis.
    """

    def __init__(self, message: str, raw: Any = None) -> None:
        super().__init__(message)
        self.raw = raw


class RecordDecodeError(RecordError):
    """The record payload could not be decoded into a mapping."""


class RecordSerializeError(RecordError):
    """The decoded record could not be serialized into a delimited row."""


class ChunkDecodeError(RedshiftSinkError):
    """
    A buffered chunk holds bytes that are not a complete msgpack object.

    `offset` is the byte position where reading stopped.
    """

    def __init__(self, message: str, offset: int = 0) -> None:
        super().__init__(message)
        self.offset = offset


class UploadError(RedshiftSinkError):
    """Uploading the staging file to object storage failed."""


class LoadError(RedshiftSinkError):
    """Base class for COPY failures."""

    def __init__(self, message: str, s3_uri: Optional[str] = None) -> None:
        super().__init__(message)
        self.s3_uri = s3_uri


class LoadDataError(LoadError):
    """Redshift rejected the staged data itself; retrying would fail again."""


class LoadFatalError(LoadError):
    """Any other COPY failure: connectivity, permissions, syntax."""


__all__ = [
    "RedshiftSinkError",
    "ConfigError",
    "SchemaFetchError",
    "EmptySchemaError",
    "RecordError",
    "RecordDecodeError",
    "RecordSerializeError",
    "UploadError",
    "LoadError",
    "LoadDataError",
    "LoadFatalError",
]

"""
Domain package for the Redshift sink.

Exports the table reference, resolved schema, chunk container and the outcome
values exchanged between pipeline stages. Keep this package free of I/O.
"""

from redshift_sink.domain.chunk import BufferChunk
from redshift_sink.domain.models import (
    ChunkOutcome,
    ChunkStatus,
    LoadResult,
    RecordOutcome,
    RecordStatus,
    TableRef,
    TableSchema,
    WriteOutcome,
)

__all__ = [
    "BufferChunk",
    "ChunkOutcome",
    "ChunkStatus",
    "LoadResult",
    "RecordOutcome",
    "RecordStatus",
    "TableRef",
    "TableSchema",
    "WriteOutcome",
]

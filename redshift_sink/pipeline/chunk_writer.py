"""
Chunk to gzip staging file.

Structured chunks (json, msgpack) are decoded record by record and serialized
against the target table schema; flat chunks (tsv, csv) already hold final
delimited text and are streamed into the gzip file untouched. A bad record is
logged with its raw content and dropped; only a failure of the file itself
aborts the chunk.
"""

from __future__ import annotations

import gzip
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Optional, Protocol

from redshift_sink.domain.models import ChunkOutcome, ChunkStatus, RecordStatus, TableRef
from redshift_sink.errors import ChunkDecodeError
from redshift_sink.pipeline.schema import SchemaResolver
from redshift_sink.pipeline.serializer import RecordSerializer
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)


class Chunk(Protocol):
    """What the chunk writer needs from a buffered chunk."""

    def msgpack_each(self) -> Iterator[Any]:
        """Yield decoded records; raise `ChunkDecodeError` on unframeable bytes."""
        ...

    def write_to(self, fileobj: BinaryIO) -> None:
        ...


class ChunkWriter:
    """
    Write one chunk into a local gzip file and report whether anything was staged.

    Parameters
    ----------
    serializer : RecordSerializer
        Decodes and serializes structured records.
    resolver : SchemaResolver | None
        Column source for structured mode. Unused in flat mode.
    table : TableRef | None
        Target table whose columns drive serialization.
    structured : bool
        True for json/msgpack chunks, False for pre-formatted tsv/csv chunks.
    """

    def __init__(
        self,
        serializer: RecordSerializer,
        resolver: Optional[SchemaResolver] = None,
        table: Optional[TableRef] = None,
        structured: bool = True,
        log_suffix: str = "",
    ) -> None:
        if structured and (resolver is None or table is None):
            raise ValueError("structured mode requires a schema resolver and a table")
        self._serializer = serializer
        self._resolver = resolver
        self._table = table
        self.structured = structured
        self._log = with_suffix(log, log_suffix)

    def write(self, chunk: Chunk, dst: Path) -> ChunkOutcome:
        """
        Fill `dst` with the gzip-compressed rows of `chunk`.

        Returns an EMPTY outcome when no bytes were produced, in which case the
        content of `dst` must not be uploaded.

        Raises
        ------
        SchemaFetchError
            If the table definition cannot be fetched (structured mode).
        OSError
            If the staging file cannot be written.
        """
        if self.structured:
            return self._write_structured(chunk, dst)
        return self._write_flat(chunk, dst)

    def _write_flat(self, chunk: Chunk, dst: Path) -> ChunkOutcome:
        with gzip.open(dst, "wb") as gz:
            chunk.write_to(gz)
            written = gz.tell()
        if written == 0:
            return ChunkOutcome(status=ChunkStatus.EMPTY, reason="empty chunk")
        return ChunkOutcome(status=ChunkStatus.STAGED, path=dst)

    def _write_structured(self, chunk: Chunk, dst: Path) -> ChunkOutcome:
        if self._resolver is None or self._table is None:
            raise ValueError("structured mode requires a schema resolver and a table")
        schema = self._resolver.resolve(self._table)
        if schema.is_empty:
            self._log.warning(f"no table on redshift. table_name={self._table.identifier}")
            return ChunkOutcome(status=ChunkStatus.EMPTY, reason="table has no columns")

        rows = skipped = failed = 0
        file_type = self._serializer.file_type
        with gzip.open(dst, "wb") as gz:
            try:
                for raw in chunk.msgpack_each():
                    outcome = self._serializer.convert(schema, raw)
                    if outcome.status is RecordStatus.ROW:
                        gz.write(outcome.row.encode("utf-8"))
                        rows += 1
                    elif outcome.status is RecordStatus.SKIPPED:
                        skipped += 1
                    else:
                        failed += 1
                        self._log.error(
                            f"failed to create table text from {file_type}. text=({raw!r})",
                            exc_info=outcome.error,
                        )
            except ChunkDecodeError as exc:
                # the rest of the chunk cannot be framed; keep the rows read so far
                failed += 1
                self._log.error(
                    f"failed to read records from chunk, dropping the rest. "
                    f"table_name={self._table.identifier} rows={rows} error={exc}",
                    extra={"offset": exc.offset},
                )
            written = gz.tell()

        if written == 0:
            return ChunkOutcome(
                status=ChunkStatus.EMPTY,
                skipped=skipped,
                failed=failed,
                reason="no valid rows",
            )
        self._log.debug(
            "created gz file",
            extra={"rows": rows, "skipped": skipped, "failed": failed, "bytes": written},
        )
        return ChunkOutcome(
            status=ChunkStatus.STAGED,
            path=dst,
            rows=rows,
            skipped=skipped,
            failed=failed,
        )


__all__ = ["Chunk", "ChunkWriter"]

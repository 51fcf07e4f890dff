"""
Buffered output that lands log records in Redshift through S3.

A buffering engine drives this class:

    output = RedshiftOutput(settings)
    output.start()
    chunk.append(output.format(tag, time, record))   # per record
    output.write(chunk)                               # per flush

`write` builds a gzip file from the chunk, uploads it to S3 and issues COPY.
It returns a `WriteOutcome` for handled chunks and raises for failures the
engine should retry. Staged objects are left in S3 after a failed COPY; they
are never referenced again.

Usage (example):
    from redshift_sink.domain.chunk import BufferChunk
    from redshift_sink.output import RedshiftOutput

    output = RedshiftOutput()
    output.start()
    chunk = BufferChunk()
    chunk.append(output.format("app.access", time.time(), {"user": "a"}))
    output.write(chunk)
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import msgpack
from psycopg import Connection

from redshift_sink.config import Settings, get_settings
from redshift_sink.domain.models import LoadResult, WriteOutcome
from redshift_sink.infrastructure.db_factory import get_sync_connection
from redshift_sink.infrastructure.s3_factory import get_s3_client
from redshift_sink.pipeline.chunk_writer import Chunk, ChunkWriter
from redshift_sink.pipeline.loader import WarehouseLoader
from redshift_sink.pipeline.schema import SchemaResolver
from redshift_sink.pipeline.serializer import RecordSerializer, stringify
from redshift_sink.pipeline.uploader import StagingUploader
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)


class RedshiftOutput:
    """
    Wire the pipeline stages together for one target table.

    Parameters
    ----------
    settings : Settings | None
        Effective configuration. Defaults to the cached environment settings.
    s3_client : Any | None
        Pre-built boto3 S3 client; created in `start()` when omitted.
    connect : callable | None
        Zero-argument factory returning a new psycopg connection.
    clock : callable | None
        Source of the current time for object keys.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        s3_client: Any = None,
        connect: Optional[Callable[[], Connection]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._s3_client = s3_client
        self._connect = connect or partial(get_sync_connection, self.settings)
        self._clock = clock
        self._log = with_suffix(log, self.settings.log_suffix)

        s = self.settings
        self.serializer = RecordSerializer(
            delimiter=s.delimiter or "\t",
            file_type=s.file_type,
            record_log_tag=s.record_log_tag,
            log_suffix=s.log_suffix,
        )
        self.schema_resolver = SchemaResolver(
            connect=self._connect,
            exclude_column=s.redshift_exclude_column,
            log_suffix=s.log_suffix,
        )
        self.chunk_writer = ChunkWriter(
            serializer=self.serializer,
            resolver=self.schema_resolver,
            table=s.table_ref,
            structured=s.structured,
            log_suffix=s.log_suffix,
        )
        self.loader = WarehouseLoader.from_settings(s, connect=self._connect)
        self.uploader: Optional[StagingUploader] = None

        self._log.debug(f"redshift file_type:{s.file_type} delimiter:'{s.delimiter}'")
        self._log.info(f"copy_sql_template => {self.loader.masked_sql('{s3_uri}')}")

    def start(self) -> None:
        """Create the shared S3 handle."""
        if self._s3_client is None:
            self._s3_client = get_s3_client(self.settings)
        self.uploader = StagingUploader(
            client=self._s3_client,
            bucket=self.settings.s3_bucket,
            timestamp_key_format=self.settings.timestamp_key_format,
            utc=self.settings.utc,
            clock=self._clock,
            log_suffix=self.settings.log_suffix,
        )

    def format(self, tag: str, time: float, record: Mapping[str, Any]) -> bytes:
        """
        Encode one record for the chunk buffer.

        The event time is stamped into `time_key` first. Structured file types
        are msgpack-encoded (msgpack wraps the record in `record_log_tag`);
        flat file types emit the `record_log_tag` field as one text line, written
        verbatim: a newline inside the field yields more than one staged row.
        """
        s = self.settings
        record = dict(record)
        record[s.time_key] = datetime.fromtimestamp(time).strftime(s.time_format)
        if s.file_type == "json":
            return msgpack.packb(record, default=str)
        if s.file_type == "msgpack":
            return msgpack.packb({s.record_log_tag: record}, default=str)
        return f"{stringify(record.get(s.record_log_tag))}\n".encode("utf-8")

    def write(self, chunk: Chunk) -> WriteOutcome:
        """
        Stage, upload and COPY one chunk.

        Raises
        ------
        SchemaFetchError, UploadError, LoadFatalError, OSError
            On failures the buffering engine should retry.
        """
        if self.uploader is None:
            raise RuntimeError("RedshiftOutput.start() must be called before write()")

        self._log.debug("start creating gz.")
        fd, tmp_name = tempfile.mkstemp(prefix="s3-", suffix=".gz")
        os.close(fd)
        tmp = Path(tmp_name)
        try:
            outcome = self.chunk_writer.write(chunk, tmp)
            if not outcome.staged:
                self._log.debug(f"received no valid data. reason={outcome.reason}")
                return WriteOutcome.EMPTY
            object_key = self.uploader.upload(tmp, self.settings.path)
        finally:
            tmp.unlink(missing_ok=True)

        result = self.loader.load(object_key)
        if result is LoadResult.LOADED:
            return WriteOutcome.LOADED
        return WriteOutcome.SKIPPED


__all__ = ["RedshiftOutput"]

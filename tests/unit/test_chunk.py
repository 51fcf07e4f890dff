from __future__ import annotations

import io

import msgpack
import pytest

from redshift_sink.domain.chunk import BufferChunk
from redshift_sink.errors import ChunkDecodeError


def test_msgpack_each_yields_records_in_append_order() -> None:
    chunk = BufferChunk()
    chunk.append(msgpack.packb({"a": 1}))
    chunk.append(msgpack.packb({"b": "x"}))

    assert list(chunk.msgpack_each()) == [{"a": 1}, {"b": "x"}]


def test_size_tracks_appended_bytes() -> None:
    chunk = BufferChunk(b"ab")
    chunk.append(b"cde")

    assert chunk.size == 5
    assert len(chunk) == 5
    assert chunk.read() == b"abcde"


def test_write_to_streams_raw_bytes() -> None:
    chunk = BufferChunk(b"a\tb\n")
    chunk.append(b"c\td\n")
    sink = io.BytesIO()

    chunk.write_to(sink)

    assert sink.getvalue() == b"a\tb\nc\td\n"


def test_empty_chunk_yields_nothing() -> None:
    chunk = BufferChunk()

    assert len(chunk) == 0
    assert list(chunk.msgpack_each()) == []


def test_malformed_entry_raises_after_yielding_earlier_records() -> None:
    first = msgpack.packb({"a": 1})
    chunk = BufferChunk(first + b"\xc1" + msgpack.packb({"b": 2}))
    seen = []

    with pytest.raises(ChunkDecodeError):
        for record in chunk.msgpack_each():
            seen.append(record)

    assert seen == [{"a": 1}]


def test_truncated_entry_reports_offset() -> None:
    first = msgpack.packb({"a": 1})
    chunk = BufferChunk(first + msgpack.packb({"b": "xyz"})[:-2])

    with pytest.raises(ChunkDecodeError) as excinfo:
        list(chunk.msgpack_each())

    assert excinfo.value.offset == len(first)

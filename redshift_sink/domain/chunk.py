"""
In-memory chunk container handed to `RedshiftOutput.write`.

A buffering engine appends the bytes returned by `RedshiftOutput.format` and
flushes the chunk as one unit. Structured file types store concatenated
msgpack objects; flat file types store newline-terminated text.
"""

from __future__ import annotations

import io
from typing import Any, BinaryIO, Iterator, List

import msgpack

from redshift_sink.errors import ChunkDecodeError


class BufferChunk:
    """
    Append-only byte buffer with the two read paths the chunk writer needs.
    """

    def __init__(self, data: bytes = b"") -> None:
        self._parts: List[bytes] = [data] if data else []
        self._size = len(data)

    def append(self, data: bytes) -> None:
        self._parts.append(data)
        self._size += len(data)

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def read(self) -> bytes:
        return b"".join(self._parts)

    def msgpack_each(self) -> Iterator[Any]:
        """
        Yield every msgpack object stored in the chunk, in append order.

        Raises
        ------
        ChunkDecodeError
            On a malformed entry, or when the chunk ends inside an entry. Every
            object before that point has already been yielded.
        """
        data = self.read()
        unpacker = msgpack.Unpacker(io.BytesIO(data), raw=False)
        while True:
            try:
                obj = next(unpacker)
            except StopIteration:
                break
            except (ValueError, TypeError) as exc:
                offset = unpacker.tell()
                raise ChunkDecodeError(
                    f"malformed msgpack entry at byte {offset}: {exc}", offset=offset
                ) from exc
            yield obj

        offset = unpacker.tell()
        if offset < len(data):
            raise ChunkDecodeError(
                f"truncated msgpack entry at byte {offset}: {len(data) - offset} bytes left",
                offset=offset,
            )

    def write_to(self, fileobj: BinaryIO) -> None:
        """Stream the raw chunk bytes into a writable binary file object."""
        for part in self._parts:
            fileobj.write(part)


__all__ = ["BufferChunk"]

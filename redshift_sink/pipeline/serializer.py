"""
Record to delimited-row serialization.

Turns one decoded record into a single line of text whose fields follow the
target table's column order, escaped for Redshift's `COPY ... ESCAPE` option:

    schema  = ["ts", "user", "payload"]
    record  = {"ts": "2020-01-01", "user": "a\\tb", "payload": {"k": 1}}
    row     = '2020-01-01\\ta\\\\\\tb\\t{"k":1}\\n'

Nested objects and arrays are re-encoded as compact JSON so structured data
survives in one cell. Missing or empty values become empty fields. A record
with no value for any column yields the empty string and is dropped.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Union

from redshift_sink.domain.models import RecordOutcome, TableSchema
from redshift_sink.errors import RecordDecodeError, RecordError, RecordSerializeError
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)

ESCAPE_CHAR = "\\"


def escape_value(value: str, delimiter: str = "\t") -> str:
    """
    Escape backslash, tab, newline and the delimiter with a leading backslash.

    The backslash itself is escaped first so later replacements are not doubled.
    """
    value = value.replace(ESCAPE_CHAR, ESCAPE_CHAR * 2)
    value = value.replace("\t", ESCAPE_CHAR + "\t").replace("\n", ESCAPE_CHAR + "\n")
    if delimiter not in ("\t", "\n", ESCAPE_CHAR, ""):
        value = value.replace(delimiter, ESCAPE_CHAR + delimiter)
    return value


def unescape_value(value: str) -> str:
    """Inverse of `escape_value`: drop each escaping backslash."""
    out: List[str] = []
    chars = iter(value)
    for ch in chars:
        if ch == ESCAPE_CHAR:
            out.append(next(chars, ""))
        else:
            out.append(ch)
    return "".join(out)


def split_row(row: str, delimiter: str = "\t") -> List[str]:
    """
    Split a serialized row on unescaped delimiters and unescape each field.

    The row terminator is expected and removed first.
    """
    if row.endswith("\n"):
        row = row[:-1]
    fields: List[str] = []
    current: List[str] = []
    chars = iter(row)
    for ch in chars:
        if ch == ESCAPE_CHAR:
            current.append(next(chars, ""))
        elif ch == delimiter:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def stringify(value: Any) -> str:
    """Render a scalar the way Redshift expects it in a text column."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


class RecordSerializer:
    """
    Decode raw chunk entries and serialize them against a table schema.

    `file_type` selects how a raw entry is decoded: `json` expects the record
    mapping itself (or its JSON text), `msgpack` expects an envelope whose
    `record_log_tag` field holds the record mapping.
    """

    def __init__(
        self,
        delimiter: str = "\t",
        file_type: str = "json",
        record_log_tag: str = "log",
        log_suffix: str = "",
    ) -> None:
        self.delimiter = delimiter
        self.file_type = file_type
        self.record_log_tag = record_log_tag
        self._log = with_suffix(log, log_suffix)

    def decode(self, raw: Any) -> Optional[Dict[str, Any]]:
        """
        Return the record mapping carried by `raw`, or None when there is none.

        Raises
        ------
        RecordDecodeError
            If `raw` (or its envelope field) is not a mapping or valid JSON object.
        """
        if self.file_type == "msgpack":
            if not isinstance(raw, Mapping):
                raise RecordDecodeError("msgpack envelope is not a map", raw=raw)
            payload = raw.get(self.record_log_tag)
            if payload is None:
                return None
        else:
            payload = raw

        if isinstance(payload, (bytes, bytearray, str)):
            if not payload:
                return None
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                raise RecordDecodeError(f"failed to parse json: {exc}", raw=raw) from exc

        if not isinstance(payload, Mapping):
            raise RecordDecodeError(
                f"record is not an object: {type(payload).__name__}", raw=raw
            )
        return {str(k): v for k, v in payload.items()}

    def serialize(self, schema: Union[TableSchema, Sequence[str]], record: Mapping) -> str:
        """
        Build one newline-terminated row for `record` in schema column order.

        Returns the empty string when no column has a value.

        Raises
        ------
        RecordSerializeError
            If a value cannot be rendered as text.
        """
        columns = schema.columns if isinstance(schema, TableSchema) else schema
        try:
            values = [stringify(record.get(column)) for column in columns]
        except (TypeError, ValueError) as exc:
            raise RecordSerializeError(f"failed to serialize record: {exc}", raw=record) from exc

        if not any(values):
            self._log.warning(
                f"no data match for table columns on redshift. data={dict(record)} "
                f"table_columns={list(columns)}"
            )
            return ""

        fields = [escape_value(v, self.delimiter) if v else "" for v in values]
        return self.delimiter.join(fields) + "\n"

    def convert(self, schema: Union[TableSchema, Sequence[str]], raw: Any) -> RecordOutcome:
        """Decode and serialize one raw entry without raising for bad records."""
        try:
            record = self.decode(raw)
            if record is None:
                return RecordOutcome.skipped(raw)
            row = self.serialize(schema, record)
        except RecordError as exc:
            return RecordOutcome.failed(exc, raw)
        if not row:
            return RecordOutcome.skipped(raw)
        return RecordOutcome.of_row(row)


__all__ = [
    "RecordSerializer",
    "escape_value",
    "unescape_value",
    "split_row",
    "stringify",
]

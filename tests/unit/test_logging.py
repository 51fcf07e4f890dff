from __future__ import annotations

import json
import logging

from redshift_sink.utils.logging import (
    SuffixLoggerAdapter,
    _json_formatter,
    get_logger,
    with_suffix,
)

EXPECTED_ROWS = 10


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.s3_uri = "s3://log-staging/k.gz"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["s3_uri"] == "s3://log-staging/k.gz"


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"table": "events"}

    payload = json.loads(_json_formatter(record))

    assert payload["table"] == "events"


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.error = ValueError("bad")

    payload = json.loads(_json_formatter(record))

    assert payload["error"] == "bad"


def test_suffix_adapter_appends_suffix(caplog) -> None:
    log = get_logger("redshift_sink.test", suffix="[events]")

    with caplog.at_level(logging.INFO, logger="redshift_sink.test"):
        log.info("completed copying to redshift")

    assert isinstance(log, SuffixLoggerAdapter)
    assert caplog.records[-1].getMessage() == "completed copying to redshift [events]"


def test_empty_suffix_returns_plain_logger(caplog) -> None:
    log = get_logger("redshift_sink.test")

    with caplog.at_level(logging.INFO, logger="redshift_sink.test"):
        log.info("plain")

    assert isinstance(log, logging.Logger)
    assert caplog.records[-1].getMessage() == "plain"


def test_with_suffix_replaces_existing_suffix() -> None:
    first = get_logger("redshift_sink.test", suffix="[a]")

    second = with_suffix(first, "[b]")

    assert second.logger is first.logger
    assert second.process("msg", {})[0] == "msg [b]"

"""
Structured logging utilities for the Redshift sink.

Centralizes logging configuration so the CLI and the pipeline components emit
consistent records. Uses standard library logging with a human-readable
formatter by default and an optional JSON formatter for log shippers.

Pipeline components log through `SuffixLoggerAdapter`, which appends the
configured diagnostic tag (`log_suffix`) to every message so several sink
instances writing to one log stream can be told apart.

Usage:
    from redshift_sink.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__, suffix="[events]")
    log.info("completed copying to redshift", extra={"s3_uri": uri})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "extra"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    for key, value in vars(record).items():
        if key not in _STANDARD_ATTRS and not key.startswith("_"):
            payload[key] = value
    if hasattr(record, "extra") and isinstance(record.extra, dict):
        payload.update(record.extra)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class SuffixLoggerAdapter(logging.LoggerAdapter):
    """
    Append a fixed diagnostic tag to every message.

    An empty suffix leaves messages untouched.
    """

    def __init__(self, logger: logging.Logger, suffix: str = "") -> None:
        super().__init__(logger, {})
        self.suffix = suffix

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.suffix:
            msg = f"{msg} {self.suffix}"
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Whether to emit logs as JSON. If False, uses a concise human formatter.
    force : bool
        Whether to override existing logging configuration (recommended in CLI apps).
    """
    formatter_name = "json" if json_logs else "console"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": level,
                }
            },
            "loggers": {
                # boto's debug output includes request signing details
                "botocore": {"level": "WARNING"},
                "boto3": {"level": "WARNING"},
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(
    name: Optional[str] = None, suffix: str = ""
) -> Union[logging.Logger, SuffixLoggerAdapter]:
    """
    Get a logger with the given name. If name is None, returns the root logger.

    When `suffix` is non-empty the logger is wrapped in a `SuffixLoggerAdapter`.
    """
    logger = logging.getLogger(name)
    if suffix:
        return SuffixLoggerAdapter(logger, suffix)
    return logger


def with_suffix(
    logger: Union[logging.Logger, SuffixLoggerAdapter], suffix: str
) -> SuffixLoggerAdapter:
    """Wrap an existing logger so its messages carry `suffix`."""
    if isinstance(logger, SuffixLoggerAdapter):
        logger = logger.logger
    return SuffixLoggerAdapter(logger, suffix)


__all__ = [
    "configure_logging",
    "get_logger",
    "with_suffix",
    "JsonFormatter",
    "SuffixLoggerAdapter",
]

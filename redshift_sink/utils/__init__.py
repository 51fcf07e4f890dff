"""
Utilities package for the Redshift sink.

Exports shared logging helpers. Keep this package free of pipeline logic.
"""

from redshift_sink.utils.logging import (
    JsonFormatter,
    SuffixLoggerAdapter,
    configure_logging,
    get_logger,
    with_suffix,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "with_suffix",
    "JsonFormatter",
    "SuffixLoggerAdapter",
]

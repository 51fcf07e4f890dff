"""
Redshift connection factory.

Every catalog query and every COPY opens its own connection and closes it when
done; nothing is pooled. Establishing the connection is retried with tenacity
for transient network failures. Statement execution is never retried here:
retrying a failed chunk is the buffering engine's decision.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from redshift_sink.config import Settings, get_settings


def build_conninfo(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Compose psycopg connection keyword arguments from settings.
    """
    settings = settings or get_settings()
    return {
        "host": settings.redshift_host,
        "port": settings.redshift_port,
        "dbname": settings.redshift_dbname,
        "user": settings.redshift_user,
        "password": settings.redshift_password,
        "connect_timeout": settings.redshift_connect_timeout,
    }


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(settings: Optional[Settings] = None) -> Connection:
    """
    Open a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Returns
    -------
    Connection
        A new psycopg connection instance. The caller owns and closes it.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(**build_conninfo(settings))


__all__ = [
    "build_conninfo",
    "get_sync_connection",
]

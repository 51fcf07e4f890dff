"""
Infrastructure package for the Redshift sink.

Centralizes connectivity to Redshift (psycopg) and S3 (boto3). Keep this layer
focused on I/O setup, decoupled from pipeline logic.
"""

from redshift_sink.infrastructure.db_factory import build_conninfo, get_sync_connection
from redshift_sink.infrastructure.s3_factory import get_s3_client

__all__ = [
    "build_conninfo",
    "get_sync_connection",
    "get_s3_client",
]

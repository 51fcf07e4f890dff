"""
S3 client factory.

The client is created once per output instance and shared by every upload; it
holds no per-upload state.
"""

from __future__ import annotations

from typing import Any, Optional

import boto3

from redshift_sink.config import Settings, get_settings


def get_s3_client(settings: Optional[Settings] = None) -> Any:
    """
    Create a boto3 S3 client from the staging credentials.

    A configured `s3_endpoint` is used as the endpoint URL; a bare host name is
    given an https scheme.
    """
    settings = settings or get_settings()
    kwargs = {
        "aws_access_key_id": settings.aws_key_id,
        "aws_secret_access_key": settings.aws_sec_key,
    }
    if settings.s3_endpoint:
        endpoint = settings.s3_endpoint
        if "://" not in endpoint:
            endpoint = f"https://{endpoint}"
        kwargs["endpoint_url"] = endpoint
    return boto3.client("s3", **kwargs)


__all__ = ["get_s3_client"]

"""
Staging file upload to S3.

Object keys have the form `<base_path><timestamp_key>_<NN>.gz`, where the
timestamp key is `timestamp_key_format` rendered at upload time and `NN` is a
two-digit counter starting at `00`. The counter is bumped until a key that does
not exist yet is found.

Probing then uploading is a check-then-act sequence: sequential flushes in one
process never collide, concurrent flushes sharing a prefix can.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from redshift_sink.errors import UploadError
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class StagingUploader:
    """
    Allocate a free object key and upload a staging file there.

    Failures are not retried here; they surface as `UploadError` so the whole
    chunk is retried upstream.
    """

    ACL = "bucket-owner-full-control"

    def __init__(
        self,
        client: Any,
        bucket: str,
        timestamp_key_format: str = "year=%Y/month=%m/day=%d/hour=%H/%Y%m%d-%H%M",
        utc: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        log_suffix: str = "",
    ) -> None:
        self._client = client
        self.bucket = bucket
        self.timestamp_key_format = timestamp_key_format
        self.utc = utc
        self._clock = clock or datetime.now
        self._log = with_suffix(log, log_suffix)

    @staticmethod
    def build_key(base_path: str, timestamp_key: str, index: int) -> str:
        return f"{base_path}{timestamp_key}_{index:02d}.gz"

    def timestamp_key(self) -> str:
        now = self._clock()
        if self.utc:
            now = now.astimezone(timezone.utc)
        return now.strftime(self.timestamp_key_format)

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_CODES:
                return False
            raise UploadError(f"failed to probe s3://{self.bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise UploadError(f"failed to probe s3://{self.bucket}/{key}: {exc}") from exc
        return True

    def allocate_key(self, base_path: str) -> str:
        timestamp_key = self.timestamp_key()
        index = 0
        key = self.build_key(base_path, timestamp_key, index)
        while self.exists(key):
            index += 1
            key = self.build_key(base_path, timestamp_key, index)
        return key

    def upload(self, local_file: Path, base_path: str) -> str:
        """
        Upload `local_file` under a fresh key below `base_path` and return the key.

        Raises
        ------
        UploadError
            If probing or uploading fails.
        """
        key = self.allocate_key(base_path)
        try:
            self._client.upload_file(
                str(local_file),
                self.bucket,
                key,
                ExtraArgs={"ACL": self.ACL},
            )
        except (S3UploadFailedError, ClientError, BotoCoreError) as exc:
            raise UploadError(f"failed to upload s3://{self.bucket}/{key}: {exc}") from exc
        self._log.debug(f"uploaded gz file. s3_uri=s3://{self.bucket}/{key}")
        return key


__all__ = ["StagingUploader"]

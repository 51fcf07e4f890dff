from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from redshift_sink.errors import UploadError
from redshift_sink.pipeline.uploader import StagingUploader

KEY_FORMAT = "year=%Y/month=%m/day=%d/hour=%H/%Y%m%d-%H%M"
FIRST_KEY = "logs/year=2020/month=01/day=01/hour=10/20200101-1030_00.gz"
SECOND_KEY = "logs/year=2020/month=01/day=01/hour=10/20200101-1030_01.gz"


@pytest.fixture
def staged_file(tmp_path: Path) -> Path:
    path = tmp_path / "s3-chunk.gz"
    path.write_bytes(b"gzip-bytes")
    return path


@pytest.fixture
def tokyo_time(monkeypatch):
    """Pin the process time zone to UTC+9 for the duration of a test."""
    monkeypatch.setenv("TZ", "JST-9")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def _uploader(client, clock, **kwargs) -> StagingUploader:
    return StagingUploader(
        client=client, bucket="log-staging", timestamp_key_format=KEY_FORMAT, clock=clock, **kwargs
    )


def test_build_key_pads_counter_to_two_digits() -> None:
    assert StagingUploader.build_key("p/", "ts", 0) == "p/ts_00.gz"
    assert StagingUploader.build_key("p/", "ts", 7) == "p/ts_07.gz"
    assert StagingUploader.build_key("", "ts", 12) == "ts_12.gz"


def test_upload_uses_first_free_key_with_owner_acl(s3_client, fixed_clock, staged_file) -> None:
    uploader = _uploader(s3_client, fixed_clock)

    key = uploader.upload(staged_file, "logs/")

    assert key == FIRST_KEY
    assert s3_client.objects[key] == b"gzip-bytes"
    assert s3_client.uploads[0]["extra_args"] == {"ACL": "bucket-owner-full-control"}
    assert s3_client.uploads[0]["bucket"] == "log-staging"


def test_sequential_uploads_in_same_bucket_get_distinct_keys(s3_client, fixed_clock, staged_file) -> None:
    uploader = _uploader(s3_client, fixed_clock)

    first = uploader.upload(staged_file, "logs/")
    second = uploader.upload(staged_file, "logs/")

    assert first == FIRST_KEY
    assert second == SECOND_KEY
    assert s3_client.head_calls == [FIRST_KEY, FIRST_KEY, SECOND_KEY]


def test_counter_skips_every_existing_key(s3_client_factory, fixed_clock, staged_file) -> None:
    existing = [StagingUploader.build_key("logs/", "20200101-1030", i) for i in range(3)]
    client = s3_client_factory(existing=existing)
    uploader = _uploader(client, fixed_clock)
    uploader.timestamp_key_format = "%Y%m%d-%H%M"

    assert uploader.upload(staged_file, "logs/") == "logs/20200101-1030_03.gz"


def test_utc_flag_converts_clock_to_utc(s3_client, staged_file) -> None:
    aware = datetime(2020, 1, 1, 23, 0, tzinfo=timezone.utc)
    uploader = _uploader(s3_client, lambda: aware, utc=True)
    uploader.timestamp_key_format = "%Y%m%d-%H"

    assert uploader.timestamp_key() == "20200101-23"


def test_probe_error_other_than_missing_is_upload_error(s3_client, fixed_clock, staged_file) -> None:
    def forbidden(Bucket, Key):
        raise ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadObject")

    s3_client.head_object = forbidden
    uploader = _uploader(s3_client, fixed_clock)

    with pytest.raises(UploadError):
        uploader.upload(staged_file, "logs/")
    assert s3_client.uploads == []


def test_upload_failure_is_upload_error_without_retry(s3_client_factory, fixed_clock, staged_file) -> None:
    client = s3_client_factory(upload_error=S3UploadFailedError("Failed to upload"))
    uploader = _uploader(client, fixed_clock)

    with pytest.raises(UploadError) as excinfo:
        uploader.upload(staged_file, "logs/")

    assert isinstance(excinfo.value.__cause__, S3UploadFailedError)
    assert client.head_calls == [FIRST_KEY]


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="time.tzset is POSIX only")
def test_utc_flag_converts_naive_local_clock(s3_client, tokyo_time) -> None:
    def naive_local() -> datetime:
        return datetime(2020, 1, 1, 10, 30)

    local = _uploader(s3_client, naive_local)
    utc = _uploader(s3_client, naive_local, utc=True)
    local.timestamp_key_format = utc.timestamp_key_format = "%Y%m%d-%H"

    assert local.timestamp_key() == "20200101-10"
    assert utc.timestamp_key() == "20200101-01"

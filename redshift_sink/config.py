"""
Configuration settings for the Redshift sink.

Uses Pydantic Settings to load environment variables for the S3 staging bucket,
the Redshift cluster, the record format and logging. Derived values (delimiter,
normalised key prefix, schema-qualified table name) are resolved once at
construction so the pipeline never re-derives them per chunk.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from redshift_sink.domain.models import TableRef
from redshift_sink.errors import ConfigError

STRUCTURED_FILE_TYPES = ("json", "msgpack")
FLAT_FILE_TYPES = ("tsv", "csv")


def determine_delimiter(file_type: str) -> str:
    """
    Infer the field delimiter from the file type.

    Raises
    ------
    ConfigError
        If the file type is not one of json, msgpack, tsv or csv.
    """
    if file_type in ("json", "msgpack", "tsv"):
        return "\t"
    if file_type == "csv":
        return ","
    raise ConfigError(f"Invalid file_type:{file_type}.")


def normalize_key_prefix(path: str) -> str:
    """Append a trailing slash and drop a leading one: '/logs' -> 'logs/'."""
    if not path.endswith("/"):
        path = f"{path}/"
    if path.startswith("/"):
        path = path[1:]
    return path


class Settings(BaseSettings):
    # Record handling
    record_log_tag: str = Field("log", alias="RECORD_LOG_TAG")
    time_key: str = Field("time", alias="TIME_KEY")
    time_format: str = Field("%Y-%m-%d %H:%M:%S", alias="TIME_FORMAT")

    # S3 staging
    aws_key_id: str = Field(..., alias="AWS_KEY_ID")
    aws_sec_key: str = Field(..., alias="AWS_SEC_KEY")
    s3_bucket: str = Field(..., alias="S3_BUCKET")
    s3_endpoint: Optional[str] = Field(None, alias="S3_ENDPOINT")
    path: str = Field("", alias="S3_PATH")
    timestamp_key_format: str = Field(
        "year=%Y/month=%m/day=%d/hour=%H/%Y%m%d-%H%M", alias="TIMESTAMP_KEY_FORMAT"
    )
    utc: bool = Field(False, alias="UTC")

    # Redshift
    redshift_host: str = Field(..., alias="REDSHIFT_HOST")
    redshift_port: int = Field(5439, alias="REDSHIFT_PORT")
    redshift_dbname: str = Field(..., alias="REDSHIFT_DBNAME")
    redshift_user: str = Field(..., alias="REDSHIFT_USER")
    redshift_password: str = Field(..., alias="REDSHIFT_PASSWORD")
    redshift_tablename: str = Field(..., alias="REDSHIFT_TABLENAME")
    redshift_schemaname: Optional[str] = Field(None, alias="REDSHIFT_SCHEMANAME")
    redshift_copy_base_options: str = Field("TRUNCATECOLUMNS", alias="REDSHIFT_COPY_BASE_OPTIONS")
    redshift_copy_options: Optional[str] = Field(None, alias="REDSHIFT_COPY_OPTIONS")
    redshift_exclude_column: Optional[str] = Field(None, alias="REDSHIFT_EXCLUDE_COLUMN")
    redshift_date_format: str = Field("YYYY-MM-DD", alias="REDSHIFT_DATE_FORMAT")
    redshift_time_format: str = Field("YYYY-MM-DD HH:MI:SS", alias="REDSHIFT_TIME_FORMAT")
    redshift_connect_timeout: int = Field(10, alias="REDSHIFT_CONNECT_TIMEOUT")

    # File format
    file_type: str = Field("json", alias="FILE_TYPE")
    delimiter: Optional[str] = Field(None, alias="DELIMITER")

    # Diagnostics
    log_suffix: str = Field("", alias="LOG_SUFFIX")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _resolve_derived(self) -> "Settings":
        # ConfigError is not a ValueError, so pydantic lets it propagate as-is.
        inferred = determine_delimiter(self.file_type)
        if not self.delimiter:
            self.delimiter = inferred
        self.path = normalize_key_prefix(self.path)
        return self

    @property
    def structured(self) -> bool:
        """True for schema-aware file types (json, msgpack)."""
        return self.file_type in STRUCTURED_FILE_TYPES

    @property
    def table_ref(self) -> TableRef:
        return TableRef(table_name=self.redshift_tablename, schema_name=self.redshift_schemaname)

    @property
    def table_name_with_schema(self) -> str:
        return self.table_ref.identifier


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = [
    "Settings",
    "get_settings",
    "determine_delimiter",
    "normalize_key_prefix",
    "STRUCTURED_FILE_TYPES",
    "FLAT_FILE_TYPES",
]

"""
Redshift COPY of a staged object.

The COPY statement is rendered from a template built once per loader:

    copy <table> from '<s3-uri>'
    CREDENTIALS 'aws_access_key_id=<id>;aws_secret_access_key=<secret>'
    delimiter '<delim>' DATEFORMAT AS '<date>' TIMEFORMAT AS '<time>'
    GZIP ESCAPE <base options> <extra options>;

Outcome classification:

- success                                       -> LoadResult.LOADED
- "Load into table '<name>' failed." (bad data) -> LoadResult.SOFT_SKIP, logged
- anything else                                 -> LoadFatalError raised

Bad data fails the same way on every retry, so it is reported as handled rather
than propagated. Redshift reports it with the generic internal-error SQLSTATE,
so the classification has to match on the message text.
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Type

import psycopg
from psycopg import Connection

from redshift_sink.config import Settings
from redshift_sink.domain.models import LoadResult
from redshift_sink.errors import LoadDataError, LoadError, LoadFatalError
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)

LOAD_DATA_ERROR_PATTERN = re.compile(r"^(?:ERROR:\s+)?Load into table '[^']+' failed\.")

_MASK = "****"


def is_load_data_error(message: str) -> bool:
    """True when `message` is Redshift's rejected-data error for a COPY."""
    return bool(LOAD_DATA_ERROR_PATTERN.match(message or ""))


def classify_load_error(exc: BaseException) -> Type[LoadError]:
    """
    Map a COPY failure to `LoadDataError` or `LoadFatalError`.

    Checks the server's primary message when the driver exposes one, then the
    full exception text.
    """
    candidates = []
    diag = getattr(exc, "diag", None)
    primary = getattr(diag, "message_primary", None) if diag is not None else None
    if primary:
        candidates.append(primary)
    candidates.append(str(exc))
    if any(is_load_data_error(message) for message in candidates):
        return LoadDataError
    return LoadFatalError


def _literal(value: str) -> str:
    return value.replace("'", "''")


def _template_text(value: str) -> str:
    return value.replace("{", "{{").replace("}", "}}")


def build_copy_template(
    table_identifier: str,
    delimiter: str,
    date_format: str = "YYYY-MM-DD",
    time_format: str = "YYYY-MM-DD HH:MI:SS",
    base_options: str = "TRUNCATECOLUMNS",
    extra_options: Optional[str] = None,
) -> str:
    """
    Build the COPY template with `{s3_uri}`, `{key_id}` and `{secret}` placeholders.
    """
    options = " ".join(o for o in (base_options, extra_options) if o)
    static = (
        f" delimiter '{_literal(delimiter)}'"
        f" DATEFORMAT AS '{_literal(date_format)}'"
        f" TIMEFORMAT AS '{_literal(time_format)}'"
        f" GZIP ESCAPE {options};"
    )
    return (
        f"copy {_template_text(table_identifier)} from '{{s3_uri}}'"
        " CREDENTIALS 'aws_access_key_id={key_id};aws_secret_access_key={secret}'"
        + _template_text(static)
    )


class WarehouseLoader:
    """
    Run COPY for one staged object per call on a fresh connection.
    """

    def __init__(
        self,
        connect: Callable[[], Connection],
        bucket: str,
        aws_key_id: str,
        aws_sec_key: str,
        copy_template: str,
        log_suffix: str = "",
    ) -> None:
        self._connect = connect
        self.bucket = bucket
        self._aws_key_id = aws_key_id
        self._aws_sec_key = aws_sec_key
        self.copy_template = copy_template
        self._log = with_suffix(log, log_suffix)

    @classmethod
    def from_settings(cls, settings: Settings, connect: Callable[[], Connection]) -> "WarehouseLoader":
        template = build_copy_template(
            table_identifier=settings.table_name_with_schema,
            delimiter=settings.delimiter or "\t",
            date_format=settings.redshift_date_format,
            time_format=settings.redshift_time_format,
            base_options=settings.redshift_copy_base_options,
            extra_options=settings.redshift_copy_options,
        )
        return cls(
            connect=connect,
            bucket=settings.s3_bucket,
            aws_key_id=settings.aws_key_id,
            aws_sec_key=settings.aws_sec_key,
            copy_template=template,
            log_suffix=settings.log_suffix,
        )

    def s3_uri(self, object_key: str) -> str:
        return f"s3://{self.bucket}/{object_key}"

    def render(self, s3_uri: str) -> str:
        return self.copy_template.format(
            s3_uri=_literal(s3_uri),
            key_id=_literal(self._aws_key_id),
            secret=_literal(self._aws_sec_key),
        )

    def masked_sql(self, s3_uri: str) -> str:
        """The COPY statement with credentials replaced, safe to log."""
        return self.copy_template.format(s3_uri=_literal(s3_uri), key_id=_MASK, secret=_MASK)

    def load(self, object_key: str) -> LoadResult:
        """
        COPY the object at `object_key` into the target table.

        Raises
        ------
        LoadFatalError
            For any failure other than rejected data.
        """
        s3_uri = self.s3_uri(object_key)
        sql = self.render(s3_uri)
        self._log.debug(f"start copying. s3_uri={s3_uri}")
        conn: Optional[Connection] = None
        try:
            conn = self._connect()
            with conn.cursor() as cur:
                cur.execute(sql)
            conn.commit()
            self._log.info(f"completed copying to redshift. s3_uri={s3_uri}")
            return LoadResult.LOADED
        except psycopg.Error as exc:
            self._log.error(
                f"failed to copy data into redshift. s3_uri={s3_uri} error={exc}",
                extra={"error": str(exc), "sql": self.masked_sql(s3_uri)},
            )
            if classify_load_error(exc) is LoadDataError:
                return LoadResult.SOFT_SKIP
            raise LoadFatalError(
                f"failed to copy data into redshift. s3_uri={s3_uri}: {exc}", s3_uri=s3_uri
            ) from exc
        finally:
            if conn is not None:
                conn.close()


__all__ = [
    "WarehouseLoader",
    "build_copy_template",
    "classify_load_error",
    "is_load_data_error",
    "LOAD_DATA_ERROR_PATTERN",
]

"""
Target table column resolution.

Queries `INFORMATION_SCHEMA.COLUMNS` for the ordered column names of the target
table and caches the result per table identifier for the lifetime of the
resolver. Schema drift after the cache is filled is not detected; call
`invalidate` or restart the process.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional, Tuple

import psycopg
from psycopg import Connection

from redshift_sink.domain.models import TableRef, TableSchema
from redshift_sink.errors import EmptySchemaError, SchemaFetchError
from redshift_sink.utils.logging import get_logger, with_suffix

log = get_logger(__name__)

_COLUMNS_SQL = (
    "select column_name from INFORMATION_SCHEMA.COLUMNS "
    "where table_name = %s order by ordinal_position;"
)
_COLUMNS_WITH_SCHEMA_SQL = (
    "select column_name from INFORMATION_SCHEMA.COLUMNS "
    "where table_schema = %s and table_name = %s order by ordinal_position;"
)


def build_columns_query(table: TableRef) -> Tuple[str, Tuple[str, ...]]:
    """Return the catalog query and its parameters for `table`."""
    if table.schema_name:
        return _COLUMNS_WITH_SCHEMA_SQL, (table.schema_name, table.table_name)
    return _COLUMNS_SQL, (table.table_name,)


class SchemaResolver:
    """
    Resolve and cache the column list of a Redshift table.

    Concurrent callers may both query the catalog on a cold cache; the last one
    to finish wins. The schema is expected to be stable, so both see the same
    columns either way. Empty results are not cached so a table created after
    startup is picked up on the next chunk.
    """

    def __init__(
        self,
        connect: Callable[[], Connection],
        exclude_column: Optional[str] = None,
        log_suffix: str = "",
    ) -> None:
        self._connect = connect
        self._exclude_column = exclude_column
        self._cache: Dict[str, TableSchema] = {}
        self._lock = threading.Lock()
        self._log = with_suffix(log, log_suffix)

    def resolve(self, table: TableRef) -> TableSchema:
        """
        Return the ordered columns of `table`, minus the excluded column.

        Raises
        ------
        SchemaFetchError
            If connecting or running the catalog query fails.
        """
        identifier = table.identifier
        with self._lock:
            cached = self._cache.get(identifier)
        if cached is not None:
            return cached

        columns = [c for c in self._fetch_columns(table) if c != self._exclude_column]
        schema = TableSchema(identifier=identifier, columns=tuple(columns))
        if schema.is_empty:
            return schema

        with self._lock:
            self._cache[identifier] = schema
        self._log.debug(
            f"resolved table columns. table_name={identifier}",
            extra={"table": identifier, "columns": len(schema)},
        )
        return schema

    def require(self, table: TableRef) -> TableSchema:
        """
        Like `resolve`, but raise `EmptySchemaError` when no column is visible.
        """
        schema = self.resolve(table)
        if schema.is_empty:
            raise EmptySchemaError(f"no table on redshift. table_name={schema.identifier}")
        return schema

    def invalidate(self, table: Optional[TableRef] = None) -> None:
        """Drop the cached schema for `table`, or every cached schema."""
        with self._lock:
            if table is None:
                self._cache.clear()
            else:
                self._cache.pop(table.identifier, None)

    def _fetch_columns(self, table: TableRef) -> List[str]:
        sql, params = build_columns_query(table)
        try:
            conn = self._connect()
        except psycopg.Error as exc:
            raise SchemaFetchError(
                f"failed to fetch the redshift table definition. table_name={table.identifier}"
            ) from exc
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [row[0] for row in cur.fetchall()]
        except psycopg.Error as exc:
            raise SchemaFetchError(
                f"failed to fetch the redshift table definition. table_name={table.identifier}"
            ) from exc
        finally:
            conn.close()


__all__ = ["SchemaResolver", "build_columns_query"]

"""
Domain models for the Redshift sink.

Defines the target table reference, the resolved column list, and the outcome
values passed between pipeline stages. Outcomes are plain values rather than
exceptions so that "skip this record" and "nothing to load" never look like
failures to the caller.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import BaseModel, Field


class TableRef(BaseModel):
    """
    The Redshift table rows are loaded into.
    """

    table_name: str = Field(..., description="Target table name.")
    schema_name: Optional[str] = Field(None, description="Optional schema qualifier.")

    model_config = {
        "frozen": True,
    }

    @property
    def identifier(self) -> str:
        """`schema.table` when a schema is configured, else the bare table name."""
        if self.schema_name:
            return f"{self.schema_name}.{self.table_name}"
        return self.table_name


class TableSchema(BaseModel):
    """
    Ordered column names of the live table, minus the excluded column if any.
    """

    identifier: str = Field(..., description="Identifier the columns were resolved for.")
    columns: Tuple[str, ...] = Field(default_factory=tuple, description="Columns by ordinal position.")

    model_config = {
        "frozen": True,
    }

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def is_empty(self) -> bool:
        return not self.columns


class RecordStatus(str, enum.Enum):
    ROW = "row"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RecordOutcome:
    """
    Result of turning one raw chunk entry into a row.

    `row` is set only for ROW. `error` is set only for FAILED.
    """

    status: RecordStatus
    row: str = ""
    error: Optional[Exception] = None
    raw: Any = None

    @classmethod
    def of_row(cls, row: str) -> "RecordOutcome":
        return cls(status=RecordStatus.ROW, row=row)

    @classmethod
    def skipped(cls, raw: Any = None) -> "RecordOutcome":
        return cls(status=RecordStatus.SKIPPED, raw=raw)

    @classmethod
    def failed(cls, error: Exception, raw: Any = None) -> "RecordOutcome":
        return cls(status=RecordStatus.FAILED, error=error, raw=raw)


class ChunkStatus(str, enum.Enum):
    STAGED = "staged"
    EMPTY = "empty"


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of writing a chunk into a local gzip file."""

    status: ChunkStatus
    path: Optional[Path] = None
    rows: int = 0
    skipped: int = 0
    failed: int = 0
    reason: str = ""

    @property
    def staged(self) -> bool:
        return self.status is ChunkStatus.STAGED


class LoadResult(str, enum.Enum):
    LOADED = "loaded"
    SOFT_SKIP = "soft_skip"


class WriteOutcome(str, enum.Enum):
    """What happened to a chunk handed to `RedshiftOutput.write`."""

    LOADED = "loaded"
    EMPTY = "empty"
    SKIPPED = "skipped"


__all__ = [
    "TableRef",
    "TableSchema",
    "RecordStatus",
    "RecordOutcome",
    "ChunkStatus",
    "ChunkOutcome",
    "LoadResult",
    "WriteOutcome",
]

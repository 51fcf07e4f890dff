from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from redshift_sink.config import get_settings
from redshift_sink.domain.chunk import BufferChunk
from redshift_sink.errors import EmptySchemaError
from redshift_sink.output import RedshiftOutput
from redshift_sink.utils.logging import configure_logging, get_logger

app = typer.Typer(help="Load JSON log records into Redshift through S3 staging.")
log = get_logger(__name__)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    output = RedshiftOutput(settings)
    typer.echo(
        f"redshift={settings.redshift_user}@{settings.redshift_host}:{settings.redshift_port}/"
        f"{settings.redshift_dbname} table={settings.table_name_with_schema} | "
        f"s3=s3://{settings.s3_bucket}/{settings.path} | "
        f"file_type={settings.file_type} delimiter={settings.delimiter!r}"
    )
    typer.echo(f"copy: {output.loader.masked_sql('<s3-uri>')}")


@app.command()
def schema() -> None:
    """
    Resolve and print the target table's columns.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    output = RedshiftOutput(settings)
    try:
        resolved = output.schema_resolver.require(settings.table_ref)
    except EmptySchemaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    table = Table(title=f"{resolved.identifier}", box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right")
    table.add_column("column")
    for position, column in enumerate(resolved.columns, start=1):
        table.add_row(str(position), column)
    Console().print(table)


@app.command()
def load(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines file to load."),
    tag: str = typer.Option("cli", "--tag", "-t", help="Tag passed to format()."),
) -> None:
    """
    Format every line of PATH as one record and write them as a single chunk.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    output = RedshiftOutput(settings)
    output.start()

    chunk = BufferChunk()
    now = time.time()
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except ValueError as exc:
                log.warning(f"skipping unparsable line {lineno}: {exc}")
                continue
            if not isinstance(record, dict):
                log.warning(f"skipping non-object line {lineno}")
                continue
            chunk.append(output.format(tag, now, record))

    outcome = output.write(chunk)
    typer.echo(f"{path}: {outcome.value}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()

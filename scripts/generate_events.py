"""
Synthetic event generator for the Redshift sink.

Writes deterministic pseudo-random log events as JSON lines, suitable for
`python -m redshift_sink.main load <file>`. A share of events carry tabs,
newlines and backslashes in string fields and nested objects in `payload`, so
a load exercises escaping and JSON re-encoding.
"""

from __future__ import annotations

import json
import random
import sys
import tempfile
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path

import typer

app = typer.Typer(help="Generate synthetic log events as JSON lines.")

_ACTIONS = ["view", "click", "purchase", "impression"]
_AWKWARD = ["tab\there", "line\nbreak", "back\\slash", "plain"]


def _generate_events(jsonl_path: Path, events: int, seed: int) -> int:
    rng = random.Random(seed)
    start = datetime(2020, 1, 1, tzinfo=UTC)

    with jsonl_path.open("w", encoding="utf-8") as f:
        for i in range(events):
            ts = start + timedelta(seconds=i * rng.randint(1, 60))
            event = {
                "ts": ts.strftime("%Y-%m-%d %H:%M:%S"),
                "user": rng.choice(_AWKWARD) if i % 5 == 0 else f"user-{rng.randint(1, 1_000)}",
                "action": rng.choice(_ACTIONS),
                "payload": {
                    "session": rng.randint(1, 1_000_000),
                    "tags": rng.sample(_ACTIONS, k=2),
                },
            }
            f.write(json.dumps(event, ensure_ascii=False) + "\n")
    return events


@app.command()
def main(
    events: int = typer.Option(
        1_000,
        "--events",
        "-n",
        help="Number of events to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional output path (if omitted, a temp file will be used).",
    ),
) -> None:
    """
    Generate synthetic events into a JSON-lines file.
    """
    start = time.perf_counter()
    if output:
        jsonl_path = output
        jsonl_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="redshift_sink_events_"))
        jsonl_path = tmpdir / "events.jsonl"

    typer.echo(f"Generating {events:,} events -> {jsonl_path} (seed={seed})")
    _generate_events(jsonl_path, events=events, seed=seed)
    duration = time.perf_counter() - start
    typer.echo(f"Generation completed in {duration:.2f}s")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)

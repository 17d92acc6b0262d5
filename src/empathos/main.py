"""Command-line entrypoint — replay recorded readings through the pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TextIO

import structlog
from pydantic import ValidationError

from empathos.config import get_settings
from empathos.logger import setup_logging
from empathos.models import SourceReading, parse_reading
from empathos.pipeline import create_pipeline

logger = structlog.get_logger(__name__)


def iter_cycles(lines: TextIO) -> Iterator[tuple[list[SourceReading], str | None]]:
    """Yield ``(readings, context)`` per non-blank JSON line.

    A line is either a list of reading objects or an object with a
    ``readings`` list and an optional ``context`` string.  Invalid readings
    are skipped, the rest of the cycle is kept.  Lines that are not valid
    JSON, or do not hold a list of readings, are logged and skipped.
    """
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data: Any = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.warning("replay.malformed_line", line=lineno, error=str(exc))
            continue
        context = None
        if isinstance(data, dict):
            context = data.get("context")
            data = data.get("readings", [])
        if not isinstance(data, list) or not (context is None or isinstance(context, str)):
            logger.warning("replay.malformed_line", line=lineno, error="expected a list of readings")
            continue
        readings: list[SourceReading] = []
        for raw in data:
            try:
                readings.append(parse_reading(raw))
            except ValidationError as exc:
                logger.warning("replay.malformed_reading", line=lineno, errors=exc.error_count())
        yield readings, context


def replay(source: TextIO, out: TextIO) -> int:
    """Run one cycle per input line, writing one JSON result line each."""
    pipeline = create_pipeline()
    cycles = 0
    try:
        for readings, context in iter_cycles(source):
            result = pipeline.run_cycle(readings, context)
            record = {
                "model": result.model.model_dump(mode="json"),
                "state": result.state.model_dump(mode="json"),
                "actions": [a.model_dump(mode="json") for a in result.actions],
            }
            out.write(json.dumps(record) + "\n")
            cycles += 1
    finally:
        pipeline.close()
    return cycles


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="empathos",
        description="Multi-source behavioral-state fusion and orchestration.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── replay ────────────────────────────────────────────────
    replay_parser = sub.add_parser("replay", help="Replay JSON-lines readings through the pipeline.")
    replay_parser.add_argument("file", help="Input file, or '-' for stdin.")

    # ── thresholds ────────────────────────────────────────────
    sub.add_parser("thresholds", help="Print the configured rule thresholds.")

    args = parser.parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if args.command == "replay":
        if args.file == "-":
            count = replay(sys.stdin, sys.stdout)
        else:
            with Path(args.file).open(encoding="utf-8") as fh:
                count = replay(fh, sys.stdout)
        logger.info("replay.finished", cycles=count)
    elif args.command == "thresholds":
        thresholds = create_pipeline(settings).rules.get_thresholds()
        print(thresholds.model_dump_json(indent=2))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

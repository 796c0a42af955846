#!/usr/bin/env python3
"""Replay an archived time window and print trip statistics.

Usage
-----
::

    python scripts/analyze.py --base-dir ./out \
        --start 2019-10-06T00:01 --end 2019-10-07T00:01

Options::

    --base-dir DIR       Archive directory (default: ./out)
    --start TIME         ISO 8601 start, inclusive (naive times are UTC)
    --end TIME           ISO 8601 end, exclusive
    --tail               Keep watching the archive for new records
    --trips FILE         Write classified trips to FILE as JSON lines
    --verbose / -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from sharealyzer import (  # noqa: E402
    ClassifierThresholds,
    FleetCensus,
    JsonLinesTripSink,
    Pipeline,
    ReplayConfig,
    ReplaySource,
    TripClassifier,
    TripStatistics,
)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Reconstruct trips from an archived snapshot window.")
    parser.add_argument("--base-dir", help="Archive directory")
    parser.add_argument("--start", type=datetime.fromisoformat, help="Start time (inclusive)")
    parser.add_argument("--end", type=datetime.fromisoformat, help="End time (exclusive)")
    parser.add_argument("--tail", action="store_true", help="Keep watching for new records")
    parser.add_argument("--trips", help="Write classified trips to this JSON lines file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict = {}
    if args.base_dir:
        overrides["base_dir"] = Path(args.base_dir)
    if args.start:
        overrides["start"] = args.start
    if args.end:
        overrides["end"] = args.end
    if args.tail:
        overrides["tail"] = True
    config = ReplayConfig.from_env(**overrides)

    if config.start and config.end:
        print(f"Looking at a duration of {(config.end - config.start).total_seconds() / 3600:.2f} hours")

    census = FleetCensus()
    stats = TripStatistics()
    trip_sinks: list = [stats]
    if args.trips:
        trip_sinks.append(JsonLinesTripSink(Path(args.trips)))

    source = ReplaySource(config)
    pipeline = Pipeline(
        source,
        classifier=TripClassifier(ClassifierThresholds.from_env()),
        snapshot_sinks=[census],
        trip_sinks=trip_sinks,
    )
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, pipeline.cancel)

    result = await pipeline.run()

    print(census.format())
    print(stats.summary().format())
    print(f"Unfinished trips: {len(result.open_trips)}")
    if source.skipped_records:
        print(f"Skipped records: {source.skipped_records}")
    if result.failure is not None:
        print(f"Stopped: {result.failure}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

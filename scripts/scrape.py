#!/usr/bin/env python3
"""Poll the circ fleet, archive every snapshot and record trips.

Usage
-----
Set environment variables and run::

    export SHAREALYZER_PHONE_NUMBER="1701234567"
    python scripts/scrape.py --out ./out --trips trips.jsonl

The first run asks for the SMS code sent to the phone; tokens are kept in
``SHAREALYZER_TOKEN_PATH`` (default ``.tokens``) afterwards.

Options::

    --out DIR            Archive directory (default: ./out)
    --trips FILE         Append classified trips to FILE as JSON lines
    --interval SECS      Seconds between two fleet requests (default: 60)
    --zone ID            Only keep vehicles from this zone
    --no-archive         Do not persist snapshots
    --verbose / -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from sharealyzer import (  # noqa: E402
    ArchiveSink,
    ArchiveWriter,
    CircClient,
    CircConfig,
    ClassifierThresholds,
    FleetCensus,
    JsonLinesTripSink,
    LiveSource,
    Pipeline,
    PollingConfig,
    TripClassifier,
    TripStatistics,
)


async def ask_for_code() -> str:
    code = await asyncio.to_thread(input, "Please enter SMS code: ")
    print("Thank you")
    return code.strip()


async def main() -> int:
    parser = argparse.ArgumentParser(description="Scrape the circ fleet and reconstruct trips.")
    parser.add_argument("--out", default="out", help="Archive directory")
    parser.add_argument("--trips", help="Append classified trips to this JSON lines file")
    parser.add_argument("--interval", type=float, help="Seconds between two fleet requests")
    parser.add_argument("--zone", help="Only keep vehicles from this zone identifier")
    parser.add_argument("--no-archive", action="store_true", help="Do not persist snapshots")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    config_overrides = {"zone": args.zone} if args.zone else {}
    config = CircConfig.from_env(**config_overrides)
    polling = PollingConfig.from_env(**({"interval": args.interval} if args.interval is not None else {}))

    census = FleetCensus()
    stats = TripStatistics()
    snapshot_sinks: list = [census]
    if not args.no_archive:
        snapshot_sinks.append(ArchiveSink(ArchiveWriter(Path(args.out))))
    trip_sinks: list = [stats]
    if args.trips:
        trip_sinks.append(JsonLinesTripSink(Path(args.trips)))

    async with CircClient(config) as client:
        if not client.is_authenticated:
            await client.login(ask_for_code)

        pipeline = Pipeline(
            LiveSource(client, ask_for_code, polling),
            classifier=TripClassifier(ClassifierThresholds.from_env()),
            snapshot_sinks=snapshot_sinks,
            trip_sinks=trip_sinks,
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, pipeline.cancel)

        result = await pipeline.run()

    print(census.format())
    print(stats.summary().format())
    print(f"Open trips at shutdown: {len(result.open_trips)}")
    if result.failure is not None:
        print(f"Stopped: {result.failure}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

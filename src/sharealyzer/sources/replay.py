"""Archive replay source with optional tailing."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

from sharealyzer.archive import SnapshotDecoder, list_day_folders, list_records, read_snapshot
from sharealyzer.config import ReplayConfig
from sharealyzer.exceptions import RecordDecodeError
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.sources.base import wait_or_stop

_logger = logging.getLogger(__name__)

# Folder days are in the capture's local offset, at most one day behind UTC.
_FOLDER_MARGIN = timedelta(days=1)


class ReplaySource:
    """Walks the snapshot archive oldest record first.

    Records are ordered by the capture time in their file name across all
    day folders. Undecodable records are logged and skipped.

    With ``tail`` enabled the archive is scanned again every
    ``poll_interval`` seconds once the backlog is exhausted, picking up new
    records in existing and newly created day folders. A scan only delivers
    records up to the first one that is still being written (modified less
    than ``settle_seconds`` ago); that record and everything after it wait
    for the next scan, so nothing is lost or delivered out of order.
    """

    def __init__(
        self,
        config: ReplayConfig,
        *,
        decoder: SnapshotDecoder = read_snapshot,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._decoder = decoder
        self._wall_clock = wall_clock
        # Handled records and the day of the folder holding them.
        self._seen: dict[Path, date] = {}
        self._last_taken_at: datetime | None = None
        self._skipped = 0

    @property
    def name(self) -> str:
        return f"replay:{self._config.provider}"

    @property
    def config(self) -> ReplayConfig:
        return self._config

    @property
    def skipped_records(self) -> int:
        """Records that were skipped because they could not be decoded or arrived late."""
        return self._skipped

    def _scan_since(self) -> date | None:
        anchor = self._last_taken_at or self._config.start
        if anchor is None:
            return None
        return (anchor.astimezone(UTC) - _FOLDER_MARGIN).date()

    def _scan(self) -> list[tuple[datetime, Path, date]]:
        """List records not handled yet, stopping at the first unsettled one."""
        provider = self._config.provider
        pending: list[tuple[datetime, Path, date]] = []
        for day, folder in list_day_folders(self._config.base_dir, provider, since=self._scan_since()):
            pending.extend(
                (taken_at, path, day) for taken_at, path in list_records(folder, provider) if path not in self._seen
            )
        pending.sort(key=lambda item: (item[0], item[1].name))

        if not self._config.tail:
            return pending

        settled_before = self._wall_clock() - self._config.settle_seconds
        ready: list[tuple[datetime, Path, date]] = []
        for taken_at, path, day in pending:
            try:
                modified = path.stat().st_mtime
            except FileNotFoundError:
                continue
            if modified > settled_before:
                _logger.debug("Deferring %s until it has settled", path.name)
                break
            ready.append((taken_at, path, day))
        return ready

    def _forget_old(self) -> None:
        # Only folders the next scan skips; the scan start never moves back.
        since = self._scan_since()
        if since is None:
            return
        self._seen = {path: day for path, day in self._seen.items() if day >= since}

    async def snapshots(self, stop: asyncio.Event) -> AsyncIterator[Snapshot]:
        config = self._config
        tailing = False
        while not stop.is_set():
            batch = await asyncio.to_thread(self._scan)
            for taken_at, path, day in batch:
                if stop.is_set():
                    return
                self._seen[path] = day
                if config.end is not None and taken_at >= config.end:
                    _logger.info("Reached end of replay window at %s", taken_at.isoformat())
                    return
                if config.start is not None and taken_at < config.start:
                    continue
                if self._last_taken_at is not None and taken_at < self._last_taken_at:
                    self._skipped += 1
                    _logger.warning(
                        "Skipping late record %s, already replayed up to %s",
                        path.name,
                        self._last_taken_at.isoformat(),
                    )
                    continue
                try:
                    snapshot = await asyncio.to_thread(self._decoder, path, config.provider)
                except RecordDecodeError as exc:
                    self._skipped += 1
                    _logger.warning("Skipping malformed record %s: %s", exc.path, exc)
                    continue
                self._last_taken_at = taken_at
                yield snapshot

            if not config.tail:
                _logger.debug("Replay of %s finished", config.base_dir)
                return
            if not tailing:
                tailing = True
                _logger.info("Backlog replayed, tailing %s", config.base_dir)
            self._forget_old()
            if await wait_or_stop(stop, config.poll_interval):
                return

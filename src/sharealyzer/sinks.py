"""Output sinks for snapshots and trips.

A sink consumes one pipeline branch. ``write`` is awaited for every item
in order; ``close`` once after the last item. Blocking I/O runs in worker
threads so a slow disk never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import IO, Generic, Protocol, TypeVar

from sharealyzer.archive import ArchiveWriter
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.trip import Trip

_logger = logging.getLogger(__name__)

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class Sink(Protocol[T_contra]):
    @property
    def name(self) -> str:
        ...

    async def write(self, item: T_contra) -> None:
        ...

    async def close(self) -> None:
        ...


class CollectingSink(Generic[T]):
    """Keeps every item in memory."""

    def __init__(self, name: str = "collect") -> None:
        self._name = name
        self.items: list[T] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def write(self, item: T) -> None:
        self.items.append(item)

    async def close(self) -> None:
        self.closed = True


class ArchiveSink:
    """Persists raw snapshots through an :class:`ArchiveWriter`."""

    def __init__(self, writer: ArchiveWriter) -> None:
        self._writer = writer
        self.written = 0

    @property
    def name(self) -> str:
        return f"archive:{self._writer.base_dir}"

    async def write(self, item: Snapshot) -> None:
        await asyncio.to_thread(self._writer.write, item)
        self.written += 1

    async def close(self) -> None:
        _logger.debug("Archive sink wrote %d snapshots", self.written)


class JsonLinesTripSink:
    """Appends classified trips to a JSON lines file."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None

    @property
    def name(self) -> str:
        return f"jsonl:{self._path}"

    def _append(self, line: str) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self._path.open("a", encoding="utf-8")
        self._fh.write(line)
        self._fh.flush()

    async def write(self, item: Trip) -> None:
        await asyncio.to_thread(self._append, item.model_dump_json() + "\n")

    async def close(self) -> None:
        if self._fh is not None:
            fh, self._fh = self._fh, None
            await asyncio.to_thread(fh.close)

"""Source contract shared by the live and replay variants."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Protocol

from sharealyzer.models.snapshot import Snapshot


class SnapshotSource(Protocol):
    """Produces snapshots oldest first.

    ``snapshots`` may be iterated once; restarting means creating a new
    source. Implementations check *stop* only between items, an item in
    progress always completes (or fails) first.
    """

    @property
    def name(self) -> str:
        ...

    def snapshots(self, stop: asyncio.Event) -> AsyncIterator[Snapshot]:
        ...


class FleetClient(Protocol):
    """What the live source needs from a provider client."""

    async def fetch_current_fleet(self) -> Snapshot:
        ...

    async def reauthenticate(self, code_provider: Callable[[], Awaitable[str]]) -> None:
        ...


async def wait_or_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to *timeout* seconds. Returns ``True`` if *stop* was set."""
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=max(timeout, 0.0))
    except TimeoutError:
        return stop.is_set()
    return True


class StaticSource:
    """Replays an in-memory sequence of snapshots."""

    def __init__(self, snapshots: Iterable[Snapshot], *, name: str = "static") -> None:
        self._snapshots = list(snapshots)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def snapshots(self, stop: asyncio.Event) -> AsyncIterator[Snapshot]:
        for snapshot in self._snapshots:
            if stop.is_set():
                return
            yield snapshot
            # Let consumers run between items, as a real source would.
            await asyncio.sleep(0)

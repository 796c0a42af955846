"""Snapshot sources: live polling and archive replay."""

from sharealyzer.sources.base import FleetClient, SnapshotSource, StaticSource, wait_or_stop
from sharealyzer.sources.live import LiveSource
from sharealyzer.sources.replay import ReplaySource

__all__ = [
    "FleetClient",
    "LiveSource",
    "ReplaySource",
    "SnapshotSource",
    "StaticSource",
    "wait_or_stop",
]

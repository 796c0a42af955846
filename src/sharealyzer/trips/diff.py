"""Snapshot diffing.

Pure functions only; interpreting *vanished* as a trip start and
*reappeared* as a trip end is the tracker's job.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SnapshotDiff:
    vanished: frozenset[str]
    """Identifiers present in the previous snapshot but not in the current one."""
    reappeared: frozenset[str]
    """Identifiers present in the current snapshot that were known to be missing."""

    @property
    def is_empty(self) -> bool:
        return not self.vanished and not self.reappeared


def diff(
    previous: Mapping[str, Any],
    current: Mapping[str, Any],
    missing: Collection[str] = (),
) -> SnapshotDiff:
    """Compare the vehicle identifiers of two consecutive snapshots.

    Parameters
    ----------
    previous, current
        Vehicle mappings keyed by identifier. Only the keys are inspected.
    missing
        Identifiers the caller already knows to be absent (open trips).
    """
    vanished = frozenset(previous.keys() - current.keys())
    reappeared = frozenset(vehicle_id for vehicle_id in missing if vehicle_id in current)
    return SnapshotDiff(vanished=vanished, reappeared=reappeared)

"""Trip lifecycle tracking.

This is the only component allowed to turn snapshot diffs into trips. Each
fleet namespace needs its own :class:`TripTracker`; instances never share
state.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from sharealyzer.exceptions import InvariantViolationError
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.trip import OpenTrip, Trip
from sharealyzer.models.vehicle import Vehicle
from sharealyzer.trips.diff import diff

_logger = logging.getLogger(__name__)


def make_trip_id(vehicle_id: str, start_time: datetime) -> str:
    """Deterministic trip identifier, identical for live and replayed runs."""
    return f"{vehicle_id}-{int(start_time.timestamp())}"


def finalize_trip(open_trip: OpenTrip, vehicle: Vehicle, end_time: datetime) -> Trip:
    """Close *open_trip* with the reappearance observation *vehicle*.

    Cost uses the pricing valid at reappearance: the flat fee plus the
    per-minute rate for every completed minute. Non-positive durations bill
    zero minutes.
    """
    duration = end_time - open_trip.start_time
    billed_minutes = max(0, math.floor(duration.total_seconds() / 60))
    return Trip(
        trip_id=open_trip.trip_id,
        vehicle_id=open_trip.vehicle_id,
        provider=open_trip.provider,
        start_location=open_trip.start_location,
        end_location=vehicle.location,
        start_charge_level=open_trip.start_charge_level,
        end_charge_level=vehicle.charge_level,
        start_time=open_trip.start_time,
        end_time=end_time,
        duration=duration,
        distance_km=open_trip.start_location.distance_km(vehicle.location),
        cost=vehicle.init_price + vehicle.unit_price * billed_minutes,
        user_id=vehicle.last_user_id,
    )


class TripTracker:
    """Turns consecutive snapshots into finalized trips.

    A trip opens in the first snapshot where its vehicle is missing; its
    start time is that snapshot's capture time and its start location and
    charge are taken from the last snapshot that still contained the
    vehicle. It is finalized in the first later snapshot containing the
    vehicle again.

    Vehicles that never reappear stay in :attr:`open_trips` and never form
    a :class:`Trip`.
    """

    def __init__(self) -> None:
        self._open_trips: dict[str, OpenTrip] = {}
        self._last_vehicles: dict[str, Vehicle] = {}
        self._last_snapshot_at: datetime | None = None
        self._snapshots_seen = 0

    @property
    def open_trips(self) -> dict[str, OpenTrip]:
        """Copy of the in-flight trips keyed by vehicle identifier."""
        return dict(self._open_trips)

    @property
    def last_snapshot_at(self) -> datetime | None:
        """Capture time of the last snapshot that was fully processed."""
        return self._last_snapshot_at

    @property
    def snapshots_seen(self) -> int:
        return self._snapshots_seen

    def observe(self, snapshot: Snapshot) -> list[Trip]:
        """Advance the tracker by one snapshot.

        Returns the trips finalized by this snapshot, ordered by vehicle
        identifier.

        Raises
        ------
        InvariantViolationError
            If snapshots arrive out of order or the open trip table is
            inconsistent with the previous snapshot.
        """
        taken_at = snapshot.taken_at
        if self._last_snapshot_at is not None and taken_at < self._last_snapshot_at:
            raise InvariantViolationError(
                f"Snapshot {taken_at.isoformat()} is older than the previous one "
                f"({self._last_snapshot_at.isoformat()})"
            )

        changes = diff(self._last_vehicles, snapshot.vehicles, self._open_trips.keys())
        if not changes.is_empty:
            _logger.debug(
                "Snapshot %s: %d vanished, %d reappeared",
                taken_at.isoformat(),
                len(changes.vanished),
                len(changes.reappeared),
            )

        for vehicle_id in sorted(changes.vanished):
            if vehicle_id in self._open_trips:
                raise InvariantViolationError(f"Vehicle {vehicle_id} vanished while a trip was already open")
            last_seen = self._last_vehicles[vehicle_id]
            self._open_trips[vehicle_id] = OpenTrip(
                trip_id=make_trip_id(vehicle_id, taken_at),
                vehicle_id=vehicle_id,
                provider=last_seen.provider,
                start_location=last_seen.location,
                start_charge_level=last_seen.charge_level,
                start_time=taken_at,
                last_seen_at=self._last_snapshot_at,
            )
            _logger.debug("Trip started for vehicle %s at %s", vehicle_id, taken_at.isoformat())

        finalized: list[Trip] = []
        for vehicle_id in sorted(changes.reappeared):
            open_trip = self._open_trips.pop(vehicle_id)
            trip = finalize_trip(open_trip, snapshot.vehicles[vehicle_id], taken_at)
            _logger.debug(
                "Trip %s finalized: %.1f min, %.2f km, %d cents",
                trip.trip_id,
                trip.duration_minutes,
                trip.distance_km,
                trip.cost,
            )
            finalized.append(trip)

        self._last_vehicles = snapshot.vehicles
        self._last_snapshot_at = taken_at
        self._snapshots_seen += 1
        return finalized

"""Aggregate reporting over trips and snapshots."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta

from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.trip import Trip, TripAnomaly, TripCategory

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripSummary:
    trips: int
    by_category: dict[TripCategory, int]
    customer_revenue: int
    """Summed cost of customer trips in minor currency units."""
    mean_customer_cost: float
    mean_energy_used: float
    mean_distance_km: float
    max_distance_km: float
    max_duration: timedelta
    unique_users: int
    anomalies: dict[TripAnomaly, int]
    long_trips: tuple[Trip, ...] = field(default=())

    def format(self) -> str:
        lines = [
            f"Trips: {self.trips}",
            *(f"  {category.value}: {self.by_category.get(category, 0)}" for category in TripCategory),
            f"Customer revenue: {self.customer_revenue / 100:.2f}",
            f"Mean customer trip cost: {self.mean_customer_cost / 100:.2f}",
            f"Mean energy used: {self.mean_energy_used:.2f}",
            f"Mean distance: {self.mean_distance_km:.2f} km (max {self.max_distance_km:.2f} km)",
            f"Longest trip: {self.max_duration}",
            f"Unique users: {self.unique_users}",
        ]
        for anomaly, count in sorted(self.anomalies.items()):
            lines.append(f"Anomaly {anomaly.value}: {count}")
        for trip in self.long_trips:
            lines.append(
                f"  long trip {trip.trip_id}: {trip.duration_minutes:.0f} min, {trip.distance_km:.2f} km"
            )
        return "\n".join(lines)


class TripStatistics:
    """Trip sink accumulating a :class:`TripSummary`."""

    name = "trip-statistics"

    def __init__(self) -> None:
        self._trips = 0
        self._by_category: Counter[TripCategory] = Counter()
        self._anomalies: Counter[TripAnomaly] = Counter()
        self._customer_revenue = 0
        self._customer_trips = 0
        self._energy_used = 0.0
        self._distance_km = 0.0
        self._max_distance_km = 0.0
        self._max_duration = timedelta(0)
        self._users: set[str] = set()
        self._long_trips: list[Trip] = []

    def add(self, trip: Trip) -> None:
        self._trips += 1
        if trip.category is not None:
            self._by_category[trip.category] += 1
        if trip.category is TripCategory.CUSTOMER:
            self._customer_trips += 1
            self._customer_revenue += trip.cost
        self._anomalies.update(trip.anomalies)
        if TripAnomaly.UNUSUALLY_LONG in trip.anomalies:
            self._long_trips.append(trip)
        self._energy_used += trip.energy_used
        self._distance_km += trip.distance_km
        self._max_distance_km = max(self._max_distance_km, trip.distance_km)
        self._max_duration = max(self._max_duration, trip.duration)
        if trip.user_id:
            self._users.add(trip.user_id)

    async def write(self, item: Trip) -> None:
        self.add(item)

    async def close(self) -> None:
        _logger.debug("Trip statistics closed after %d trips", self._trips)

    def summary(self) -> TripSummary:
        count = self._trips
        return TripSummary(
            trips=count,
            by_category=dict(self._by_category),
            customer_revenue=self._customer_revenue,
            mean_customer_cost=self._customer_revenue / self._customer_trips if self._customer_trips else 0.0,
            mean_energy_used=self._energy_used / count if count else 0.0,
            mean_distance_km=self._distance_km / count if count else 0.0,
            max_distance_km=self._max_distance_km,
            max_duration=self._max_duration,
            unique_users=len(self._users),
            anomalies=dict(self._anomalies),
            long_trips=tuple(self._long_trips),
        )


class FleetCensus:
    """Snapshot sink counting distinct vehicles and users over a run."""

    name = "fleet-census"

    def __init__(self) -> None:
        self.vehicle_ids: set[str] = set()
        self.user_ids: set[str] = set()
        self.snapshots = 0
        self.max_fleet_size = 0

    def add(self, snapshot: Snapshot) -> None:
        self.snapshots += 1
        self.max_fleet_size = max(self.max_fleet_size, len(snapshot))
        self.vehicle_ids.update(snapshot.vehicle_ids)
        for vehicle in snapshot.vehicles.values():
            if vehicle.last_user_id:
                self.user_ids.add(vehicle.last_user_id)

    async def write(self, item: Snapshot) -> None:
        self.add(item)

    async def close(self) -> None:
        _logger.debug(
            "Fleet census: %d vehicles, %d users over %d snapshots",
            len(self.vehicle_ids),
            len(self.user_ids),
            self.snapshots,
        )

    def format(self) -> str:
        return (
            f"Snapshots: {self.snapshots}\n"
            f"Unique vehicles: {len(self.vehicle_ids)} (max {self.max_fleet_size} at once)\n"
            f"Unique users: {len(self.user_ids)}"
        )

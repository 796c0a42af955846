from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from sharealyzer.models import GeoLocation, Snapshot, Trip, TripAnomaly, TripCategory, Vehicle
from sharealyzer.stats import FleetCensus, TripStatistics

_START = datetime(2019, 10, 8, 6, 0, tzinfo=UTC)
_HERE = GeoLocation(latitude=51.48, longitude=7.22)


def _trip(
    trip_id: str,
    category: TripCategory,
    *,
    cost: int = 300,
    minutes: float = 10.0,
    distance_km: float = 2.0,
    energy_used: float = 10.0,
    user: str | None = None,
    anomalies: tuple[TripAnomaly, ...] = (),
) -> Trip:
    return Trip(
        trip_id=trip_id,
        vehicle_id=trip_id.split("-")[0],
        provider="circ",
        start_location=_HERE,
        end_location=_HERE,
        start_charge_level=80.0,
        end_charge_level=80.0 - energy_used,
        start_time=_START,
        end_time=_START + timedelta(minutes=minutes),
        duration=timedelta(minutes=minutes),
        distance_km=distance_km,
        cost=cost,
        user_id=user,
        category=category,
        anomalies=anomalies,
    )


@pytest.mark.asyncio
async def test_trip_statistics_summary() -> None:
    stats = TripStatistics()
    long_trip = _trip(
        "a-3", TripCategory.CUSTOMER, cost=1500, minutes=70, distance_km=6.0, user="u2",
        anomalies=(TripAnomaly.UNUSUALLY_LONG,),
    )
    for trip in (
        _trip("a-1", TripCategory.CUSTOMER, cost=300, user="u1"),
        _trip("b-1", TripCategory.RELOCATION, cost=100, energy_used=0.5, distance_km=4.0),
        _trip("c-1", TripCategory.RECHARGE, cost=100, energy_used=-20.0),
        long_trip,
    ):
        await stats.write(trip)
    await stats.close()

    summary = stats.summary()

    assert summary.trips == 4
    assert summary.by_category == {
        TripCategory.CUSTOMER: 2,
        TripCategory.RELOCATION: 1,
        TripCategory.RECHARGE: 1,
    }
    assert summary.customer_revenue == 1800
    assert summary.mean_customer_cost == 900.0
    assert summary.mean_energy_used == pytest.approx((10.0 + 0.5 - 20.0 + 10.0) / 4)
    assert summary.mean_distance_km == pytest.approx(3.5)
    assert summary.max_distance_km == 6.0
    assert summary.max_duration == timedelta(minutes=70)
    assert summary.unique_users == 2
    assert summary.anomalies == {TripAnomaly.UNUSUALLY_LONG: 1}
    assert summary.long_trips == (long_trip,)
    assert "customer: 2" in summary.format()


def test_empty_statistics() -> None:
    summary = TripStatistics().summary()

    assert summary.trips == 0
    assert summary.mean_customer_cost == 0.0
    assert summary.max_duration == timedelta(0)


@pytest.mark.asyncio
async def test_fleet_census_counts_unique_vehicles_and_users() -> None:
    def vehicle(vehicle_id: str, user: str | None) -> Vehicle:
        return Vehicle(vehicle_id=vehicle_id, provider="circ", location=_HERE, last_user_id=user)

    census = FleetCensus()
    await census.write(Snapshot.from_vehicles(_START, [vehicle("a", "u1"), vehicle("b", None)]))
    await census.write(Snapshot.from_vehicles(_START, [vehicle("a", "u2"), vehicle("c", "u1")]))
    await census.write(Snapshot.from_vehicles(_START, [vehicle("a", "u2")]))

    assert census.snapshots == 3
    assert census.vehicle_ids == {"a", "b", "c"}
    assert census.user_ids == {"u1", "u2"}
    assert census.max_fleet_size == 2
    assert "Unique vehicles: 3" in census.format()

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from sharealyzer.exceptions import InvariantViolationError
from sharealyzer.models import GeoLocation, Snapshot, Vehicle
from sharealyzer.trips.tracker import TripTracker, make_trip_id

_T0 = datetime(2019, 10, 8, 6, 0, tzinfo=UTC)

_X = GeoLocation(latitude=51.4818, longitude=7.2162)
_Y = GeoLocation(latitude=51.5136, longitude=7.4653)


def _vehicle(
    vehicle_id: str,
    *,
    location: GeoLocation = _X,
    charge: float = 80.0,
    user: str | None = None,
    init_price: int = 100,
    unit_price: int = 20,
) -> Vehicle:
    return Vehicle(
        vehicle_id=vehicle_id,
        provider="circ",
        location=location,
        charge_level=charge,
        init_price=init_price,
        unit_price=unit_price,
        last_user_id=user,
    )


def _snapshot(minutes: float, *vehicles: Vehicle) -> Snapshot:
    return Snapshot.from_vehicles(_T0 + timedelta(minutes=minutes), vehicles)


def test_trip_is_finalized_when_vehicle_reappears() -> None:
    tracker = TripTracker()

    assert tracker.observe(_snapshot(0, _vehicle("A", location=_X, charge=80.0))) == []
    assert tracker.observe(_snapshot(10, _vehicle("B"))) == []
    trips = tracker.observe(
        _snapshot(35.5, _vehicle("A", location=_Y, charge=60.0, user="u1"), _vehicle("B"))
    )

    assert len(trips) == 1
    trip = trips[0]
    assert trip.vehicle_id == "A"
    assert trip.provider == "circ"
    assert trip.start_location == _X
    assert trip.start_charge_level == 80.0
    # Start is the first snapshot where the vehicle was confirmed missing.
    assert trip.start_time == _T0 + timedelta(minutes=10)
    assert trip.end_location == _Y
    assert trip.end_charge_level == 60.0
    assert trip.end_time == _T0 + timedelta(minutes=35.5)
    assert trip.user_id == "u1"
    assert trip.duration == timedelta(minutes=25.5)
    assert trip.cost == 100 + 20 * 25
    assert trip.distance_km == pytest.approx(_X.distance_km(_Y))
    assert trip.category is None
    assert tracker.open_trips == {}


def test_feeding_same_snapshot_twice_changes_nothing() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A"), _vehicle("B")))
    snapshot = _snapshot(1, _vehicle("B"))

    tracker.observe(snapshot)
    open_before = tracker.open_trips

    assert tracker.observe(snapshot) == []
    assert tracker.open_trips == open_before
    assert set(open_before) == {"A"}


def test_vehicle_that_never_returns_stays_open() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A", charge=55.0)))
    tracker.observe(_snapshot(1))
    tracker.observe(_snapshot(2))

    open_trip = tracker.open_trips["A"]
    assert open_trip.start_charge_level == 55.0
    assert open_trip.start_location == _X
    assert open_trip.start_time == _T0 + timedelta(minutes=1)
    assert open_trip.last_seen_at == _T0
    assert open_trip.trip_id == make_trip_id("A", _T0 + timedelta(minutes=1))


def test_trips_of_one_snapshot_are_ordered_by_vehicle_id() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("c"), _vehicle("a"), _vehicle("b")))
    tracker.observe(_snapshot(1))

    trips = tracker.observe(_snapshot(5, _vehicle("b"), _vehicle("c"), _vehicle("a")))

    assert [trip.vehicle_id for trip in trips] == ["a", "b", "c"]


def test_zero_duration_trip_is_still_emitted() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A")))
    tracker.observe(_snapshot(1))

    trips = tracker.observe(_snapshot(1, _vehicle("A", unit_price=25)))

    assert len(trips) == 1
    assert trips[0].duration == timedelta(0)
    assert trips[0].cost == 100


def test_charge_increase_is_not_an_error() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A", charge=20.0)))
    tracker.observe(_snapshot(5))

    (trip,) = tracker.observe(_snapshot(90, _vehicle("A", charge=100.0)))

    assert trip.energy_used == -80.0


def test_new_vehicle_does_not_close_anything() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A")))

    assert tracker.observe(_snapshot(1, _vehicle("A"), _vehicle("N"))) == []
    assert tracker.open_trips == {}


def test_vehicle_can_take_several_trips() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(0, _vehicle("A")))
    tracker.observe(_snapshot(1))
    first = tracker.observe(_snapshot(2, _vehicle("A")))
    tracker.observe(_snapshot(3))
    second = tracker.observe(_snapshot(4, _vehicle("A")))

    assert len(first) == len(second) == 1
    assert first[0].trip_id != second[0].trip_id


def test_out_of_order_snapshot_is_an_invariant_violation() -> None:
    tracker = TripTracker()
    tracker.observe(_snapshot(5, _vehicle("A")))

    with pytest.raises(InvariantViolationError):
        tracker.observe(_snapshot(4, _vehicle("A")))

    # The failed snapshot was not applied.
    assert tracker.last_snapshot_at == _T0 + timedelta(minutes=5)
    assert tracker.snapshots_seen == 1


def test_trackers_do_not_share_state() -> None:
    first = TripTracker()
    second = TripTracker()

    first.observe(_snapshot(0, _vehicle("A")))
    first.observe(_snapshot(1))

    assert "A" in first.open_trips
    assert second.open_trips == {}
    assert second.last_snapshot_at is None


def test_trip_id_is_deterministic() -> None:
    start = datetime(2019, 10, 8, 5, 11, 27, tzinfo=UTC)

    assert make_trip_id("abc", start) == f"abc-{int(start.timestamp())}"
    assert make_trip_id("abc", start) == make_trip_id("abc", start)

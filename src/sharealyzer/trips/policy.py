"""Deterministic trip classification policy.

This module contains *no* lifecycle bookkeeping. It only looks at the
attributes of an already finalized trip.
"""

from __future__ import annotations

from sharealyzer.config import ClassifierThresholds
from sharealyzer.models.trip import Trip, TripAnomaly, TripCategory

DEFAULT_THRESHOLDS = ClassifierThresholds()


def classify_trip(trip: Trip, thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS) -> TripCategory:
    """Assign a category to *trip*.

    Policy, evaluated in order:
    - charge increased: the vehicle was plugged in, not ridden.
    - little charge used but moved a meaningful distance: staff relocation.
    - otherwise: a customer ride.
    """
    if trip.end_charge_level > trip.start_charge_level:
        return TripCategory.RECHARGE
    if (
        trip.energy_used < thresholds.relocation_max_energy_drop
        and trip.distance_km > thresholds.relocation_min_distance_km
    ):
        return TripCategory.RELOCATION
    return TripCategory.CUSTOMER


def detect_anomalies(trip: Trip, thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS) -> tuple[TripAnomaly, ...]:
    anomalies: list[TripAnomaly] = []
    if trip.duration.total_seconds() <= 0:
        anomalies.append(TripAnomaly.NON_POSITIVE_DURATION)
    elif trip.duration_minutes >= thresholds.long_trip_minutes:
        anomalies.append(TripAnomaly.UNUSUALLY_LONG)
    return tuple(anomalies)


class TripClassifier:
    """Returns classified copies of finalized trips."""

    def __init__(self, thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS) -> None:
        self._thresholds = thresholds

    @property
    def thresholds(self) -> ClassifierThresholds:
        return self._thresholds

    def classify(self, trip: Trip) -> Trip:
        return trip.model_copy(
            update={
                "category": classify_trip(trip, self._thresholds),
                "anomalies": detect_anomalies(trip, self._thresholds),
            }
        )

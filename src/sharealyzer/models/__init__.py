"""Data models for fleet observations and trips."""

from sharealyzer.models._base import EpochTimestamp, ProviderBaseModel, parse_epoch_timestamp
from sharealyzer.models.circ import CircScooter
from sharealyzer.models.geo import GeoLocation, great_circle_km
from sharealyzer.models.snapshot import Snapshot
from sharealyzer.models.token import AuthResponse, ProviderErrorBody, TokenRefreshResponse
from sharealyzer.models.trip import OpenTrip, Trip, TripAnomaly, TripCategory
from sharealyzer.models.vehicle import Vehicle, VehicleState

__all__ = [
    "AuthResponse",
    "CircScooter",
    "EpochTimestamp",
    "GeoLocation",
    "OpenTrip",
    "ProviderBaseModel",
    "ProviderErrorBody",
    "Snapshot",
    "TokenRefreshResponse",
    "Trip",
    "TripAnomaly",
    "TripCategory",
    "Vehicle",
    "VehicleState",
    "great_circle_km",
    "parse_epoch_timestamp",
]
